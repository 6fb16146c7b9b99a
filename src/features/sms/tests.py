"""
Tests for the SMS gateway feature
"""

import threading

import pytest
import requests
from unittest.mock import Mock

from src.rate_limiter import APIRateLimiter
from .code import SMSService, SmsResult, normalize_phone, is_valid_phone

API_URL = 'https://sms.example.test/api/send'


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def sms_service(session):
    return SMSService(
        api_key='test_key',
        sender_id='OETC',
        api_url=API_URL,
        session=session
    )


def make_response(status_code=200, json_data=None, text=''):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.mark.parametrize('raw, expected', [
    ('0911223344', '+251911223344'),
    ('0711223344', '+251711223344'),
    ('911223344', '+251911223344'),
    ('711223344', '+251711223344'),
    ('251911223344', '+251911223344'),
    ('251711223344', '+251711223344'),
    ('+251911223344', '+251911223344'),
    (' 091-122 (3344) ', '+251911223344'),
])
def test_normalize_phone(raw, expected):
    """Local formats map onto +251 and pass validation."""
    normalized = normalize_phone(raw)
    assert normalized == expected
    assert is_valid_phone(normalized)


@pytest.mark.parametrize('raw', ['12345', '0811223344', '+14155550100', '', 'phone'])
def test_invalid_numbers_fail_validation(raw):
    assert not is_valid_phone(normalize_phone(raw))


def test_send_success(sms_service, session):
    session.post.return_value = make_response(json_data={
        'acknowledge': 'success',
        'response': {'message_id': 'abc'}
    })

    result = sms_service.send_sms('0911223344', 'Hello')

    assert result.ok
    assert result.to == '+251911223344'
    args, kwargs = session.post.call_args
    assert args[0] == API_URL
    assert kwargs['json'] == {'to': '+251911223344', 'sender': 'OETC', 'message': 'Hello'}
    assert kwargs['headers']['Authorization'] == 'Bearer test_key'


def test_invalid_phone_skips_network(sms_service, session):
    result = sms_service.send_sms('12345', 'Hello')

    assert result.status == 'skipped'
    assert result.reason == 'invalid_phone'
    session.post.assert_not_called()


def test_missing_configuration_is_noop(session):
    service = SMSService(api_key=None, sender_id='OETC', api_url=API_URL, session=session)

    result = service.send_sms('0911223344', 'Hello')

    assert result == SmsResult.skipped('0911223344', 'not_configured')
    session.post.assert_not_called()


def test_http_error_is_soft_failure(sms_service, session):
    session.post.return_value = make_response(status_code=401, text='unauthorized')

    result = sms_service.send_sms('0911223344', 'Hello')

    assert result.status == 'failed'
    assert result.reason == 'http_401'


def test_malformed_json_is_soft_failure(sms_service, session):
    session.post.return_value = make_response(json_data=ValueError('bad json'), text='<html>')

    result = sms_service.send_sms('0911223344', 'Hello')

    assert result.status == 'failed'
    assert result.reason == 'malformed_response'


def test_provider_rejection_is_soft_failure(sms_service, session):
    session.post.return_value = make_response(json_data={
        'acknowledge': 'error',
        'response': {'message': 'insufficient balance'}
    })

    result = sms_service.send_sms('0911223344', 'Hello')

    assert result.status == 'failed'
    assert 'insufficient balance' in result.reason


def test_transport_error_is_soft_failure(sms_service, session):
    session.post.side_effect = requests.ConnectionError('boom')

    result = sms_service.send_sms('0911223344', 'Hello')

    assert result.status == 'failed'
    assert result.reason.startswith('transport_error')


def test_daily_budget_skips_send(session):
    limiter = APIRateLimiter(sms_messages_per_day=1)
    service = SMSService('test_key', 'OETC', API_URL, rate_limiter=limiter, session=session)
    session.post.return_value = make_response(json_data={'acknowledge': 'success'})

    first = service.send_sms('0911223344', 'one')
    second = service.send_sms('0911223344', 'two')

    assert first.ok
    assert second.reason == 'rate_limited'
    assert session.post.call_count == 1


def test_each_worker_thread_gets_its_own_session():
    service = SMSService(api_key='test_key', sender_id='OETC', api_url=API_URL)
    sessions = {}

    def worker(name):
        sessions[name] = (service.session, service.session)

    threads = [threading.Thread(target=worker, args=(name,)) for name in ('a', 'b')]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    first, again = sessions['a']
    assert first is again
    assert isinstance(first, requests.Session)
    assert sessions['a'][0] is not sessions['b'][0]
    assert service.session is not first
