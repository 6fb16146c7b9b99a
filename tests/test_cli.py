import pytest
from unittest.mock import Mock
from click.testing import CliRunner

from src.cli import cli
from src.features.sms.code import SmsResult
from src.models import User


@pytest.fixture
def cli_runner():
    """Create CLI test runner."""
    return CliRunner()


def invoke(cli_runner, app, args):
    return cli_runner.invoke(cli, args, obj={'app': app})


def test_list_phones(cli_runner, app, make_user):
    make_user('admin', phone='0911000001')
    make_user('superadmin', phone='0911000001')
    make_user('keyholder', phone='0922000001')

    result = invoke(cli_runner, app, ['list-phones', '--role', 'admin', '--role', 'superadmin'])

    assert result.exit_code == 0
    assert result.output.split() == ['0911000001']


def test_list_phones_none_found(cli_runner, app):
    result = invoke(cli_runner, app, ['list-phones', '--role', 'keyholder'])

    assert result.exit_code == 0
    assert "No phone numbers found" in result.output


def test_notify_approval(cli_runner, app, make_user, make_booking, sms_service):
    make_user('keyholder', phone='0922000001')
    booking = make_booking('dormitory')

    result = invoke(cli_runner, app, ['notify-approval', booking.id])

    assert result.exit_code == 0
    assert "0922000001: sent" in result.output
    sms_service.send_sms.assert_called_once()


def test_notify_booking(cli_runner, app, make_booking):
    booking = make_booking('facility')

    result = invoke(cli_runner, app, ['notify-booking', booking.id])

    assert result.exit_code == 0
    assert "Web notification:" in result.output


def test_notify_unknown_booking(cli_runner, app):
    result = invoke(cli_runner, app, ['notify-booking', 'missing'])

    assert result.exit_code == 1


def test_seed_dormitory_users_is_idempotent(cli_runner, app, db_session):
    result = invoke(cli_runner, app, ['seed-dormitory-users', '--keyholder-phone', '0922000009'])
    assert result.exit_code == 0
    assert "3 users added" in result.output

    result = invoke(cli_runner, app, ['seed-dormitory-users'])
    assert "0 users added" in result.output

    keyholder = db_session.query(User).filter_by(role='keyholder').one()
    assert keyholder.phone == '0922000009'


def test_send_test_sms(cli_runner, app, mocker):
    service = Mock()
    service.send_sms.return_value = SmsResult.skipped('12345', 'invalid_phone')
    mocker.patch('src.cli.SMSService.from_settings', return_value=service)

    result = invoke(cli_runner, app, ['send-test-sms', '12345', 'hello'])

    assert result.exit_code == 1
    service.send_sms.assert_called_once_with('12345', 'hello')
