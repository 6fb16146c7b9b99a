"""
Tests for the translation feature
"""

import httpx
import openai
import pytest
from unittest.mock import MagicMock

from src.exceptions import TranslationError
from src.rate_limiter import APIRateLimiter
from .code import Translator


def completion_with(content):
    completion = MagicMock()
    completion.choices[0].message.content = content
    return completion


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def translator(client, mocker):
    mocker.patch('tenacity.nap.time.sleep')
    return Translator(api_key=None, client=client, rate_limiter=APIRateLimiter())


def test_translate_returns_both_languages(translator, client):
    client.chat.completions.create.return_value = completion_with(
        '{"Oromo": "Baga nagaan dhuftan", "Amharic": "እንኳን ደህና መጡ"}'
    )

    result = translator.translate("Welcome")

    assert result == {'Oromo': 'Baga nagaan dhuftan', 'Amharic': 'እንኳን ደህና መጡ'}
    kwargs = client.chat.completions.create.call_args.kwargs
    assert 'Welcome' in kwargs['messages'][1]['content']


def test_invalid_output_is_retried_then_raised(translator, client):
    client.chat.completions.create.return_value = completion_with('not json')

    with pytest.raises(TranslationError):
        translator.translate("Welcome")

    assert client.chat.completions.create.call_count == 3


def test_recovers_after_bad_output(translator, client):
    client.chat.completions.create.side_effect = [
        completion_with('{"Oromo": ""}'),
        completion_with('{"Oromo": "Galatoomaa", "Amharic": "አመሰግናለሁ"}'),
    ]

    assert translator.translate("Thank you")['Oromo'] == 'Galatoomaa'


def test_unconfigured_translator_raises():
    with pytest.raises(TranslationError, match="not configured"):
        Translator(api_key=None).translate("Welcome")


def test_empty_text_raises(translator):
    with pytest.raises(TranslationError):
        translator.translate("   ")


def openai_request():
    return httpx.Request('POST', 'https://api.openai.com/v1/chat/completions')


def test_connection_errors_are_retried_then_wrapped(translator, client):
    client.chat.completions.create.side_effect = openai.APIConnectionError(request=openai_request())

    with pytest.raises(TranslationError, match="Translation service error"):
        translator.translate("Welcome")

    assert client.chat.completions.create.call_count == 3


def test_recovers_after_connection_error(translator, client):
    client.chat.completions.create.side_effect = [
        openai.APIConnectionError(request=openai_request()),
        completion_with('{"Oromo": "Akkam", "Amharic": "ሰላም"}'),
    ]

    assert translator.translate("Hello") == {'Oromo': 'Akkam', 'Amharic': 'ሰላም'}


def test_auth_errors_are_not_retried(translator, client):
    request = openai_request()
    client.chat.completions.create.side_effect = openai.AuthenticationError(
        "Invalid API key", response=httpx.Response(401, request=request), body=None
    )

    with pytest.raises(TranslationError):
        translator.translate("Welcome")

    assert client.chat.completions.create.call_count == 1


def test_exhausted_rate_limit_becomes_translation_error(client, mocker):
    mocker.patch('src.rate_limiter.time.sleep')
    client.chat.completions.create.return_value = completion_with(
        '{"Oromo": "Akkam", "Amharic": "ሰላም"}'
    )
    translator = Translator(api_key=None, client=client,
                            rate_limiter=APIRateLimiter(openai_requests_per_min=1))

    translator.translate("Hello")
    with pytest.raises(TranslationError, match="rate limit"):
        translator.translate("Hello again")
