"""
Translation
-----------
Description: Translates admin-entered text into Oromo and Amharic using GPT
Date Created: 2025-06-06
Dependencies:
  - openai
  - tenacity
  - rate_limiter
"""

import json
import logging
from typing import Optional, TypedDict

import openai
from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from src.exceptions import TranslationError
from src.rate_limiter import APIRateLimiter, RateLimitExceeded, rate_limit_openai

logger = logging.getLogger(__name__)

MODEL = "gpt-4o-mini"

# Transient failures worth another attempt
RETRYABLE_ERRORS = (
    TranslationError,
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.InternalServerError,
)

SYSTEM_MESSAGE = (
    "You are an expert translator specializing in English, Oromo (Oromifaa), and Amharic. "
    "Your response MUST be a valid JSON object with the keys \"Oromo\" and \"Amharic\", "
    "and the translated strings as their respective values."
)


class Translation(TypedDict):
    Oromo: str
    Amharic: str


class Translator:
    """Wraps the chat completions API for two-language translation."""

    def __init__(self, api_key: Optional[str], client: Optional[OpenAI] = None,
                 rate_limiter: Optional[APIRateLimiter] = None):
        self.client = client or (OpenAI(api_key=api_key) if api_key else None)
        self.rate_limiter = rate_limiter

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def translate(self, text: str, source_language: str = 'English') -> Translation:
        """Translate `text`; raises TranslationError when no usable answer comes back."""
        if not self.enabled:
            raise TranslationError("Translation is not configured: OPENAI_API_KEY is not set")
        if not text or not text.strip():
            raise TranslationError("Nothing to translate")

        guarded = rate_limit_openai(estimated_tokens=400, limiter_instance=self.rate_limiter)(
            self._request_translation
        )
        try:
            return guarded(text, source_language)
        except RateLimitExceeded as e:
            raise TranslationError(f"Translation rate limit reached: {str(e)}") from e
        except openai.OpenAIError as e:
            logger.error(f"OpenAI request failed: {str(e)}")
            raise TranslationError(f"Translation service error: {str(e)}") from e

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True
    )
    def _request_translation(self, text: str, source_language: str) -> Translation:
        prompt = (
            f"Translate the following text from {source_language} into Oromo and Amharic.\n\n"
            f"Source Text:\n\"{text}\""
        )
        completion = self.client.chat.completions.create(
            model=MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": prompt}
            ],
            response_format={"type": "json_object"},
            temperature=0.2
        )
        content = (completion.choices[0].message.content or '').strip()
        return self._parse(content)

    @staticmethod
    def _parse(content: str) -> Translation:
        try:
            data = json.loads(content)
        except ValueError:
            logger.warning(f"Translation output is not JSON: {content[:200]!r}")
            raise TranslationError("Translation did not produce valid JSON")

        if not isinstance(data, dict):
            raise TranslationError("Translation output is not an object")

        oromo = data.get('Oromo')
        amharic = data.get('Amharic')
        if not (isinstance(oromo, str) and oromo.strip() and isinstance(amharic, str) and amharic.strip()):
            raise TranslationError("Translation output is missing Oromo or Amharic text")
        return {'Oromo': oromo.strip(), 'Amharic': amharic.strip()}
