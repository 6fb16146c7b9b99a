"""
Configuration
-------------
Description: Environment driven settings for the rental notification service
Dependencies:
  - python-dotenv
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

AFRO_MESSAGING_API_URL = 'https://api.afromessage.com/api/send'


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == '':
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read once from the environment."""

    database_url: str = 'sqlite:///app.db'
    sms_api_key: Optional[str] = None
    sms_sender_id: Optional[str] = None
    sms_api_url: str = AFRO_MESSAGING_API_URL
    sms_request_timeout: Optional[float] = None
    sms_messages_per_day: int = 2000
    app_base_url: str = ''
    openai_api_key: Optional[str] = None
    openai_requests_per_min: int = 100
    openai_tokens_per_min: int = 20000
    log_level: str = 'INFO'
    ratelimit_storage_uri: str = 'memory://'
    collation_locale: str = ''

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            database_url=os.getenv('DATABASE_URL', 'sqlite:///app.db'),
            sms_api_key=os.getenv('AFRO_MESSAGING_API_KEY') or None,
            sms_sender_id=os.getenv('AFRO_MESSAGING_SENDER_ID') or None,
            sms_api_url=os.getenv('AFRO_MESSAGING_API_URL', AFRO_MESSAGING_API_URL),
            sms_request_timeout=_optional_float(os.getenv('SMS_REQUEST_TIMEOUT')),
            sms_messages_per_day=int(os.getenv('SMS_MESSAGES_PER_DAY', '2000')),
            app_base_url=os.getenv('APP_BASE_URL', '').rstrip('/'),
            openai_api_key=os.getenv('OPENAI_API_KEY') or None,
            openai_requests_per_min=int(os.getenv('OPENAI_REQUESTS_PER_MIN', '100')),
            openai_tokens_per_min=int(os.getenv('OPENAI_TOKENS_PER_MIN', '20000')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            ratelimit_storage_uri=os.getenv('RATELIMIT_STORAGE_URI', 'memory://'),
            collation_locale=os.getenv('COLLATION_LOCALE', ''),
        )

    @property
    def sms_enabled(self) -> bool:
        return bool(self.sms_api_key and self.sms_sender_id)

    def with_overrides(self, **overrides) -> 'Settings':
        return replace(self, **overrides)
