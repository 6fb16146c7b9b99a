"""
SMS Gateway
-----------
Description: Sends single text messages through the AfroMessage HTTP API
Date Created: 2025-06-02
Dependencies:
  - requests
  - certifi
  - rate_limiter
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import certifi
import requests

from src.config import Settings
from src.rate_limiter import APIRateLimiter

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^\+251[79]\d{8}$')
_STRIP_CHARS = re.compile(r'[\s\-()]')

SENT = 'sent'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class SmsResult:
    """Outcome of one send attempt: sent, skipped(reason) or failed(reason)."""
    status: str
    to: str
    reason: Optional[str] = None
    response: Optional[Dict[str, Any]] = None

    @classmethod
    def sent(cls, to: str, response: Optional[Dict[str, Any]] = None) -> 'SmsResult':
        return cls(SENT, to, response=response)

    @classmethod
    def skipped(cls, to: str, reason: str) -> 'SmsResult':
        return cls(SKIPPED, to, reason=reason)

    @classmethod
    def failed(cls, to: str, reason: str, response: Optional[Dict[str, Any]] = None) -> 'SmsResult':
        return cls(FAILED, to, reason=reason, response=response)

    @property
    def ok(self) -> bool:
        return self.status == SENT


def normalize_phone(phone: str) -> str:
    """
    Map local Ethiopian formats onto +251.

    09XXXXXXXX / 07XXXXXXXX, 251XXXXXXXXX and bare 9XXXXXXXX / 7XXXXXXXX
    are rewritten; anything else is returned cleaned but otherwise untouched.
    """
    number = _STRIP_CHARS.sub('', (phone or '').strip())

    if number.startswith('0'):
        return f"+251{number[1:]}"
    if number.startswith('251'):
        return f"+{number}"
    if len(number) == 9 and number[0] in '79':
        return f"+251{number}"
    return number


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(phone or ''))


class SMSService:
    """Handles SMS delivery through AfroMessage. Never raises to its caller."""

    def __init__(self, api_key: Optional[str], sender_id: Optional[str],
                 api_url: str, timeout: Optional[float] = None,
                 rate_limiter: Optional[APIRateLimiter] = None,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.sender_id = sender_id
        self.api_url = api_url
        self.timeout = timeout
        self.rate_limiter = rate_limiter
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The injected session, else one session per worker thread."""
        if self._session is not None:
            return self._session
        if not hasattr(self._local, 'session'):
            self._local.session = requests.Session()
        return self._local.session

    @classmethod
    def from_settings(cls, settings: Settings,
                      rate_limiter: Optional[APIRateLimiter] = None) -> 'SMSService':
        return cls(
            api_key=settings.sms_api_key,
            sender_id=settings.sms_sender_id,
            api_url=settings.sms_api_url,
            timeout=settings.sms_request_timeout,
            rate_limiter=rate_limiter,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.sender_id)

    def send_sms(self, to: str, message: str) -> SmsResult:
        """Send one message. Every failure path is logged and returned as a result."""
        logger.info(f"Attempting to send SMS to {to!r}")

        if not self.enabled:
            logger.error(
                "SMS sending is disabled: AFRO_MESSAGING_API_KEY and/or "
                "AFRO_MESSAGING_SENDER_ID are not set"
            )
            return SmsResult.skipped(to, 'not_configured')

        number = normalize_phone(to)
        if not is_valid_phone(number):
            logger.warning(
                f"Invalid Ethiopian phone number. Original: {to!r}, normalized: {number!r}"
            )
            return SmsResult.skipped(to, 'invalid_phone')

        if self.rate_limiter and not self.rate_limiter.check_sms_limit():
            logger.warning(f"Daily SMS budget exhausted, not sending to {number}")
            return SmsResult.skipped(number, 'rate_limited')

        payload = {
            'to': number,
            'sender': self.sender_id,
            'message': message,
        }

        try:
            response = self.session.post(
                self.api_url,
                json=payload,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Accept': 'application/json',
                },
                timeout=self.timeout,
                verify=certifi.where(),
            )
        except requests.RequestException as e:
            logger.error(f"SMS request to {number} failed: {str(e)}")
            return SmsResult.failed(number, f'transport_error: {e}')

        logger.debug(f"AfroMessage response: status={response.status_code} body={response.text}")

        if not response.ok:
            logger.error(
                f"AfroMessage returned HTTP {response.status_code} for {number}: {response.text}"
            )
            return SmsResult.failed(number, f'http_{response.status_code}')

        try:
            data = response.json()
        except ValueError:
            logger.error(f"AfroMessage returned a non-JSON body for {number}: {response.text!r}")
            return SmsResult.failed(number, 'malformed_response')

        if not isinstance(data, dict) or data.get('acknowledge') != 'success':
            detail = data.get('response') if isinstance(data, dict) else data
            if isinstance(detail, dict):
                detail = detail.get('message') or detail
            logger.error(f"AfroMessage rejected the message to {number}: {detail}")
            return SmsResult.failed(number, f'rejected: {detail}',
                                    response=data if isinstance(data, dict) else None)

        logger.info(f"SMS submitted for {number}")
        return SmsResult.sent(number, response=data)
