"""
Simple rate limiting configuration for API endpoints and external service calls.
Uses in-memory storage suitable for small-scale deployments.
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import functools
import time
from datetime import datetime
import threading
import logging
from typing import Dict, Any
import os

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised when an outbound API budget is exhausted."""


class APIRateLimiter:
    """Manages rate limits for external API calls."""

    def __init__(self, openai_requests_per_min: int = None, openai_tokens_per_min: int = None,
                 sms_messages_per_day: int = None):
        self.openai_limits = {
            'tokens_per_min': openai_tokens_per_min or int(os.getenv('OPENAI_TOKENS_PER_MIN', '20000')),
            'requests_per_min': openai_requests_per_min or int(os.getenv('OPENAI_REQUESTS_PER_MIN', '100')),
            'last_reset': datetime.now(),
            'token_count': 0,
            'request_count': 0
        }

        # Only a daily cap: fan-out sends to several recipients at the same instant.
        self.sms_limits = {
            'messages_per_day': sms_messages_per_day or int(os.getenv('SMS_MESSAGES_PER_DAY', '2000')),
            'daily_count': 0,
            'last_daily_reset': datetime.now()
        }

        self._lock = threading.Lock()

    def _reset_if_needed(self, limits: Dict[str, Any], reset_interval_seconds: int) -> None:
        """Reset counters if the reset interval has passed."""
        now = datetime.now()
        seconds_since_reset = (now - limits['last_reset']).total_seconds()

        if seconds_since_reset >= reset_interval_seconds:
            limits['token_count'] = 0
            limits['request_count'] = 0
            limits['last_reset'] = now

    def _reset_daily_if_needed(self) -> None:
        """Reset daily message counter if day has changed."""
        now = datetime.now()
        if now.date() > self.sms_limits['last_daily_reset'].date():
            self.sms_limits['daily_count'] = 0
            self.sms_limits['last_daily_reset'] = now

    def check_openai_limit(self, token_count: int) -> bool:
        """
        Check if the OpenAI API call is within rate limits.

        Args:
            token_count: Estimated token count for this request

        Returns:
            bool: True if within limits, False otherwise
        """
        with self._lock:
            self._reset_if_needed(self.openai_limits, 60)  # Reset every minute

            if (self.openai_limits['token_count'] + token_count > self.openai_limits['tokens_per_min'] or
                    self.openai_limits['request_count'] + 1 > self.openai_limits['requests_per_min']):
                return False

            self.openai_limits['token_count'] += token_count
            self.openai_limits['request_count'] += 1
            return True

    def check_sms_limit(self) -> bool:
        """
        Check if SMS sending is within the daily budget.

        Returns:
            bool: True if within limits, False otherwise
        """
        with self._lock:
            self._reset_daily_if_needed()

            if self.sms_limits['daily_count'] >= self.sms_limits['messages_per_day']:
                return False

            self.sms_limits['daily_count'] += 1
            return True


# Initialize Flask-Limiter with in-memory storage
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"],
    storage_uri=os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
)

# Initialize API rate limiter
api_limiter = APIRateLimiter()


def rate_limit_openai(estimated_tokens: int, limiter_instance: APIRateLimiter = None):
    """
    Decorator for OpenAI API calls with token-based rate limiting.

    Args:
        estimated_tokens: Estimated token count for the request
        limiter_instance: Limiter to consult, the module-wide one by default
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            active = limiter_instance or api_limiter
            retry_count = 0
            max_retries = 3

            while retry_count < max_retries:
                if active.check_openai_limit(estimated_tokens):
                    return func(*args, **kwargs)

                retry_count += 1
                if retry_count < max_retries:
                    logger.warning(f"OpenAI rate limit reached, waiting before retry {retry_count}")
                    time.sleep(2 ** retry_count)  # Exponential backoff

            logger.error("OpenAI rate limit reached and max retries exceeded")
            raise RateLimitExceeded("Rate limit exceeded")

        return wrapper
    return decorator
