import pytest
from unittest.mock import Mock
from datetime import datetime, timedelta
from src.rate_limiter import APIRateLimiter, RateLimitExceeded, rate_limit_openai


def test_openai_rate_limiter():
    """Test OpenAI API rate limiting."""
    limiter = APIRateLimiter(openai_requests_per_min=50, openai_tokens_per_min=10000)

    # Should allow requests within limits
    assert limiter.check_openai_limit(100) is True
    assert limiter.check_openai_limit(100) is True

    # Should reject when token limit exceeded
    limiter.openai_limits['token_count'] = 9900
    assert limiter.check_openai_limit(200) is False

    # Should reject when request limit exceeded
    limiter.openai_limits['token_count'] = 0
    limiter.openai_limits['request_count'] = 50
    assert limiter.check_openai_limit(50) is False

    # Should reset after minute passes
    limiter.openai_limits['last_reset'] = datetime.now() - timedelta(minutes=1)
    assert limiter.check_openai_limit(100) is True
    assert limiter.openai_limits['token_count'] == 100
    assert limiter.openai_limits['request_count'] == 1


def test_sms_daily_budget():
    """A burst of messages is fine until the daily budget runs out."""
    limiter = APIRateLimiter(sms_messages_per_day=3)

    assert [limiter.check_sms_limit() for _ in range(4)] == [True, True, True, False]

    # Should reset after day changes
    limiter.sms_limits['last_daily_reset'] = datetime.now() - timedelta(days=1)
    assert limiter.check_sms_limit() is True
    assert limiter.sms_limits['daily_count'] == 1


def test_rate_limit_openai_decorator(mocker):
    """Test OpenAI rate limiting decorator."""
    sleep = mocker.patch('src.rate_limiter.time.sleep')
    limiter = APIRateLimiter(openai_requests_per_min=1, openai_tokens_per_min=10000)
    mock_function = Mock(return_value="test")
    decorated = rate_limit_openai(estimated_tokens=100, limiter_instance=limiter)(mock_function)

    # First call should succeed
    assert decorated("hello") == "test"
    mock_function.assert_called_once_with("hello")

    # Second call inside the same minute gives up after retrying
    mock_function.reset_mock()
    with pytest.raises(RateLimitExceeded, match="Rate limit exceeded"):
        decorated("again")
    mock_function.assert_not_called()
    assert sleep.call_count == 2


def test_rate_limiter_thread_safety():
    """Test thread safety of rate limiters."""
    import threading
    import queue

    limiter = APIRateLimiter(sms_messages_per_day=5)
    results = queue.Queue()

    def worker():
        results.put(limiter.check_sms_limit())

    # Create multiple threads to test concurrency
    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    thread_results = []
    while not results.empty():
        thread_results.append(results.get())

    # Exactly the budget is granted, never more
    assert len(thread_results) == 10
    assert thread_results.count(True) == 5
    assert limiter.sms_limits['daily_count'] == 5
