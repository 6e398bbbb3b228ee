"""
Unit tests for the sliding window rate limiter
"""
from unittest.mock import patch

from storefront.core.rate_limit import RateLimiter


@patch('storefront.core.rate_limit.time.time')
def test_limit_and_retry_after(mock_time):
    mock_time.return_value = 1000.0
    limiter = RateLimiter()

    results = [limiter.is_allowed("ip:1", max_requests=3, window_seconds=60) for _ in range(4)]

    assert [r[0] for r in results] == [True, True, True, False]
    assert results[2][1] == 0
    assert results[3] == (False, 0, 61)


@patch('storefront.core.rate_limit.time.time')
def test_window_slides(mock_time):
    mock_time.return_value = 1000.0
    limiter = RateLimiter()
    limiter.is_allowed("ip:1", max_requests=1)

    mock_time.return_value = 1061.0

    assert limiter.is_allowed("ip:1", max_requests=1)[0] is True


@patch('storefront.core.rate_limit.time.time')
def test_clients_counted_separately(mock_time):
    mock_time.return_value = 1000.0
    limiter = RateLimiter()

    assert limiter.is_allowed("ip:1", max_requests=1)[0] is True
    assert limiter.is_allowed("ip:2", max_requests=1)[0] is True
    assert limiter.is_allowed("ip:1", max_requests=1)[0] is False


@patch('storefront.core.rate_limit.time.time')
def test_reset(mock_time):
    mock_time.return_value = 1000.0
    limiter = RateLimiter()
    limiter.is_allowed("ip:1", max_requests=1)

    limiter.reset()

    assert limiter.is_allowed("ip:1", max_requests=1)[0] is True
