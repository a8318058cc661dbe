"""
Tests for the sliding-window rate limiter.
"""

import pytest
from contentcore.crawler.rate_limiter import SlidingWindowRateLimiter

from tests.helpers import FakeClock


class TestSlidingWindowRateLimiter:
    """Admission, remaining quota and window expiry."""

    @pytest.fixture
    def clock(self):
        return FakeClock(start=0.0)

    @pytest.fixture
    def limiter(self, clock):
        return SlidingWindowRateLimiter(max_requests=3, window_seconds=10.0, clock=clock)

    def test_admits_up_to_max_requests(self, limiter):
        """Exactly max_requests calls are admitted inside one window."""
        assert [limiter.check_limit("https://a.example") for _ in range(4)] == [True, True, True, False]

    def test_rejected_requests_are_not_recorded(self, limiter, clock):
        """A refused request does not push the window further out."""
        for _ in range(3):
            limiter.check_limit("k")
        clock.advance(5.0)
        assert limiter.check_limit("k") is False
        clock.advance(5.0)
        assert limiter.check_limit("k") is True

    def test_window_slides(self, limiter, clock):
        """Slots free up one by one as their timestamps age out."""
        limiter.check_limit("k")
        clock.advance(4.0)
        limiter.check_limit("k")
        limiter.check_limit("k")
        assert limiter.get_remaining_requests("k") == 0

        clock.advance(6.0)
        assert limiter.get_remaining_requests("k") == 1
        assert limiter.check_limit("k") is True
        assert limiter.check_limit("k") is False

    def test_keys_are_independent(self, limiter):
        for _ in range(3):
            assert limiter.check_limit("https://a.example")
        assert limiter.check_limit("https://b.example") is True
        assert limiter.get_remaining_requests("https://a.example") == 0
        assert limiter.get_remaining_requests("https://b.example") == 2

    def test_remaining_requests_does_not_record(self, limiter):
        for _ in range(5):
            assert limiter.get_remaining_requests("k") == 3
        assert limiter.check_limit("k") is True
        assert limiter.get_remaining_requests("k") == 2

    def test_retry_after(self, limiter, clock):
        """Seconds until the oldest request leaves the window."""
        assert limiter.retry_after("k") == 0.0
        limiter.check_limit("k")
        clock.advance(3.0)
        limiter.check_limit("k")
        limiter.check_limit("k")
        assert limiter.retry_after("k") == pytest.approx(7.0)

    def test_prune_and_reset(self, limiter, clock):
        limiter.check_limit("a")
        limiter.check_limit("b")
        assert len(limiter) == 2

        clock.advance(10.0)
        limiter.prune()
        assert len(limiter) == 0

        limiter.check_limit("a")
        limiter.reset("a")
        assert limiter.get_remaining_requests("a") == 3

        limiter.check_limit("a")
        limiter.check_limit("b")
        limiter.reset()
        assert len(limiter) == 0

    @pytest.mark.parametrize("max_requests, window", [(0, 10.0), (5, 0.0), (-1, 1.0)])
    def test_rejects_invalid_configuration(self, max_requests, window):
        with pytest.raises(ValueError):
            SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=window)
