"""
Unit tests for the sliding-window RateLimiter.
"""

import pytest

from core.config import RateLimitRule
from core.domain.exceptions import RateLimitExceededError
from core.infrastructure.rate_limiter import RateLimiter
from tests.fakes import FakeClock, InMemoryCache

IP = "203.0.113.9"


@pytest.fixture
def clock():
    """Fixture for a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def rate_cache():
    """Fixture for an in-memory cache."""
    return InMemoryCache()


@pytest.fixture
def limiter(rate_cache, clock):
    """Fixture for a limiter allowing 5 requests per 60 seconds."""
    return RateLimiter(
        cache=rate_cache,
        rules={
            "activate": RateLimitRule(5, 60),
            "default": RateLimitRule(60, 300),
        },
        block_duration=900,
        clock=clock,
    )


@pytest.mark.asyncio
class TestRateLimiter:
    """Tests for RateLimiter."""

    async def test_allows_up_to_limit(self, limiter):
        """Test the first five requests in a window are allowed."""
        results = [await limiter.allow(IP, limit=5, window=60) for _ in range(5)]

        assert results == [True] * 5

    async def test_breach_blocks_past_window(self, limiter, clock):
        """Test the sixth request is denied and the block outlives the window."""
        for _ in range(5):
            assert await limiter.allow(IP, limit=5, window=60)
            clock.advance(1)

        assert await limiter.allow(IP, limit=5, window=60) is False

        clock.advance(61)
        assert await limiter.allow(IP, limit=5, window=60) is False
        assert await limiter.is_blocked(IP) is True

    async def test_block_expires(self, limiter, clock):
        """Test a blocked identifier is allowed again after block_duration."""
        for _ in range(6):
            await limiter.allow(IP, limit=5, window=60)

        clock.advance(901)

        assert await limiter.allow(IP, limit=5, window=60) is True

    async def test_window_slides(self, limiter, clock):
        """Test old requests leave the window."""
        for _ in range(4):
            await limiter.allow(IP, limit=5, window=60)
        clock.advance(61)

        results = [await limiter.allow(IP, limit=5, window=60) for _ in range(5)]

        assert results == [True] * 5

    async def test_identifiers_are_independent(self, limiter):
        """Test one client's breach does not affect another."""
        for _ in range(6):
            await limiter.allow(IP, limit=5, window=60)

        assert await limiter.allow("198.51.100.7", limit=5, window=60) is True

    async def test_check_scopes_blocks_per_action(self, limiter):
        """Test a block on activation does not throttle heartbeats."""
        for _ in range(6):
            await limiter.check(IP, "activate")

        assert await limiter.check(IP, "activate") is False
        assert await limiter.check(IP, "validate") is True

    async def test_retry_after(self, limiter, clock):
        """Test retry_after reports the remaining block time."""
        assert await limiter.retry_after(IP, "activate") == 0

        for _ in range(6):
            await limiter.check(IP, "activate")
        clock.advance(100)

        assert await limiter.retry_after(IP, "activate") == 801

    async def test_enforce_raises_with_retry_after(self, limiter, clock):
        """Test enforce lets requests through, then raises with the remaining block."""
        for _ in range(5):
            await limiter.enforce(IP, "activate")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.enforce(IP, "activate")
        clock.advance(10)
        with pytest.raises(RateLimitExceededError) as blocked_info:
            await limiter.enforce(IP, "activate")

        assert exc_info.value.code == "RATE_LIMIT_EXCEEDED"
        assert exc_info.value.retry_after == 901
        assert blocked_info.value.retry_after == 891

    async def test_enforce_falls_back_to_window_without_block(self, rate_cache, clock):
        """Test a denial without a block marker suggests retrying after the window."""
        limiter = RateLimiter(
            cache=rate_cache,
            rules={"default": RateLimitRule(1, 60)},
            block_duration=0,
            clock=clock,
        )
        await limiter.enforce(IP, "validate")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.enforce(IP, "validate")

        assert exc_info.value.retry_after == 60

    async def test_stats_and_reset(self, limiter):
        """Test stats reflect the window, and reset clears it."""
        for _ in range(6):
            await limiter.allow(IP, limit=5, window=60)

        stats = await limiter.get_stats(IP, window=60)
        assert stats.requests_in_window == 5
        assert stats.is_blocked is True
        assert stats.violations == 1

        await limiter.reset(IP)

        stats = await limiter.get_stats(IP, window=60)
        assert stats.requests_in_window == 0
        assert stats.is_blocked is False

    async def test_unblock(self, limiter):
        """Test unblock lifts a block."""
        await limiter.block(IP)
        assert await limiter.is_blocked(IP) is True

        await limiter.unblock(IP)

        assert await limiter.is_blocked(IP) is False

    async def test_fails_open_when_store_unavailable(self, limiter, rate_cache):
        """Test requests are allowed while the store is down."""
        rate_cache.available = False

        results = [await limiter.allow(IP, limit=1, window=60) for _ in range(3)]

        assert results == [True, True, True]
        assert await limiter.is_blocked(IP) is False

    async def test_store_never_sees_raw_identifier(self, limiter, rate_cache):
        """Test client IPs are digested before reaching the store."""
        await limiter.check(IP, "activate")

        assert rate_cache.data
        assert all(IP not in key for key in rate_cache.data)

    async def test_rule_lookup_falls_back_to_default(self, limiter):
        """Test unknown actions use the default rule."""
        assert limiter.rule_for("download") == RateLimitRule(60, 300)
