"""
Sliding-window rate limiter.

State lives behind a CachePort: per identifier, a list of request
timestamps inside the trailing window plus an optional block marker.
The store is best-effort. When it is unavailable the limiter fails open
and logs the degradation.
"""

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional

from core.config import RateLimitRule
from core.domain.exceptions import CacheUnavailableError, RateLimitExceededError
from core.infrastructure.cache import CachePort
from core.metrics import rate_limit_denials_total, rate_limiter_degraded_total

logger = logging.getLogger(__name__)

APPROACHING_LIMIT_RATIO = 0.8


@dataclass(frozen=True)
class RateLimitStats:
    """Snapshot of one identifier's rate limit state."""

    requests_in_window: int
    is_blocked: bool
    blocked_until: Optional[float]
    violations: int


class RateLimiter:
    """
    Sliding-window rate limiter with temporary blocking.

    The limiter is endpoint-agnostic: ``allow`` takes an explicit limit and
    window, while ``check`` looks the pair up in the configured rules.
    """

    def __init__(
        self,
        cache: CachePort,
        rules: Optional[Mapping[str, RateLimitRule]] = None,
        block_duration: int = 900,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limiter.

        Args:
            cache: Store for windows and block markers
            rules: Rate limit rule per action, with a "default" entry
            block_duration: Seconds an identifier is blocked after a breach
            clock: Time source returning epoch seconds
        """
        self.cache = cache
        self.rules = rules or {}
        self.block_duration = block_duration
        self.clock = clock

    @staticmethod
    def _key(identifier: str) -> str:
        # Identifiers usually contain client IPs, so only a digest reaches the store
        digest = hashlib.sha256(identifier.encode()).hexdigest()[:16]
        return f"rate_limit:{digest}"

    def _window_key(self, identifier: str) -> str:
        return f"{self._key(identifier)}:window"

    def _block_key(self, identifier: str) -> str:
        return f"{self._key(identifier)}:blocked"

    def _violations_key(self, identifier: str) -> str:
        return f"{self._key(identifier)}:violations"

    def _degraded(self, operation: str, error: Exception) -> None:
        rate_limiter_degraded_total.inc()
        logger.warning(
            "Rate limiter store unavailable, failing open",
            extra={"operation": operation, "error": str(error)},
        )

    async def _blocked_until(self, identifier: str) -> Optional[float]:
        blocked_until = await self.cache.get(self._block_key(identifier))
        if blocked_until is None or float(blocked_until) <= self.clock():
            return None
        return float(blocked_until)

    async def _window(self, identifier: str, window: int) -> List[float]:
        timestamps = await self.cache.get(self._window_key(identifier)) or []
        cutoff = self.clock() - window
        return [ts for ts in timestamps if ts > cutoff]

    async def allow(self, identifier: str, limit: int, window: int) -> bool:
        """
        Count a request and decide whether it is allowed.

        Blocked identifiers are denied without counting. A request that
        finds ``limit`` requests already in the window is denied and the
        identifier is blocked for ``block_duration`` seconds.

        Args:
            identifier: Client identifier (e.g. "activate:203.0.113.9")
            limit: Maximum requests per window
            window: Window length in seconds

        Returns:
            True if the request is allowed
        """
        try:
            if await self._blocked_until(identifier) is not None:
                return False

            timestamps = await self._window(identifier, window)
            if len(timestamps) >= limit:
                await self.block(identifier)
                logger.warning(
                    "Rate limit exceeded, identifier blocked",
                    extra={
                        "identifier_hash": self._key(identifier),
                        "limit": limit,
                        "window": window,
                        "block_duration": self.block_duration,
                    },
                )
                return False

            timestamps.append(self.clock())
            await self.cache.set(self._window_key(identifier), timestamps, timeout=window)

            if len(timestamps) >= limit * APPROACHING_LIMIT_RATIO:
                logger.info(
                    "Identifier approaching rate limit",
                    extra={
                        "identifier_hash": self._key(identifier),
                        "requests": len(timestamps),
                        "limit": limit,
                    },
                )
            return True
        except CacheUnavailableError as e:
            self._degraded("allow", e)
            return True

    async def check(self, identifier: str, action: str) -> bool:
        """
        Apply the configured rule for an action to a client identifier.

        Blocks are scoped per action, so an identifier throttled on
        activation can still send heartbeats.

        Args:
            identifier: Client identifier, usually the client IP
            action: Action name used to select the rule

        Returns:
            True if the request is allowed
        """
        rule = self.rule_for(action)
        allowed = await self.allow(f"{action}:{identifier}", rule.limit, rule.window)
        if not allowed:
            rate_limit_denials_total.labels(action=action).inc()
        return allowed

    async def enforce(self, identifier: str, action: str) -> None:
        """
        Apply the rule for an action, raising when the request is denied.

        Args:
            identifier: Client identifier, usually the client IP
            action: Action name used to select the rule

        Raises:
            RateLimitExceededError: If the identifier is over its limit or blocked;
                retry_after falls back to the rule window when the block
                marker cannot be read
        """
        if await self.check(identifier, action):
            return
        retry_after = await self.retry_after(identifier, action)
        raise RateLimitExceededError(
            "Too many requests. Please try again later.",
            retry_after=retry_after or self.rule_for(action).window,
        )

    def rule_for(self, action: str) -> RateLimitRule:
        """
        Get the rule for an action.

        Args:
            action: Action name

        Returns:
            The action's rule, else the "default" rule
        """
        rule = self.rules.get(action) or self.rules.get("default")
        if rule is None:
            raise KeyError(f"No rate limit rule for action '{action}'")
        return rule

    async def is_blocked(self, identifier: str) -> bool:
        """
        Check whether an identifier is currently blocked.

        Args:
            identifier: Client identifier

        Returns:
            True if blocked; False if not blocked or the store is unavailable
        """
        try:
            return await self._blocked_until(identifier) is not None
        except CacheUnavailableError as e:
            self._degraded("is_blocked", e)
            return False

    async def block(self, identifier: str, duration: Optional[int] = None) -> None:
        """
        Block an identifier.

        Args:
            identifier: Client identifier
            duration: Block length in seconds (defaults to block_duration)
        """
        duration = self.block_duration if duration is None else duration
        if duration <= 0:
            return
        blocked_until = self.clock() + duration
        try:
            await self.cache.set(self._block_key(identifier), blocked_until, timeout=duration)
            violations_key = self._violations_key(identifier)
            await self.cache.incr(violations_key, timeout=duration * 4)
            await self.cache.expire(violations_key, duration * 4)
        except CacheUnavailableError as e:
            self._degraded("block", e)

    async def unblock(self, identifier: str) -> None:
        """
        Remove an identifier's block marker.

        Args:
            identifier: Client identifier
        """
        try:
            await self.cache.delete(self._block_key(identifier))
        except CacheUnavailableError as e:
            self._degraded("unblock", e)

    async def reset(self, identifier: str) -> None:
        """
        Clear the window, block marker and violation count of an identifier.

        Args:
            identifier: Client identifier
        """
        try:
            await self.cache.delete(self._window_key(identifier))
            await self.cache.delete(self._block_key(identifier))
            await self.cache.delete(self._violations_key(identifier))
        except CacheUnavailableError as e:
            self._degraded("reset", e)

    async def get_stats(self, identifier: str, window: int) -> RateLimitStats:
        """
        Get the current state of an identifier.

        Args:
            identifier: Client identifier
            window: Window length in seconds used to count requests

        Returns:
            RateLimitStats snapshot (empty when the store is unavailable)
        """
        try:
            timestamps = await self._window(identifier, window)
            blocked_until = await self._blocked_until(identifier)
            violations = await self.cache.get(self._violations_key(identifier)) or 0
        except CacheUnavailableError as e:
            self._degraded("get_stats", e)
            return RateLimitStats(0, False, None, 0)
        return RateLimitStats(
            requests_in_window=len(timestamps),
            is_blocked=blocked_until is not None,
            blocked_until=blocked_until,
            violations=int(violations),
        )

    async def retry_after(self, identifier: str, action: str) -> int:
        """
        Seconds until a blocked identifier may retry an action.

        Args:
            identifier: Client identifier, usually the client IP
            action: Action name

        Returns:
            Remaining block time in whole seconds (0 if unknown)
        """
        try:
            blocked_until = await self._blocked_until(f"{action}:{identifier}")
        except CacheUnavailableError as e:
            self._degraded("retry_after", e)
            return 0
        if blocked_until is None:
            return 0
        return max(1, int(blocked_until - self.clock()) + 1)
