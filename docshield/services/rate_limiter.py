"""
KVRateLimiter - Fixed-window request counter kept in a key-value store.

Windows are aligned on multiples of ``window_seconds`` since the epoch. A
counter stored for an older window is simply ignored, and expires on its own
one second after its window ends, so no explicit reset is ever written.
"""

import json
import math
from dataclasses import dataclass

from loguru import logger

from docshield.clock import Clock, system_clock
from docshield.datastore.kv import BaseKVStore
from docshield.services.base import BaseRateLimiter, RateLimiterConfig, RateLimitResult
from docshield.services.errors import sanitize_key


@dataclass
class RateLimitState:
    """Persisted counter of one key."""

    count: int
    window_start: int  # epoch ms

    def to_json(self) -> str:
        return json.dumps({"count": self.count, "windowStart": self.window_start})


class KVRateLimiter(BaseRateLimiter):
    """
    Fixed-window rate limiter.

    Known limitation: ``check_and_record`` is a plain read followed by a plain
    write. Callers racing inside the same window can all read the same count
    before any of them writes, so more than ``max_requests`` calls may be
    allowed in a burst. The bound holds only approximately unless the store
    offers an atomic increment. Pick a conservative ``max_requests`` when the
    upstream limit is strict.

    Usage:
        limiter = KVRateLimiter(store, RateLimiterConfig(max_requests=3, window_seconds=1))

        result = await limiter.check_and_record("ratelimit:upstream-api")
        if not result.allowed:
            raise RateLimitExceededError(...)
    """

    def __init__(
        self,
        store: BaseKVStore,
        config: RateLimiterConfig,
        clock: Clock = system_clock,
    ):
        self._store = store
        self.config = config
        self._clock = clock

    def _window_start(self, now: int) -> int:
        window = self.config.window_seconds
        return math.floor(now / 1000 / window) * window * 1000

    async def _load(self, key: str, now: int) -> RateLimitState:
        """Current window's counter; a missing or stale entry counts as zero."""
        window_start = self._window_start(now)
        stored = await self._store.get(key, type="json")
        if not stored or stored.get("windowStart") != window_start:
            return RateLimitState(count=0, window_start=window_start)
        return RateLimitState(count=int(stored["count"]), window_start=window_start)

    async def _save(self, key: str, state: RateLimitState) -> None:
        await self._store.put(
            key, state.to_json(), expiration_ttl=self.config.window_seconds + 1
        )

    def _result(self, state: RateLimitState, allowed: bool, now: int) -> RateLimitResult:
        reset_at = state.window_start + self.config.window_seconds * 1000
        result = RateLimitResult(
            allowed=allowed,
            remaining=max(0, self.config.max_requests - state.count),
            reset_at=reset_at,
        )
        if not allowed:
            result.retry_after = math.ceil((reset_at - now) / 1000)
        return result

    async def check_limit(self, key: str) -> RateLimitResult:
        now = self._clock()
        state = await self._load(key, now)
        return self._result(state, state.count < self.config.max_requests, now)

    async def record_request(self, key: str) -> None:
        state = await self._load(key, self._clock())
        state.count += 1
        await self._save(key, state)

    async def check_and_record(self, key: str) -> RateLimitResult:
        now = self._clock()
        state = await self._load(key, now)
        allowed = state.count < self.config.max_requests

        if allowed:
            state.count += 1
            await self._save(key, state)
        else:
            logger.warning(
                f"Rate limit reached for '{sanitize_key(key)}' "
                f"({state.count}/{self.config.max_requests} in window)"
            )

        return self._result(state, allowed, now)
