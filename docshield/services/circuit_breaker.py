"""
KVCircuitBreaker - Stops calling a failing upstream, with its state in a KV store.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Upstream is failing, requests are blocked (fallback or CircuitOpenError)
- HALF_OPEN: Testing if the upstream has recovered

Transitions:
- CLOSED → OPEN: When failure_threshold is reached
- OPEN → HALF_OPEN: Once recovery_time_seconds have passed since the last failure.
  Derived on every read, nothing is written when it happens.
- HALF_OPEN → CLOSED: On successful request
- HALF_OPEN → OPEN: On failed request, restarting the recovery window

State is persisted with a TTL of twice the recovery time; an absent entry
means CLOSED with no failures.
"""

import json
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger

from docshield.clock import Clock, system_clock
from docshield.datastore.kv import BaseKVStore
from docshield.services.base import (
    BaseCircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerStatus,
    CircuitState,
    Operation,
)
from docshield.services.errors import CircuitOpenError

T = TypeVar("T")


@dataclass
class BreakerState:
    """Persisted state of one circuit."""

    failure_count: int = 0
    last_failure_time: int | None = None
    state: CircuitState = CircuitState.CLOSED
    half_open_attempts: int = 0
    last_probe_time: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BreakerState":
        return cls(
            failure_count=int(data.get("failureCount", 0)),
            last_failure_time=data.get("lastFailureTime"),
            state=CircuitState(data.get("state", CircuitState.CLOSED.value)),
            half_open_attempts=int(data.get("halfOpenAttempts", 0)),
            last_probe_time=data.get("lastProbeTime"),
        )

    def to_json(self) -> str:
        return json.dumps(
            {
                "failureCount": self.failure_count,
                "lastFailureTime": self.last_failure_time,
                "state": self.state.value,
                "halfOpenAttempts": self.half_open_attempts,
                "lastProbeTime": self.last_probe_time,
            }
        )


class KVCircuitBreaker(BaseCircuitBreaker):
    """
    Circuit breaker for one upstream, shared by every invocation through the store.

    ``half_open_requests`` caps how many probes are let through once the
    circuit turns HALF_OPEN. A probe holds its slot until it resolves the
    circuit or until ``recovery_time_seconds`` pass, whichever comes first.
    The cap is best-effort: the store has no compare-and-swap, so callers
    arriving at the very same moment may all become probes.

    Usage:
        breaker = KVCircuitBreaker(store, "circuit:upstream-api", CircuitBreakerConfig())

        documents = await breaker.execute(
            lambda: upstream.list_documents("invoices"),
            fallback=lambda: load_snapshot(),
        )
    """

    def __init__(
        self,
        store: BaseKVStore,
        key: str,
        config: CircuitBreakerConfig | None = None,
        clock: Clock = system_clock,
    ):
        self._store = store
        self.key = key
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

    @property
    def _recovery_ms(self) -> int:
        return self.config.recovery_time_seconds * 1000

    async def _load(self) -> BreakerState:
        stored = await self._store.get(self.key, type="json")
        return BreakerState.from_dict(stored) if stored else BreakerState()

    async def _save(self, state: BreakerState) -> None:
        await self._store.put(
            self.key,
            state.to_json(),
            expiration_ttl=self.config.recovery_time_seconds * 2,
        )

    def _current_state(self, stored: BreakerState, now: int) -> CircuitState:
        """Effective state, including the time-based OPEN → HALF_OPEN move."""
        if stored.state != CircuitState.OPEN:
            return stored.state
        if (
            stored.last_failure_time is not None
            and now >= stored.last_failure_time + self._recovery_ms
        ):
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    def _probes_exhausted(self, stored: BreakerState, now: int) -> bool:
        return (
            stored.state == CircuitState.HALF_OPEN
            and stored.half_open_attempts >= self.config.half_open_requests
            and stored.last_probe_time is not None
            and now < stored.last_probe_time + self._recovery_ms
        )

    async def get_state(self) -> CircuitBreakerStatus:
        stored = await self._load()
        now = self._clock()

        next_retry_time = None
        if stored.state == CircuitState.OPEN and stored.last_failure_time is not None:
            next_retry_time = stored.last_failure_time + self._recovery_ms
        elif self._probes_exhausted(stored, now):
            # Calls are refused until the in-flight probes resolve or their lease ends
            next_retry_time = stored.last_probe_time + self._recovery_ms

        return CircuitBreakerStatus(
            state=self._current_state(stored, now),
            failure_count=stored.failure_count,
            last_failure_time=stored.last_failure_time,
            next_retry_time=next_retry_time,
        )

    async def record_success(self) -> None:
        """Close the circuit and clear the failure count."""
        stored = await self._load()
        await self._save(BreakerState())
        if stored.state != CircuitState.CLOSED:
            logger.info(f"Circuit breaker '{self.key}' CLOSED (recovered)")

    async def record_failure(self) -> None:
        """Count a failure; open the circuit at the threshold or on a failed probe."""
        stored = await self._load()
        now = self._clock()
        current = self._current_state(stored, now)

        if current == CircuitState.HALF_OPEN:
            failure_count = max(stored.failure_count + 1, self.config.failure_threshold)
        else:
            failure_count = stored.failure_count + 1

        if failure_count >= self.config.failure_threshold:
            new_state = CircuitState.OPEN
        else:
            new_state = stored.state

        await self._save(
            BreakerState(
                failure_count=failure_count,
                last_failure_time=now,
                state=new_state,
            )
        )

        if new_state == CircuitState.OPEN and current != CircuitState.OPEN:
            logger.warning(
                f"Circuit breaker '{self.key}' OPENED after {failure_count} failures"
            )

    async def reset(self) -> None:
        """Manually reset the circuit breaker."""
        await self._save(BreakerState())
        logger.info(f"Circuit breaker '{self.key}' manually reset")

    async def _begin_probe(self, stored: BreakerState, now: int) -> None:
        lease_expired = (
            stored.last_probe_time is None
            or now >= stored.last_probe_time + self._recovery_ms
        )
        attempts = 1 if lease_expired else stored.half_open_attempts + 1
        if stored.state != CircuitState.HALF_OPEN:
            logger.info(f"Circuit breaker '{self.key}' transitioned to HALF_OPEN")

        await self._save(
            BreakerState(
                failure_count=stored.failure_count,
                last_failure_time=stored.last_failure_time,
                state=CircuitState.HALF_OPEN,
                half_open_attempts=attempts,
                last_probe_time=now,
            )
        )

    async def execute(
        self, operation: Operation[T], fallback: Operation[T] | None = None
    ) -> T:
        """
        Run ``operation`` unless the circuit is open.

        Raises:
            CircuitOpenError: If the circuit is open and no fallback was given
            Exception: Whatever ``operation`` raised, after counting it as a failure
        """
        stored = await self._load()
        now = self._clock()
        current = self._current_state(stored, now)

        if current == CircuitState.OPEN or self._probes_exhausted(stored, now):
            if fallback is not None:
                return await fallback()

            if current == CircuitState.OPEN:
                if stored.last_failure_time is not None:
                    next_retry_time = stored.last_failure_time + self._recovery_ms
                else:
                    next_retry_time = now + self._recovery_ms
            else:
                next_retry_time = stored.last_probe_time + self._recovery_ms
            raise CircuitOpenError(
                self.key, next_retry_time, stored.failure_count, now=now
            )

        if current == CircuitState.HALF_OPEN:
            await self._begin_probe(stored, now)

        try:
            result = await operation()
        except Exception:
            await self.record_failure()
            raise

        if current == CircuitState.HALF_OPEN:
            await self.record_success()
        return result
