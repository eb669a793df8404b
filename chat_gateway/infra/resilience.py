"""Per-provider circuit breakers for the fallback walk.

A provider that keeps failing is skipped for a cooldown period, after which a
single trial call decides whether it rejoins the chain.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import httpx


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 5
    window_seconds: float = 60.0
    cooldown_seconds: float = 60.0


def is_timeout_error(exc: BaseException) -> bool:
    return isinstance(exc, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException))


class CircuitBreaker:
    def __init__(
        self,
        *,
        name: str,
        config: CircuitBreakerConfig,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config
        self._clock = time_fn
        self._current = CircuitState.CLOSED
        self._open_until = 0.0
        self._trial_pending = False
        self._recent_failures: deque[float] = deque()

    @property
    def state(self) -> str:
        return self._current.value

    def retry_after(self) -> float:
        """Seconds until an open circuit lets a trial call through."""
        if self._current is not CircuitState.OPEN:
            return 0.0
        return max(self._open_until - self._clock(), 0.0)

    def allow_request(self) -> tuple[bool, str | None]:
        """Returns (allowed, event); event is set when the state changed."""
        if self._current is CircuitState.CLOSED:
            return True, None
        if self._current is CircuitState.OPEN:
            if self._clock() < self._open_until:
                return False, None
            self._current = CircuitState.HALF_OPEN
            self._trial_pending = False
        if self._trial_pending:
            return False, None
        self._trial_pending = True
        return True, "circuit.half_open"

    def record_success(self) -> str | None:
        if self._current is CircuitState.HALF_OPEN:
            self._close()
            return "circuit.closed"
        return None

    def record_failure(self) -> str | None:
        now = self._clock()
        if self._current is CircuitState.HALF_OPEN:
            self._trip(now)
            return "circuit.open"
        self._recent_failures.append(now)
        horizon = now - self.config.window_seconds
        while self._recent_failures and self._recent_failures[0] < horizon:
            self._recent_failures.popleft()
        if len(self._recent_failures) >= self.config.failure_threshold:
            self._trip(now)
            return "circuit.open"
        return None

    def _trip(self, now: float) -> None:
        self._current = CircuitState.OPEN
        self._open_until = now + self.config.cooldown_seconds
        self._trial_pending = False
        self._recent_failures.clear()

    def _close(self) -> None:
        self._current = CircuitState.CLOSED
        self._open_until = 0.0
        self._trial_pending = False
        self._recent_failures.clear()


class CircuitBreakerRegistry:
    """Lazily creates one breaker per provider id, all sharing one config."""

    def __init__(
        self,
        *,
        config: CircuitBreakerConfig,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._clock = time_fn
        self._by_provider: dict[str, CircuitBreaker] = {}

    def get(self, provider_id: str) -> CircuitBreaker:
        if provider_id not in self._by_provider:
            self._by_provider[provider_id] = CircuitBreaker(name=provider_id, config=self.config, time_fn=self._clock)
        return self._by_provider[provider_id]

    def states(self) -> dict[str, str]:
        return {provider_id: breaker.state for provider_id, breaker in self._by_provider.items()}
