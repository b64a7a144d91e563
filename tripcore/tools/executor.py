"""Async executor for external service calls.

Wraps geocoding, routing and suggestion-provider calls with:
- Hard timeout per attempt
- Bounded retries with jittered backoff
- Per-service circuit breaker (shared state via registry)
- Optional rate limiter acquired before every attempt
- Metrics and structured logging hooks
"""

import asyncio
import random
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeVar

from tripcore.config import Settings, get_settings
from tripcore.tools.ratelimit import IntervalRateLimiter

T = TypeVar("T")


class ExternalCallTimeoutError(Exception):
    """External call exceeded its hard timeout on every attempt."""

    pass


class CircuitOpenError(Exception):
    """Circuit breaker is open for this service."""

    pass


class ExternalCallError(Exception):
    """External call failed on every attempt."""

    pass


@dataclass(frozen=True)
class CallContext:
    """Context for an external call with tracing."""

    service: str
    trace_id: str = field(default_factory=lambda: f"trace-{uuid.uuid4().hex[:12]}")


@dataclass
class CallConfig:
    """Configuration for external call execution."""

    hard_timeout_ms: int
    retry_count: int
    retry_jitter_min_ms: int
    retry_jitter_max_ms: int
    breaker_failure_threshold: int = 5
    breaker_window_seconds: int = 60
    breaker_half_open_seconds: int = 30

    @classmethod
    def from_settings(cls, settings: Settings | None = None, *, hard_timeout_ms: int | None = None) -> "CallConfig":
        settings = settings or get_settings()
        return cls(
            hard_timeout_ms=hard_timeout_ms or settings.external_hard_timeout_ms,
            retry_count=settings.retry_count,
            retry_jitter_min_ms=settings.retry_jitter_min_ms,
            retry_jitter_max_ms=settings.retry_jitter_max_ms,
            breaker_failure_threshold=settings.circuit_breaker_failures,
            breaker_window_seconds=settings.circuit_breaker_window_sec,
            breaker_half_open_seconds=settings.circuit_breaker_half_open_sec,
        )


class BreakerState(str, Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Per-service circuit breaker.

    Tracks failures within a time window and opens after threshold.
    """

    service: str
    failure_threshold: int
    window_seconds: int
    half_open_seconds: int
    state: BreakerState = BreakerState.CLOSED
    failure_times: list[datetime] = field(default_factory=list)
    opened_at: datetime | None = None

    def record_success(self) -> None:
        if self.state == BreakerState.HALF_OPEN:
            self.state = BreakerState.CLOSED
            self.failure_times.clear()
            self.opened_at = None

    def record_failure(self, now: datetime) -> None:
        cutoff = now - timedelta(seconds=self.window_seconds)
        self.failure_times = [t for t in self.failure_times if t > cutoff]
        self.failure_times.append(now)

        # A failed probe in half-open re-opens immediately
        if self.state == BreakerState.HALF_OPEN or len(self.failure_times) >= self.failure_threshold:
            self.state = BreakerState.OPEN
            self.opened_at = now

    def check_and_update_state(self, now: datetime) -> BreakerState:
        if self.state == BreakerState.OPEN:
            if self.opened_at and (now - self.opened_at).total_seconds() >= self.half_open_seconds:
                self.state = BreakerState.HALF_OPEN
        return self.state

    def is_open(self, now: datetime) -> bool:
        """Check if breaker is currently open (rejecting calls)."""
        return self.check_and_update_state(now) == BreakerState.OPEN


class BreakerRegistry:
    """Registry of per-service circuit breakers with shared state."""

    def __init__(self) -> None:
        self._by_service: dict[str, CircuitBreaker] = {}

    def get_or_create(self, service: str, config: CallConfig) -> CircuitBreaker:
        if service not in self._by_service:
            self._by_service[service] = CircuitBreaker(
                service=service,
                failure_threshold=config.breaker_failure_threshold,
                window_seconds=config.breaker_window_seconds,
                half_open_seconds=config.breaker_half_open_seconds,
            )
        return self._by_service[service]

    def clear(self) -> None:
        """Clear all breakers (useful for testing)."""
        self._by_service.clear()


_global_breaker_registry = BreakerRegistry()


def get_breaker_registry() -> BreakerRegistry:
    """Get the global breaker registry instance."""
    return _global_breaker_registry


class CallMetrics:
    """Interface for external call metrics."""

    def record_latency(self, service: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, service: str, reason: str) -> None:
        pass


class CallLogger:
    """Interface for structured call logging."""

    def log_attempt(
        self,
        ctx: CallContext,
        attempt: int,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        pass


class ExternalCallExecutor:
    """Runs one external call through limiter, breaker, timeout and retries."""

    def __init__(
        self,
        config: CallConfig | None = None,
        metrics: CallMetrics | None = None,
        logger: CallLogger | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        registry: BreakerRegistry | None = None,
        limiter: IntervalRateLimiter | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            config: Execution configuration (default: from settings)
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            sleep_fn: Injectable sleep function (default: asyncio.sleep)
            registry: Breaker registry (default: process-wide registry)
            limiter: Rate limiter acquired before every attempt
        """
        self._config = config or CallConfig.from_settings()
        self._metrics = metrics or CallMetrics()
        self._logger = logger or CallLogger()
        self._sleep = sleep_fn or asyncio.sleep
        self._registry = registry or get_breaker_registry()
        self._limiter = limiter

    @property
    def config(self) -> CallConfig:
        return self._config

    async def execute(self, ctx: CallContext, fn: Callable[[], Awaitable[T]]) -> T:
        """Execute an external call.

        Args:
            ctx: Call context naming the service
            fn: Zero-argument coroutine factory; called once per attempt

        Returns:
            Whatever `fn` returns

        Raises:
            CircuitOpenError: Breaker for the service is open
            ExternalCallTimeoutError: Every attempt timed out
            ExternalCallError: Every attempt failed, last error chained
        """
        config = self._config
        breaker = self._registry.get_or_create(ctx.service, config)

        if breaker.is_open(datetime.now()):
            self._metrics.record_latency(ctx.service, "breaker_open", 0.0)
            self._metrics.inc_error(ctx.service, "breaker_open")
            self._logger.log_attempt(ctx, 0, "breaker_open", 0.0, error_reason="breaker_open")
            raise CircuitOpenError(f"Circuit breaker open for {ctx.service}")

        last_error: Exception | None = None
        for attempt in range(config.retry_count + 1):
            if self._limiter is not None:
                await self._limiter.acquire()

            attempt_start = time.monotonic()
            try:
                result = await asyncio.wait_for(fn(), timeout=config.hard_timeout_ms / 1000)
            except TimeoutError as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                last_error = e
                self._metrics.inc_error(ctx.service, "timeout")
                self._logger.log_attempt(ctx, attempt + 1, "timeout", elapsed_ms, error_reason="timeout")
            except Exception as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                last_error = e
                self._metrics.inc_error(ctx.service, "execution_error")
                self._logger.log_attempt(
                    ctx, attempt + 1, "error", elapsed_ms, error_reason=type(e).__name__
                )
            else:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                breaker.record_success()
                self._metrics.record_latency(ctx.service, "success", elapsed_ms)
                self._logger.log_attempt(ctx, attempt + 1, "success", elapsed_ms)
                return result

            breaker.record_failure(datetime.now())
            if breaker.is_open(datetime.now()):
                break
            if attempt < config.retry_count:
                jitter_ms = random.uniform(config.retry_jitter_min_ms, config.retry_jitter_max_ms)
                await self._sleep(jitter_ms / 1000)

        if isinstance(last_error, TimeoutError):
            raise ExternalCallTimeoutError(f"{ctx.service} timed out after all retries")
        raise ExternalCallError(f"{ctx.service} failed after all retries") from last_error


EXTERNAL_CALL_ERRORS = (ExternalCallTimeoutError, CircuitOpenError, ExternalCallError)
