"""Resilience policies for outbound Open-Meteo channels.

A ``ResilientChannel`` wraps one ``httpx.AsyncClient`` and applies, from the outside in:

1. an overall deadline for the whole call, retries included
2. bounded retries with exponential backoff and jitter
3. a circuit breaker checked before every attempt
4. a per-attempt timeout
"""

import asyncio
import random
import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import httpx

from weather_proxy.exceptions import CircuitOpenError
from weather_proxy.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 429})


def is_retryable_status(status_code: int) -> bool:
    """Return True for statuses worth another attempt: 5xx, 408 and 429."""
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerPolicy:
    """When a channel's circuit opens and for how long. Durations in seconds."""

    failure_ratio: float = 0.5
    sampling_duration: float = 30.0
    minimum_throughput: int = 5
    break_duration: float = 15.0


@dataclass(frozen=True)
class ResiliencePolicy:
    """Timeout, retry and circuit breaker budget for one channel. Durations in seconds."""

    total_timeout: float = 8.0
    attempt_timeout: float = 6.0
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 10.0
    use_jitter: bool = True
    circuit_breaker: CircuitBreakerPolicy = field(default_factory=CircuitBreakerPolicy)

    def backoff_delay(self, retry_number: int, rand: Callable[[], float] = random.random) -> float:
        """Delay before retry ``retry_number`` (1-based).

        ``base * 2**(n-1)``, scaled into [0.5, 1.5) when jitter is on, capped at ``max_delay``.
        """
        delay = self.base_delay * (2 ** (retry_number - 1))
        if self.use_jitter:
            delay *= 0.5 + rand()
        return min(delay, self.max_delay)


class CircuitBreaker:
    """Failure-ratio circuit breaker over a sliding time window.

    Safe to share between concurrent requests; every state transition happens
    under a lock.
    """

    def __init__(
        self,
        name: str,
        policy: CircuitBreakerPolicy | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.policy = policy or CircuitBreakerPolicy()
        self._clock = clock
        self._lock = threading.Lock()
        self._samples: deque[tuple[float, bool]] = deque()
        self._state = CircuitState.CLOSED
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._current_state(self._clock())

    def _current_state(self, now: float) -> CircuitState:
        if self._state is CircuitState.OPEN and now - self._opened_at >= self.policy.break_duration:
            self._state = CircuitState.HALF_OPEN
            self._trial_in_flight = False
            log_with_context(
                logger,
                "info",
                "Circuit half-open, allowing a trial call",
                channel=self.name,
                event_type="circuit_half_open",
            )
        return self._state

    def before_call(self) -> None:
        """Admit a call or raise ``CircuitOpenError``.

        In the half-open state only one trial call is admitted at a time.
        """
        with self._lock:
            now = self._clock()
            state = self._current_state(now)
            if state is CircuitState.CLOSED:
                return
            if state is CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return
            retry_after = max(0.0, self._opened_at + self.policy.break_duration - now)

        raise CircuitOpenError(self.name, retry_after)

    def record_success(self) -> None:
        with self._lock:
            now = self._clock()
            if self._current_state(now) is CircuitState.HALF_OPEN:
                self._close()
                return
            self._add_sample(now, failed=False)

    def record_failure(self) -> None:
        with self._lock:
            now = self._clock()
            state = self._current_state(now)
            if state is CircuitState.HALF_OPEN:
                self._open(now)
                return
            if state is CircuitState.OPEN:
                return
            self._add_sample(now, failed=True)
            if self._should_open():
                self._open(now)

    def release_trial(self) -> None:
        """Give up a half-open trial without an outcome, e.g. on cancellation."""
        with self._lock:
            self._trial_in_flight = False

    def reset(self) -> None:
        with self._lock:
            self._close()

    def _add_sample(self, now: float, failed: bool) -> None:
        self._samples.append((now, failed))
        horizon = now - self.policy.sampling_duration
        while self._samples and self._samples[0][0] < horizon:
            self._samples.popleft()

    def _should_open(self) -> bool:
        total = len(self._samples)
        if total < self.policy.minimum_throughput:
            return False
        failures = sum(1 for _, failed in self._samples if failed)
        return failures / total >= self.policy.failure_ratio

    def _open(self, now: float) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = now
        self._trial_in_flight = False
        log_with_context(
            logger,
            "warning",
            "Circuit opened",
            channel=self.name,
            break_duration=self.policy.break_duration,
            samples=len(self._samples),
            event_type="circuit_open",
        )

    def _close(self) -> None:
        was_closed = self._state is CircuitState.CLOSED
        self._state = CircuitState.CLOSED
        self._samples.clear()
        self._trial_in_flight = False
        if not was_closed:
            log_with_context(
                logger,
                "info",
                "Circuit closed",
                channel=self.name,
                event_type="circuit_closed",
            )


class ResilientChannel:
    """One named outbound HTTP client with its resilience policy.

    ``sleep`` and ``rand`` are injectable so backoff can be tested without waiting.
    """

    def __init__(
        self,
        name: str,
        client: httpx.AsyncClient,
        policy: ResiliencePolicy | None = None,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ):
        self.name = name
        self.client = client
        self.policy = policy or ResiliencePolicy()
        self.breaker = breaker or CircuitBreaker(name, self.policy.circuit_breaker)
        self._sleep = sleep
        self._rand = rand

    async def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request under the channel's policy.

        Returns the first non-retryable response, or the last response when every
        attempt got a retryable status.

        Raises:
            CircuitOpenError: The circuit is open; no attempt was made
            TimeoutError: The overall deadline expired
            httpx.TransportError: The last attempt failed at transport level
            httpx.HTTPError: Any other request failure, raised on the attempt that hit it
        """
        async with asyncio.timeout(self.policy.total_timeout):
            return await self._send_with_retry(method, url, headers)

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        max_attempts = self.policy.max_attempts
        last_response: httpx.Response | None = None
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            self.breaker.before_call()
            try:
                response = await asyncio.wait_for(
                    self.client.request(method, url, headers=headers),
                    timeout=self.policy.attempt_timeout,
                )
            except (httpx.TransportError, TimeoutError) as e:
                self.breaker.record_failure()
                last_response, last_error = None, e
                outcome = type(e).__name__
            except asyncio.CancelledError:
                self.breaker.release_trial()
                raise
            except Exception:
                # Not retried, but a half-open trial must still be settled
                self.breaker.record_failure()
                raise
            else:
                if not is_retryable_status(response.status_code):
                    self.breaker.record_success()
                    return response
                self.breaker.record_failure()
                last_response, last_error = response, None
                outcome = f"HTTP {response.status_code}"

            if attempt < max_attempts:
                delay = self.policy.backoff_delay(attempt, self._rand)
                log_with_context(
                    logger,
                    "warning",
                    f"{self.name} request failed, retrying",
                    channel=self.name,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    backoff=round(delay, 3),
                    outcome=outcome,
                    event_type="upstream_retry",
                )
                await self._sleep(delay)

        log_with_context(
            logger,
            "error",
            f"{self.name} request failed after all attempts",
            channel=self.name,
            attempts=max_attempts,
            outcome=outcome,
            event_type="upstream_retry_exhausted",
        )
        if last_error is not None:
            raise last_error
        if last_response is None:
            raise RuntimeError(f"{self.name} request failed with no outcome recorded")
        return last_response

    async def aclose(self) -> None:
        await self.client.aclose()
