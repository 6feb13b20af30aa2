"""Circuit breaker for calls to the external search engine.

Only ``expected_exception`` counts as an outage. Any other exception means
the engine answered (e.g. it rejected a query), so it is treated like a
success for the breaker's bookkeeping and re-raised to the caller.

After ``recovery_timeout`` an open breaker admits exactly one probe call;
concurrent calls arriving while the probe is in flight are rejected as if
the breaker were still open.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, Union

import structlog

logger = structlog.get_logger("circuit_breaker")


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """Call rejected without reaching the service."""
    pass


class CircuitBreaker:
    """Consecutive-failure breaker for one async dependency.

    Parameters
    - failure_threshold: Consecutive outages before the breaker opens
    - recovery_timeout: Seconds an open breaker waits before probing
    - expected_exception: Exception type(s) counted as outages
    - name: Identifier for logs
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception: Union[Type[BaseException], Tuple[Type[BaseException], ...]] = Exception,
        name: str = "circuit_breaker"
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name

        self.state = CircuitBreakerState.CLOSED
        self.failure_count = 0
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def get_state(self) -> CircuitBreakerState:
        return self.state

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Await ``func(*args, **kwargs)`` unless the breaker rejects it.

        Raises ``CircuitBreakerError`` when open, or while a probe is running.
        """
        probe = await self._admit()
        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            await self._record(outage=True, probe=probe)
            raise
        except Exception:
            await self._record(outage=False, probe=probe)
            raise
        except BaseException:
            if probe:
                # Cancelled probe: no verdict, the next call probes again.
                self.state = CircuitBreakerState.OPEN
            raise

        await self._record(outage=False, probe=probe)
        return result

    async def _admit(self) -> bool:
        """Return ``True`` if this call is the half-open probe."""
        async with self._lock:
            if self.state == CircuitBreakerState.CLOSED:
                return False

            waited = time.monotonic() - (self._opened_at or 0.0)
            if self.state == CircuitBreakerState.OPEN and waited >= self.recovery_timeout:
                self.state = CircuitBreakerState.HALF_OPEN
                logger.info("Circuit breaker probing", name=self.name)
                return True

            logger.warning("Circuit breaker rejected call", name=self.name, state=self.state.value)
            raise CircuitBreakerError(f"Circuit breaker {self.name} is {self.state.value}")

    async def _record(self, outage: bool, probe: bool) -> None:
        async with self._lock:
            if not outage:
                if self.state != CircuitBreakerState.CLOSED:
                    logger.info("Circuit breaker closed", name=self.name)
                self.state = CircuitBreakerState.CLOSED
                self.failure_count = 0
                return

            self.failure_count += 1
            if probe or self.failure_count >= self.failure_threshold:
                self.state = CircuitBreakerState.OPEN
                self._opened_at = time.monotonic()
                logger.warning(
                    "Circuit breaker opened",
                    name=self.name,
                    failure_count=self.failure_count,
                    threshold=self.failure_threshold
                )
