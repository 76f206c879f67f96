"""
Circuit breaker for ledger database access.

Every unit of database work in the services runs through ``db_circuit_breaker``.
After ``failure_threshold`` consecutive driver errors the breaker opens and
calls are refused until ``recovery_timeout`` has passed; the next call is then
let through as a probe. A successful probe closes the breaker, a failed one
opens it again.

Only ``expected_exception`` counts as a failure. Ledger errors (bad amounts,
missing rows, forbidden transitions) are caller mistakes, not an unhealthy
database, and pass straight through.
"""
import asyncio
import time
from enum import Enum
from typing import Any, Callable, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
import structlog

logger = structlog.get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """Raised instead of calling through while the breaker is open"""


class CircuitBreaker:

    def __init__(self, name: str, failure_threshold: int = 5, recovery_timeout: float = 30.0,
                 expected_exception: Type[BaseException] = Exception):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.reset()

    def reset(self):
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    def _set_state(self, state: CircuitState, **log_fields):
        if state is self.state:
            return
        logger.warning("Circuit breaker state changed", breaker=self.name,
                       old_state=self.state.value, new_state=state.value, **log_fields)
        self.state = state

    def _allow(self) -> bool:
        if self.state is CircuitState.OPEN:
            if time.monotonic() - self.opened_at < self.recovery_timeout:
                return False
            self._set_state(CircuitState.HALF_OPEN)
        return True

    def record_success(self):
        self.failure_count = 0
        self.opened_at = None
        self._set_state(CircuitState.CLOSED)

    def record_failure(self, error: BaseException):
        self.failure_count += 1
        if self.state is CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.opened_at = time.monotonic()
            self._set_state(CircuitState.OPEN, failure_count=self.failure_count, error=str(error))

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        """Run ``func`` (sync or async) unless the breaker is open"""
        if not self._allow():
            raise CircuitBreakerError(f"{self.name} circuit is open")

        try:
            result = func(*args, **kwargs)
            if asyncio.iscoroutine(result):
                result = await result
        except self.expected_exception as e:
            self.record_failure(e)
            raise

        self.record_success()
        return result

    def snapshot(self) -> dict:
        """State for the readiness probe"""
        retry_in = None
        if self.state is CircuitState.OPEN:
            retry_in = max(self.recovery_timeout - (time.monotonic() - self.opened_at), 0.0)
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "retry_in_seconds": retry_in,
        }


db_circuit_breaker = CircuitBreaker(
    "ledger-db",
    failure_threshold=5,
    recovery_timeout=30.0,
    expected_exception=SQLAlchemyError,
)
