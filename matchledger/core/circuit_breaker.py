"""
Circuit breaker for the hosted storage backend.

Uses the pybreaker library. When the backend keeps failing the breaker
opens and calls fail immediately with ``CircuitBreakerError``; the
fallback store then serves those operations without waiting on timeouts.

Circuit Breaker States:
- CLOSED: Requests pass through normally
- OPEN: Requests fail immediately (after fail_max failures)
- HALF_OPEN: One request allowed to test if the backend has recovered
"""
from pybreaker import CircuitBreaker, CircuitBreakerError

from matchledger.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FAIL_MAX = 5
DEFAULT_RESET_TIMEOUT = 60


def create_backend_breaker(
    fail_max: int = DEFAULT_FAIL_MAX,
    reset_timeout: int = DEFAULT_RESET_TIMEOUT,
    name: str = "hosted_backend",
) -> CircuitBreaker:
    """Create a breaker for one backend client."""
    return CircuitBreaker(fail_max=fail_max, reset_timeout=reset_timeout, name=name)


backend_breaker = create_backend_breaker()


def get_breaker_state(breaker: CircuitBreaker) -> str:
    """Return 'closed', 'open' or 'half-open'."""
    return breaker.current_state


def reset_breaker(breaker: CircuitBreaker) -> None:
    """
    Manually reset a circuit breaker to closed state.

    Only reset if you know the backend has recovered.
    """
    breaker.close()
    logger.warning(f"Circuit breaker '{breaker.name}' manually reset to CLOSED state")


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerError",
    "backend_breaker",
    "create_backend_breaker",
    "get_breaker_state",
    "reset_breaker",
]
