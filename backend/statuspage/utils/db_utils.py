"""Database utility functions."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Substrings of driver errors worth another attempt
TRANSIENT_ERRORS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


async def retry_on_lock(coro_func: Callable[[], Awaitable[T]], max_retries: int = 3, base_delay: float = 0.1) -> T:
    """Retry a write on lock contention or a dropped connection, with exponential backoff.

    Args:
        coro_func: Async callable, e.g. `session.commit`
        max_retries: Maximum number of attempts
        base_delay: Delay in seconds before the second attempt (doubles each time)

    Raises:
        OperationalError/InterfaceError: non-transient errors at once, transient
        ones after the last attempt
    """
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            message = str(e).lower()
            if attempt == max_retries - 1 or not any(marker in message for marker in TRANSIENT_ERRORS):
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"Database transient error, retrying in {delay}s (attempt {attempt + 1}/{max_retries})")
            await asyncio.sleep(delay)
