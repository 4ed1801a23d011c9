"""Database helpers shared by the datastore."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Lowercased substrings of driver errors that are safe to retry
TRANSIENT_ERROR_MARKERS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_transient_error(error: Exception) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


async def retry_on_lock(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Run a datastore write, retrying lock and connection errors.

    Only OperationalError/InterfaceError whose text matches
    TRANSIENT_ERROR_MARKERS is retried: SQLite "database is locked" when
    several monitors commit at once, and dropped or refused PostgreSQL
    connections. Constraint violations and every other error propagate on
    the first attempt. The delay doubles after each failed attempt and the
    last transient error is raised once retries run out.
    """
    last_error = None
    for attempt in range(1, max_retries + 1):
        try:
            return await operation()
        except (OperationalError, InterfaceError) as e:
            if not is_transient_error(e):
                raise
            last_error = e
            if attempt == max_retries:
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(f"Transient database error, retrying in {delay}s (attempt {attempt}/{max_retries}): {e}")
            await asyncio.sleep(delay)
    raise last_error
