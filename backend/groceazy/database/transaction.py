"""
Transactional unit-of-work runner with bounded retry.

TransactionManager executes an async operation inside a single database
transaction on a fresh session. The operation either commits as a whole or is
rolled back as a whole. Conflicts reported by the storage layer as transient
(serialization failures, deadlocks, locked SQLite files) re-run the operation
from scratch a bounded number of times before the failure is surfaced.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# SQLSTATE codes PostgreSQL uses for conflicts that succeed on retry
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})
TRANSIENT_MESSAGES = ("database is locked", "database table is locked")


class TransactionRetryExhaustedError(Exception):
    """Raised when a transient conflict persists past the attempt budget."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


def is_transient_error(exc: BaseException) -> bool:
    """
    Decide whether a database error is worth retrying.

    Args:
        exc: Exception raised while running the transaction

    Returns:
        True for serialization failures, deadlocks and SQLite lock contention
    """
    if not isinstance(exc, DBAPIError):
        return False

    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in TRANSIENT_SQLSTATES:
        return True

    message = str(orig).lower()
    return any(fragment in message for fragment in TRANSIENT_MESSAGES)


class TransactionManager:
    """
    Run async operations as atomic, retryable database transactions.

    Constructed once at startup with the process session factory and handed to
    every component that needs multi-row atomic writes.

    Example:
        >>> tx = TransactionManager(get_session_factory())
        >>> order = await tx.run(lambda session: place(session), name="place_order")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: Optional[int] = None,
        retry_backoff: Optional[float] = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.max_attempts = (
            settings.transaction_max_attempts if max_attempts is None else max_attempts
        )
        self.retry_backoff = (
            settings.transaction_retry_backoff if retry_backoff is None else retry_backoff
        )
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def run(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        *,
        name: str = "transaction",
    ) -> T:
        """
        Execute operation within one transaction, retrying transient conflicts.

        Args:
            operation: Coroutine function receiving the transactional session
            name: Operation name used in log events

        Returns:
            Whatever operation returned, after a successful commit

        Raises:
            TransactionRetryExhaustedError: If every attempt hit a transient conflict
            Exception: Any non-transient error raised by operation, unchanged
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        result = await operation(session)
                if attempt > 1:
                    logger.info(
                        "Transaction succeeded after retry",
                        operation=name,
                        attempt=attempt,
                    )
                return result
            except DBAPIError as e:
                if not is_transient_error(e):
                    raise
                last_error = e
                logger.warning(
                    "Transient transaction conflict",
                    operation=name,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    error=str(e.orig),
                )
                if attempt < self.max_attempts and self.retry_backoff:
                    await asyncio.sleep(self.retry_backoff * (2 ** (attempt - 1)))

        logger.error(
            "Transaction retries exhausted",
            operation=name,
            max_attempts=self.max_attempts,
            error=str(last_error),
        )
        raise TransactionRetryExhaustedError(
            f"Operation {name} failed after {self.max_attempts} attempts",
            operation=name,
            attempts=self.max_attempts,
        ) from last_error
