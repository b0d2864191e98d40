import logging
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from functools import wraps
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import get_db_session
from exceptions.cart import CartChangedException
from exceptions.order import OrderVersionConflictException

logger = logging.getLogger(__name__)


class TransactionManager:
    """
    Utility class for managing database transactions with rollback
    mechanisms and retry logic for race condition handling.

    All cross-request coordination (stock, coupon usage, order numbers,
    status writes) happens through conditional statements inside these
    transactions, never through in-process locks.
    """

    # Transaction timeout in seconds (lock wait on backends that support it)
    TRANSACTION_TIMEOUT = 30

    # Retry configuration
    MAX_RETRIES = config.TRANSACTION_MAX_RETRIES
    RETRY_DELAY_BASE = 0.05  # Base delay in seconds

    # Transient failures worth another attempt: lock contention, unique
    # constraint races (order numbers), lost optimistic updates and carts
    # modified while being checked out
    RETRYABLE_EXCEPTIONS = (OperationalError, IntegrityError, OrderVersionConflictException, CartChangedException)

    @staticmethod
    @asynccontextmanager
    async def atomic_transaction(timeout: Optional[int] = None) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for atomic database transactions.

        Commits when the block exits normally, rolls back on any exception
        so partial writes are never observable.

        Usage:
            async with TransactionManager.atomic_transaction() as session:
                await session.execute(...)
        """
        timeout = timeout or TransactionManager.TRANSACTION_TIMEOUT

        async with get_db_session() as session:
            try:
                bind = session.bind
                if bind is not None and bind.dialect.name == "postgresql":
                    await session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout)}s'"))

                transaction_start = datetime.now()
                logger.debug(f"Transaction started at {transaction_start}")

                yield session

                duration = (datetime.now() - transaction_start).total_seconds()
                if duration > timeout:
                    logger.warning(f"Transaction exceeded timeout: {duration:.2f}s > {timeout}s")

                await session.commit()
                logger.debug(f"Transaction committed successfully in {duration:.2f}s")

            except BaseException as e:
                # BaseException: a cancelled request must roll back too
                try:
                    await session.rollback()
                    logger.info(f"Transaction rolled back due to error: {type(e).__name__}: {e}")
                except Exception as rollback_error:
                    logger.critical(f"Failed to rollback transaction: {str(rollback_error)}")
                raise

    @staticmethod
    def with_retry(max_retries: Optional[int] = None, delay_base: Optional[float] = None):
        """
        Decorator for automatic retry of database operations with exponential backoff.

        Only RETRYABLE_EXCEPTIONS trigger another attempt; business errors
        (insufficient stock, coupon errors, ...) propagate immediately.

        Args:
            max_retries: Maximum number of retry attempts
            delay_base: Base delay for exponential backoff
        """
        max_retries = TransactionManager.MAX_RETRIES if max_retries is None else max_retries
        delay_base = TransactionManager.RETRY_DELAY_BASE if delay_base is None else delay_base

        def decorator(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                last_exception = None

                for attempt in range(max_retries + 1):
                    try:
                        return await func(*args, **kwargs)
                    except TransactionManager.RETRYABLE_EXCEPTIONS as e:
                        last_exception = e

                        if attempt == max_retries:
                            logger.error(f"Function {func.__name__} failed after {max_retries} retries: {str(e)}")
                            break

                        # Exponential backoff with jitter
                        delay = delay_base * (2 ** attempt) + (delay_base * 0.1 * attempt)
                        logger.warning(f"Attempt {attempt + 1} failed for {func.__name__}, retrying in {delay:.2f}s: {str(e)}")
                        await asyncio.sleep(delay)

                raise last_exception

            return wrapper
        return decorator
