"""
Base service class for the group leaderboard core.

Provides async database session management and retry logic for all service
layer operations.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable, Any, TYPE_CHECKING
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quraniq.utils.exceptions import ConnectivityError, ConstraintViolation, QuranIQException

if TYPE_CHECKING:
    from quraniq.context import ClientContext

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."

class BaseService:
    """Base class for all services with async database session management."""
    
    def __init__(self, session_factory):
        """
        Initialize base service with session factory.
        
        Args:
            session_factory: Async session factory from Database class
        """
        self.session_factory = session_factory
    
    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for async database operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise ConnectivityError("session", str(e)) from e
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
    
    async def execute_with_retry(self, func: Callable, max_retries: int = 3) -> Any:
        """Execute a function with automatic retry on store errors."""
        for attempt in range(max_retries):
            try:
                return await func()
            except ConnectivityError as e:
                if attempt == max_retries - 1:
                    raise
                logger.warning(f"Retry attempt {attempt + 1} for {func.__name__}: {e}")
                await asyncio.sleep(0.1 * (2 ** attempt))  # Exponential backoff
    
    def report_failure(self, ctx: "ClientContext", operation: str, error: Exception):
        """Log a failed public operation and queue the matching user message."""
        if isinstance(error, ConstraintViolation):
            logger.info(f"{operation} rejected: {error}")
            ctx.notify(error.user_message)
        elif isinstance(error, QuranIQException):
            logger.error(f"{operation} failed: {error}")
            ctx.notify(error.user_message)
        else:
            logger.error(f"{operation} failed: {error}", exc_info=True)
            ctx.notify(GENERIC_FAILURE_MESSAGE)
