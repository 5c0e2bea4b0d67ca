"""Database Session Manager — owns the async engine and translates driver failures.

Invariants:
    - A session that raises is rolled back before the error leaves session()
    - Unique/foreign-key violations raise ConstraintViolation; the record store
      turns them into conflicts (409) where a conflict is meaningful
    - Any other SQLAlchemy failure raises StorageUnavailableError (500)

Design Decisions:
    - The manager is created in the FastAPI lifespan and kept on app.state.db;
      there is no module-level instance
    - expire_on_commit=False: rows stay readable after commit in async code
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from parley.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class ConstraintViolation(StorageUnavailableError):
    """A write broke a unique or foreign-key constraint.

    Subclasses StorageUnavailableError so a violation nobody translates still
    surfaces as a storage failure.
    """

    def __init__(self, detail: str):
        super().__init__(detail, "constraint")


class DatabaseSessionManager:
    """Hands out sessions bound to one engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )

    @classmethod
    def from_url(
        cls, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ) -> "DatabaseSessionManager":
        options = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        return cls(create_async_engine(database_url, **options))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.info(f"DB constraint violated: {e.orig}")
            raise ConstraintViolation(str(e.orig))
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"DB failure ({type(e).__name__}): {e}")
            raise StorageUnavailableError(str(e), type(e).__name__)
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips (readiness probe)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except (StorageUnavailableError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()
