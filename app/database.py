"""
Postify Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   A `Database` object owns the engine and session factory. The app
       factory constructs one and stores it on `app.state.database`; the
       session dependency reads it from the incoming request. Sessions
       auto-commit on success and auto-roll-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Database is created once per app; sessions are created per-request.

Connection Pooling Strategy (server databases only):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite (tests, local runs) uses SQLAlchemy's default pool for the
    driver, so none of the above is passed.
"""

import logging
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share a single metadata
    object, which `Database.create_all()` uses to create the schema.
    """
    pass


class Database:
    """
    Owns the async engine and session factory for one application instance.

    Example:
        database = Database(settings)
        await database.create_all()
        async with database.session_factory() as session:
            ...
        await database.dispose()
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.url = config.database_url

        engine_kwargs: Dict[str, Any] = {
            "echo": config.log_level == "DEBUG",
        }
        if not config.is_sqlite:
            engine_kwargs.update(
                pool_size=config.db_pool_size,
                max_overflow=config.db_max_overflow,
                pool_pre_ping=config.db_pool_pre_ping,
                pool_recycle=3600,
            )

        self.engine: AsyncEngine = create_async_engine(self.url, **engine_kwargs)

        # expire_on_commit=False: response models are built from ORM objects
        # after the service returns, without triggering lazy loads
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create all tables that don't exist yet."""
        # Register models with Base.metadata before creating tables
        from app.models import post, user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")

    async def ping(self) -> bool:
        """Run SELECT 1; returns False if the database is unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Gracefully closes all connections in the pool."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the app's Database handle."""
    return request.app.state.database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the app's session factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/posts")
        async def list_posts(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database = get_database(request)
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise  # Re-raise so the global error handler can respond appropriately
        finally:
            await session.close()
