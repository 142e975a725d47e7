"""Relational store with async SQLAlchemy.

Handles:
- Database session management
- Connection pooling
- Error wrapping for data-access code
- Schema bootstrap for development/testing

A `Database` is constructed explicitly (app lifespan, scripts, tests) and
passed to every store; there is no module-level engine.
"""

from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager
import logging

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from storefront.errors import ConflictError, PersistenceError
from storefront.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class Database:
    """Engine + session factory pair handed to stores."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Database":
        """Build a pooled PostgreSQL handle from application settings."""
        settings = settings or get_settings()
        engine = create_async_engine(
            settings.async_database_url,
            echo=settings.debug,
            connect_args=settings.asyncpg_connect_args,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
        return cls(engine)

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: object) -> "Database":
        """Build a handle for an arbitrary URL (scripts, tests)."""
        return cls(create_async_engine(url, **engine_kwargs))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get database session context manager.

        Commits on clean exit, rolls back on any exception.

        Usage:
            async with db.session() as session:
                result = await session.execute(query)
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Round-trip a trivial statement to validate connectivity."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create all tables (for development/testing only)."""
        # Register every model on Base.metadata before create_all.
        import storefront.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables (for testing only)."""
        import storefront.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close database connection pool."""
        await self.engine.dispose()


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for duplicate-key errors (PostgreSQL 23505 / SQLite UNIQUE)."""
    if getattr(exc.orig, "sqlstate", None) == "23505":
        return True
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


@contextmanager
def persistence_errors(operation: str, entity_id: object = None) -> Iterator[None]:
    """Wrap SQLAlchemy failures raised inside the block.

    Duplicate-key violations become ConflictError; everything else becomes
    PersistenceError carrying the operation name and entity id.

    Usage:
        with persistence_errors("update variant", variant_id):
            async with db.session() as session:
                ...
    """
    try:
        yield
    except IntegrityError as e:
        if is_unique_violation(e):
            raise ConflictError(f"{operation}: duplicate value", code="DUPLICATE") from e
        logger.exception(f"[db] {operation} failed id={entity_id}")
        raise PersistenceError(operation, entity_id=entity_id, cause=e) from e
    except SQLAlchemyError as e:
        logger.exception(f"[db] {operation} failed id={entity_id}")
        raise PersistenceError(operation, entity_id=entity_id, cause=e) from e
