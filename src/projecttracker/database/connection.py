"""Database connection management for Project Tracker.

This module provides factory functions for creating SQLAlchemy async engines
and session factories for the two independent stores:

- the primary store (projects, developers, tasks), from DatabaseConfig
- the audit log store (audit entries), from AuditConfig

The two stores never share an engine, so an audit-store outage cannot affect
primary-store transactions.

Example usage:
    >>> from projecttracker.config import DatabaseConfig
    >>> from projecttracker.database.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(DatabaseConfig(url="postgresql+asyncpg://localhost/tracker"))
    >>> SessionFactory = get_session_factory(engine)
    >>>
    >>> async with SessionFactory() as session:
    ...     result = await session.execute(select(Project))
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from projecttracker.config import AuditConfig, DatabaseConfig
from projecttracker.database.models.audit import AuditBase
from projecttracker.database.models.base import Base


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine for the primary store.

    Connection pool sizing applies to server databases only; SQLite engines
    use the dialect's default pool.

    Args:
        config: Database configuration containing URL, pool settings,
                and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    if _is_sqlite(config.url):
        return create_async_engine(config.url, echo=config.echo)
    return create_async_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        echo=config.echo,
    )


def get_audit_engine(config: AuditConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine for the audit log store.

    Args:
        config: Audit store configuration.

    Returns:
        AsyncEngine bound to the audit store.
    """
    return create_async_engine(config.url, echo=config.echo)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions are created with expire_on_commit=False so attributes stay
    readable after commit without triggering lazy loads.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(primary_engine: AsyncEngine, audit_engine: AsyncEngine) -> None:
    """Create all tables in both stores if they do not exist.

    Args:
        primary_engine: Engine bound to the primary store.
        audit_engine: Engine bound to the audit log store.
    """
    async with primary_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with audit_engine.begin() as conn:
        await conn.run_sync(AuditBase.metadata.create_all)
