"""Pytest fixtures for integration tests.

Provides two independent in-memory SQLite stores (primary and audit), a
service container wired to them, and an HTTP client for the FastAPI app.
Production runs on PostgreSQL; SQLite keeps these tests fast and isolated.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from projecttracker.audit.schemas import AuditLogView
from projecttracker.config import ProjectTrackerConfig
from projecttracker.database.connection import create_schema, get_session_factory
from projecttracker.services.container import ServiceContainer, build_container
from projecttracker.services.schemas import (
    DeveloperCreate,
    DeveloperView,
    ProjectCreate,
    ProjectView,
    TaskCreate,
    TaskView,
)
from projecttracker.web.app import create_app

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable source of "now" shared by every service.

    Each reading advances the clock by tick so audit entries written in
    sequence get distinct, ordered timestamps. Set tick to zero to freeze it.
    """

    def __init__(self, now: datetime = NOW, tick: timedelta = timedelta(milliseconds=1)) -> None:
        self.now = now
        self.tick = tick

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.tick
        return current

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _memory_engine() -> AsyncEngine:
    # One shared connection so every session sees the same in-memory database
    return create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_config() -> ProjectTrackerConfig:
    return ProjectTrackerConfig()


@pytest_asyncio.fixture
async def engines() -> AsyncGenerator[tuple[AsyncEngine, AsyncEngine], None]:
    """Create the primary and audit engines with their schemas."""
    primary = _memory_engine()
    audit = _memory_engine()
    await create_schema(primary, audit)

    yield primary, audit

    await primary.dispose()
    await audit.dispose()


@pytest_asyncio.fixture
async def container(
    test_config: ProjectTrackerConfig,
    engines: tuple[AsyncEngine, AsyncEngine],
    clock: FakeClock,
) -> AsyncGenerator[ServiceContainer, None]:
    """Service container bound to the test stores."""
    primary, audit = engines
    services = build_container(test_config, engine=primary, audit_engine=audit, clock=clock)

    yield services

    await services.recorder.drain()


@pytest_asyncio.fixture
async def async_client(
    test_config: ProjectTrackerConfig,
    container: ServiceContainer,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing the FastAPI app."""
    app = create_app(test_config, container=container)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# --- Factories ---


@pytest.fixture
def make_project(container: ServiceContainer, clock: FakeClock) -> Callable[..., Awaitable[ProjectView]]:
    """Create a project through the service; deadline defaults to 30 days out."""

    async def factory(name: str = "Apollo", actor: str | None = None, **fields: Any) -> ProjectView:
        fields.setdefault("deadline", clock.now + timedelta(days=30))
        return await container.projects.create_project(ProjectCreate(name=name, **fields), actor)

    return factory


@pytest.fixture
def make_developer(container: ServiceContainer) -> Callable[..., Awaitable[DeveloperView]]:
    """Create a developer through the service; email derives from the name."""

    async def factory(name: str = "Ada", actor: str | None = None, **fields: Any) -> DeveloperView:
        fields.setdefault("email", f"{name.lower()}@example.com")
        return await container.developers.create_developer(DeveloperCreate(name=name, **fields), actor)

    return factory


@pytest.fixture
def make_task(container: ServiceContainer) -> Callable[..., Awaitable[TaskView]]:
    """Create a task in a project through the service."""

    async def factory(project_id: int, title: str = "Write docs", actor: str | None = None, **fields: Any) -> TaskView:
        return await container.tasks.create_task(TaskCreate(title=title, project_id=project_id, **fields), actor)

    return factory


@pytest.fixture
def audit_entries(container: ServiceContainer) -> Callable[[], Awaitable[list[AuditLogView]]]:
    """Return every audit entry, oldest first."""

    async def fetch() -> list[AuditLogView]:
        await container.recorder.drain()
        entries = await container.audit.logs_between(
            datetime(2000, 1, 1, tzinfo=timezone.utc),
            datetime(2100, 1, 1, tzinfo=timezone.utc),
        )
        return sorted(entries, key=lambda entry: entry.timestamp)

    return fetch


@pytest_asyncio.fixture
async def db_session(engines: tuple[AsyncEngine, AsyncEngine]) -> AsyncGenerator[AsyncSession, None]:
    """Session on the primary store for query-level tests."""
    primary, _ = engines
    async with get_session_factory(primary)() as session:
        yield session


@pytest_asyncio.fixture
async def audit_session(engines: tuple[AsyncEngine, AsyncEngine]) -> AsyncGenerator[AsyncSession, None]:
    """Session on the audit store for query-level tests."""
    _, audit = engines
    async with get_session_factory(audit)() as session:
        yield session
