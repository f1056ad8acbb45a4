"""Wiring of engines, cache, audit recorder and services.

The web app and the CLI both build one ServiceContainer per process. Tests
build one over in-memory engines.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from projecttracker.audit.recorder import AuditRecorder, Clock
from projecttracker.audit.service import AuditLogService
from projecttracker.cache import EntityCache, build_cache
from projecttracker.config import ProjectTrackerConfig
from projecttracker.database.connection import get_audit_engine, get_engine, get_session_factory
from projecttracker.database.models.base import utcnow
from projecttracker.services.bulk import BulkCoordinator
from projecttracker.services.developer import DeveloperService
from projecttracker.services.project import ProjectService
from projecttracker.services.statistics import StatisticsAggregator
from projecttracker.services.task import TaskService

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Every long-lived collaborator of one running process."""

    engine: AsyncEngine
    audit_engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    audit_session_factory: async_sessionmaker[AsyncSession]
    cache: EntityCache
    recorder: AuditRecorder
    projects: ProjectService
    developers: DeveloperService
    tasks: TaskService
    bulk: BulkCoordinator
    audit: AuditLogService
    statistics: StatisticsAggregator

    async def ping(self) -> dict[str, bool]:
        """Check connectivity to both stores."""
        results = {}
        for name, engine in (("database", self.engine), ("audit", self.audit_engine)):
            try:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                results[name] = True
            except Exception as e:
                logger.warning("store_ping_failed", store=name, error=str(e))
                results[name] = False
        return results

    async def close(self) -> None:
        """Wait for pending audit writes, then dispose both engines."""
        await self.recorder.drain()
        await self.engine.dispose()
        await self.audit_engine.dispose()


def build_container(
    config: ProjectTrackerConfig,
    engine: AsyncEngine | None = None,
    audit_engine: AsyncEngine | None = None,
    clock: Clock = utcnow,
) -> ServiceContainer:
    """Create engines (unless given) and every service.

    Args:
        config: Root configuration.
        engine: Primary-store engine to use instead of creating one.
        audit_engine: Audit-store engine to use instead of creating one.
        clock: Source of "now" for all services.
    """
    engine = engine or get_engine(config.database)
    audit_engine = audit_engine or get_audit_engine(config.audit)
    session_factory = get_session_factory(engine)
    audit_session_factory = get_session_factory(audit_engine)

    cache = build_cache(config.cache)
    recorder = AuditRecorder(
        audit_session_factory,
        background=config.audit.background_writes,
        clock=clock,
    )
    tasks = TaskService(session_factory, cache, recorder, clock)

    logger.debug(
        "services_built",
        cache_enabled=config.cache.enabled,
        background_audit=config.audit.background_writes,
    )
    return ServiceContainer(
        engine=engine,
        audit_engine=audit_engine,
        session_factory=session_factory,
        audit_session_factory=audit_session_factory,
        cache=cache,
        recorder=recorder,
        projects=ProjectService(session_factory, cache, recorder, clock),
        developers=DeveloperService(session_factory, cache, recorder, clock),
        tasks=tasks,
        bulk=BulkCoordinator(session_factory, cache, recorder, tasks, clock),
        audit=AuditLogService(audit_session_factory, config.audit, clock),
        statistics=StatisticsAggregator(session_factory, audit_session_factory, clock),
    )
