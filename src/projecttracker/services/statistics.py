"""Query-time statistics over the primary store and the audit log.

Nothing is maintained incrementally: every figure is computed by a grouped
query when asked for. Figures from separate queries are not taken from one
snapshot, so they may disagree slightly under concurrent writes.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from projecttracker.audit.recorder import Clock
from projecttracker.database.models.base import utcnow
from projecttracker.database.models.project import ProjectStatus
from projecttracker.database.models.task import TaskStatus
from projecttracker.database.queries import audit as audit_queries
from projecttracker.database.queries import developer as developer_queries
from projecttracker.database.queries import project as project_queries
from projecttracker.database.queries import task as task_queries
from projecttracker.errors import NotFoundError

logger = structlog.get_logger(__name__)


class StatisticsAggregator:
    """Computes label-to-count mappings for dashboards and reports.

    Args:
        session_factory: Session factory bound to the primary engine.
        audit_session_factory: Session factory bound to the audit engine.
        clock: Source of "now".
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit_session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._audit_session_factory = audit_session_factory
        self._clock = clock

    # --- Audit log ---

    async def audit_overview(self) -> dict[str, int]:
        """Total entries and entries recorded in the last 7 and 30 days."""
        now = self._clock()
        async with self._audit_session_factory() as session:
            return {
                "totalLogs": await audit_queries.count_entries(session),
                "recentLogs7Days": await audit_queries.count_entries(session, now - timedelta(days=7)),
                "recentLogs30Days": await audit_queries.count_entries(session, now - timedelta(days=30)),
            }

    async def entity_type_counts(self) -> dict[str, int]:
        async with self._audit_session_factory() as session:
            return await audit_queries.count_by_entity_type(session)

    async def action_type_counts(self) -> dict[str, int]:
        async with self._audit_session_factory() as session:
            return await audit_queries.count_by_action_type(session)

    async def actor_counts(self) -> dict[str, int]:
        async with self._audit_session_factory() as session:
            return await audit_queries.count_by_actor(session)

    # --- Tasks ---

    async def task_status_overall(self) -> dict[str, int]:
        """Count per status (zero-filled) plus TOTAL, UNASSIGNED and OVERDUE."""
        async with self._session_factory() as session:
            counts = await task_queries.status_counts(session)
            unassigned = await task_queries.count_unassigned(session)
            overdue = await task_queries.count_overdue(session, self._clock())

        result = {status.value: counts.get(status.value, 0) for status in TaskStatus}
        result["TOTAL"] = sum(counts.values())
        result["UNASSIGNED"] = unassigned
        result["OVERDUE"] = overdue
        return result

    async def task_status_by_project(self, project_id: int) -> dict[str, int]:
        """Count a project's tasks per status; only statuses present appear.

        Raises:
            NotFoundError: If the project does not exist.
        """
        async with self._session_factory() as session:
            if not await project_queries.project_exists(session, project_id):
                raise NotFoundError("Project", project_id)
            return await task_queries.status_counts(session, project_id=project_id)

    async def task_status_by_developer(self, developer_id: int) -> dict[str, int]:
        """Count a developer's assigned tasks per status; only statuses present appear.

        Raises:
            NotFoundError: If the developer does not exist.
        """
        async with self._session_factory() as session:
            if not await developer_queries.developer_exists(session, developer_id):
                raise NotFoundError("Developer", developer_id)
            return await task_queries.status_counts(session, developer_id=developer_id)

    # --- Projects and developers ---

    async def project_status_counts(self) -> dict[str, int]:
        """Count projects per status (zero-filled)."""
        async with self._session_factory() as session:
            counts = await project_queries.project_status_counts(session)
        return {status.value: counts.get(status.value, 0) for status in ProjectStatus}

    async def developer_task_load(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Developers ranked by assigned task count, busiest first."""
        async with self._session_factory() as session:
            return await developer_queries.developer_task_load(session, limit=limit)

    async def skill_counts(self) -> dict[str, int]:
        """Number of developers per normalized skill."""
        async with self._session_factory() as session:
            return await developer_queries.skill_counts(session)
