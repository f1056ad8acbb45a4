"""Statistics REST API endpoints for Project Tracker.

Every endpoint returns an unpaginated label-to-count mapping computed at
query time.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from projecttracker.services.container import ServiceContainer
from projecttracker.web.dependencies import get_container


def create_statistics_router() -> APIRouter:
    """Create statistics router.

    Routes:
        GET /api/statistics/audit - Audit totals overall and for 7/30 days
        GET /api/statistics/audit/entity-types - Entries per entity type
        GET /api/statistics/audit/action-types - Entries per action type
        GET /api/statistics/audit/actors - Entries per actor
        GET /api/statistics/tasks - Tasks per status plus totals
        GET /api/statistics/tasks/project/{project_id} - A project's tasks per status
        GET /api/statistics/tasks/developer/{developer_id} - A developer's tasks per status
        GET /api/statistics/projects - Projects per status
        GET /api/statistics/developers/load - Developers by assigned task count
        GET /api/statistics/skills - Developers per skill
    """
    router = APIRouter(prefix="/api/statistics", tags=["statistics"])

    @router.get("/audit")
    async def audit_overview(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.audit_overview()

    @router.get("/audit/entity-types")
    async def entity_type_counts(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.entity_type_counts()

    @router.get("/audit/action-types")
    async def action_type_counts(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.action_type_counts()

    @router.get("/audit/actors")
    async def actor_counts(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.actor_counts()

    @router.get("/tasks")
    async def task_status_overall(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.task_status_overall()

    @router.get("/tasks/project/{project_id}")
    async def task_status_by_project(
        project_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.task_status_by_project(project_id)

    @router.get("/tasks/developer/{developer_id}")
    async def task_status_by_developer(
        developer_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.task_status_by_developer(developer_id)

    @router.get("/projects")
    async def project_status_counts(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.project_status_counts()

    @router.get("/developers/load")
    async def developer_task_load(
        limit: int | None = Query(default=None, ge=1),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[dict[str, Any]]:
        return await container.statistics.developer_task_load(limit)

    @router.get("/skills")
    async def skill_counts(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, int]:
        return await container.statistics.skill_counts()

    return router
