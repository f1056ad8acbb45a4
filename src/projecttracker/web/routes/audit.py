"""Audit log REST API endpoints for Project Tracker.

Read access to the audit trail plus the retention cleanup. Fixed paths
are registered before /{log_id} so they are not captured as IDs.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from projecttracker.audit.schemas import AuditLogSummary, AuditLogView, CleanupResult, SearchCriteria
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.queries.paging import PageRequest
from projecttracker.schemas import PageView
from projecttracker.services.container import ServiceContainer
from projecttracker.web.dependencies import get_actor, get_container, get_page_request


def get_search_criteria(
    entity_type: EntityType | None = Query(default=None, alias="entityType"),
    action_type: ActionType | None = Query(default=None, alias="actionType"),
    actor_name: str | None = Query(default=None, alias="actorName"),
    start: datetime | None = Query(default=None, alias="startDate"),
    end: datetime | None = Query(default=None, alias="endDate"),
) -> SearchCriteria:
    """Audit search filters from the query string."""
    return SearchCriteria(
        entity_type=entity_type,
        action_type=action_type,
        actor_name=actor_name,
        start=start,
        end=end,
    )


def create_audit_router() -> APIRouter:
    """Create audit log router.

    Routes:
        GET /api/audit-logs - List entry summaries
        GET /api/audit-logs/entity/{entity_type}/{entity_id} - History of one entity
        GET /api/audit-logs/date-range - Entries between two instants
        GET /api/audit-logs/recent - Entries from the last N days
        GET /api/audit-logs/search - Search within a time window
        DELETE /api/audit-logs/cleanup - Delete entries past retention
        GET /api/audit-logs/{log_id} - Get one entry with payload
    """
    router = APIRouter(prefix="/api/audit-logs", tags=["audit"])

    @router.get("", response_model=PageView[AuditLogSummary])
    async def list_logs(
        entity_type: EntityType | None = Query(default=None, alias="entityType"),
        action_type: ActionType | None = Query(default=None, alias="actionType"),
        actor_name: str | None = Query(default=None, alias="actorName"),
        page_request: PageRequest = Depends(get_page_request),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> PageView[AuditLogSummary]:
        page = await container.audit.list_logs(
            page_request,
            entity_type=entity_type,
            action_type=action_type,
            actor_name=actor_name,
        )
        return PageView[AuditLogSummary].from_page(page)

    @router.get("/entity/{entity_type}/{entity_id}", response_model=list[AuditLogView])
    async def logs_for_entity(
        entity_type: EntityType,
        entity_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[AuditLogView]:
        return await container.audit.logs_for_entity(entity_type, entity_id)

    @router.get("/date-range", response_model=list[AuditLogView])
    async def logs_between(
        start: datetime = Query(alias="startDate"),
        end: datetime = Query(alias="endDate"),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[AuditLogView]:
        return await container.audit.logs_between(start, end)

    @router.get("/recent", response_model=list[AuditLogView])
    async def recent_logs(
        days: int = Query(default=7, ge=0),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[AuditLogView]:
        return await container.audit.recent_logs(days)

    @router.get("/search", response_model=PageView[AuditLogSummary])
    async def search_logs(
        criteria: SearchCriteria = Depends(get_search_criteria),  # noqa: B008
        page_request: PageRequest = Depends(get_page_request),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> PageView[AuditLogSummary]:
        page = await container.audit.search(criteria, page_request)
        return PageView[AuditLogSummary].from_page(page)

    @router.delete("/cleanup", response_model=CleanupResult)
    async def cleanup(
        retention_days: int | None = Query(default=None, ge=0, alias="retentionDays"),
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> CleanupResult:
        return await container.audit.cleanup(retention_days, actor)

    @router.get("/{log_id}", response_model=AuditLogView)
    async def get_log(
        log_id: str,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> AuditLogView:
        return await container.audit.get_log(log_id)

    return router
