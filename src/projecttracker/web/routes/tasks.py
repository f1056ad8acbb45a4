"""Task REST API endpoints for Project Tracker.

Provides FastAPI routes for task CRUD, assignment, and bulk operations.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi import status as http_status

from projecttracker.database.models.task import TaskStatus
from projecttracker.database.queries.paging import PageRequest
from projecttracker.schemas import CamelModel, PageView
from projecttracker.services.container import ServiceContainer
from projecttracker.services.schemas import BulkTaskUpdate, TaskCreate, TaskCriteria, TaskUpdate, TaskView
from projecttracker.web.dependencies import get_actor, get_container, get_page_request


# --- Request/Response Schemas ---


class BulkAssignRequest(CamelModel):
    """Request schema for assigning many tasks to one developer."""

    task_ids: list[int]
    developer_id: int


class BulkStatusRequest(CamelModel):
    """Request schema for setting the status of every task in a project."""

    project_id: int
    status: TaskStatus


class BulkUpdateRequest(CamelModel):
    """Request schema for applying one partial update to many tasks."""

    task_ids: list[int]
    update: BulkTaskUpdate


class BulkCountResponse(CamelModel):
    """Number of tasks changed by a set-based bulk operation."""

    updated_count: int


def get_task_criteria(
    project_id: int | None = Query(default=None, alias="projectId"),
    developer_id: int | None = Query(default=None, alias="developerId"),
    status: TaskStatus | None = None,
    title: str | None = None,
    unassigned_only: bool = Query(default=False, alias="unassignedOnly"),
) -> TaskCriteria:
    """Task search filters from the query string."""
    return TaskCriteria(
        project_id=project_id,
        developer_id=developer_id,
        status=status,
        title=title,
        unassigned_only=unassigned_only,
    )


def create_tasks_router() -> APIRouter:
    """Create tasks router.

    Routes:
        GET /api/tasks - Find tasks by criteria
        GET /api/tasks/overdue - Incomplete tasks past their due date
        GET /api/tasks/due-within - Incomplete tasks due in the next N days
        GET /api/tasks/{task_id} - Get task
        POST /api/tasks - Create task
        PUT /api/tasks/{task_id} - Update task (partial)
        DELETE /api/tasks/{task_id} - Delete task
        PUT /api/tasks/{task_id}/assign/{developer_id} - Assign task
        PUT /api/tasks/{task_id}/unassign - Unassign task
        POST /api/tasks/bulk-assign - Assign many tasks to one developer
        POST /api/tasks/bulk-status - Set status for all tasks of a project
        POST /api/tasks/bulk-update - Apply one update to many tasks
    """
    router = APIRouter(prefix="/api/tasks", tags=["tasks"])

    @router.get("", response_model=PageView[TaskView])
    async def find_tasks(
        criteria: TaskCriteria = Depends(get_task_criteria),  # noqa: B008
        page_request: PageRequest = Depends(get_page_request),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> PageView[TaskView]:
        page = await container.tasks.find_tasks(criteria, page_request)
        return PageView[TaskView].from_page(page)

    @router.get("/overdue", response_model=list[TaskView])
    async def overdue_tasks(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[TaskView]:
        return await container.tasks.overdue_tasks()

    @router.get("/due-within", response_model=list[TaskView])
    async def tasks_due_within(
        days: int = Query(default=7, ge=0),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[TaskView]:
        return await container.tasks.tasks_due_within(days)

    @router.post("/bulk-assign", response_model=BulkCountResponse)
    async def bulk_assign(
        data: BulkAssignRequest,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> BulkCountResponse:
        updated = await container.bulk.bulk_assign(data.task_ids, data.developer_id, actor)
        return BulkCountResponse(updated_count=updated)

    @router.post("/bulk-status", response_model=BulkCountResponse)
    async def bulk_update_status(
        data: BulkStatusRequest,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> BulkCountResponse:
        updated = await container.bulk.bulk_update_status(data.project_id, data.status, actor)
        return BulkCountResponse(updated_count=updated)

    @router.post("/bulk-update", response_model=list[TaskView])
    async def bulk_update(
        data: BulkUpdateRequest,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[TaskView]:
        return await container.bulk.bulk_update(data.task_ids, data.update, actor)

    @router.get("/{task_id}", response_model=TaskView)
    async def get_task(
        task_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> TaskView:
        return await container.tasks.get_task(task_id)

    @router.post("", response_model=TaskView, status_code=http_status.HTTP_201_CREATED)
    async def create_task(
        data: TaskCreate,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> TaskView:
        return await container.tasks.create_task(data, actor)

    @router.put("/{task_id}", response_model=TaskView)
    async def update_task(
        task_id: int,
        data: TaskUpdate,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> TaskView:
        return await container.tasks.update_task(task_id, data, actor)

    @router.delete("/{task_id}", status_code=http_status.HTTP_204_NO_CONTENT)
    async def delete_task(
        task_id: int,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> Response:
        await container.tasks.delete_task(task_id, actor)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    @router.put("/{task_id}/assign/{developer_id}", response_model=TaskView)
    async def assign_task(
        task_id: int,
        developer_id: int,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> TaskView:
        return await container.tasks.assign_task(task_id, developer_id, actor)

    @router.put("/{task_id}/unassign", response_model=TaskView)
    async def unassign_task(
        task_id: int,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> TaskView:
        return await container.tasks.unassign_task(task_id, actor)

    return router
