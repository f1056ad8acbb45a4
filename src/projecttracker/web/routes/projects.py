"""Project REST API endpoints for Project Tracker.

Provides FastAPI routes for creating, reading, updating, deleting and
searching projects. Request and response bodies use camelCase.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi import status as http_status

from projecttracker.database.models.project import ProjectStatus
from projecttracker.database.queries.paging import PageRequest
from projecttracker.schemas import PageView
from projecttracker.services.container import ServiceContainer
from projecttracker.services.schemas import ProjectCreate, ProjectDetailView, ProjectUpdate, ProjectView
from projecttracker.web.dependencies import get_actor, get_container, get_page_request


def create_projects_router() -> APIRouter:
    """Create projects router with CRUD and query endpoints.

    Routes:
        GET /api/projects - List projects, optionally by status
        GET /api/projects/search - Search projects by name
        GET /api/projects/overdue - Projects past their deadline
        GET /api/projects/without-tasks - Projects that own no tasks
        GET /api/projects/exists - Check whether a name is taken
        GET /api/projects/{project_id} - Get project
        GET /api/projects/{project_id}/details - Get project with tasks
        POST /api/projects - Create project
        PUT /api/projects/{project_id} - Update project (partial)
        DELETE /api/projects/{project_id} - Delete project and its tasks
    """
    router = APIRouter(prefix="/api/projects", tags=["projects"])

    @router.get("", response_model=PageView[ProjectView])
    async def list_projects(
        status: ProjectStatus | None = None,
        page_request: PageRequest = Depends(get_page_request),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> PageView[ProjectView]:
        page = await container.projects.list_projects(page_request, status=status)
        return PageView[ProjectView].from_page(page)

    @router.get("/search", response_model=PageView[ProjectView])
    async def search_projects(
        name: str = Query(..., min_length=1),
        page_request: PageRequest = Depends(get_page_request),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> PageView[ProjectView]:
        page = await container.projects.search_projects(name, page_request)
        return PageView[ProjectView].from_page(page)

    @router.get("/overdue", response_model=list[ProjectView])
    async def overdue_projects(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[ProjectView]:
        return await container.projects.overdue_projects()

    @router.get("/without-tasks", response_model=list[ProjectView])
    async def projects_without_tasks(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[ProjectView]:
        return await container.projects.projects_without_tasks()

    @router.get("/exists")
    async def name_exists(
        name: str = Query(..., min_length=1),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, bool]:
        return {"exists": await container.projects.name_exists(name)}

    @router.get("/{project_id}", response_model=ProjectView)
    async def get_project(
        project_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> ProjectView:
        return await container.projects.get_project(project_id)

    @router.get("/{project_id}/details", response_model=ProjectDetailView)
    async def get_project_details(
        project_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> ProjectDetailView:
        return await container.projects.get_project_details(project_id)

    @router.post("", response_model=ProjectView, status_code=http_status.HTTP_201_CREATED)
    async def create_project(
        data: ProjectCreate,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> ProjectView:
        return await container.projects.create_project(data, actor)

    @router.put("/{project_id}", response_model=ProjectView)
    async def update_project(
        project_id: int,
        data: ProjectUpdate,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> ProjectView:
        return await container.projects.update_project(project_id, data, actor)

    @router.delete("/{project_id}", status_code=http_status.HTTP_204_NO_CONTENT)
    async def delete_project(
        project_id: int,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> Response:
        await container.projects.delete_project(project_id, actor)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    return router
