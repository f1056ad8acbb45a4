"""Developer REST API endpoints for Project Tracker.

Provides FastAPI routes for developer CRUD, searches, and skill management.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from fastapi import status as http_status

from projecttracker.database.queries.paging import PageRequest
from projecttracker.schemas import CamelModel, PageView
from projecttracker.services.container import ServiceContainer
from projecttracker.services.schemas import DeveloperCreate, DeveloperDetailView, DeveloperUpdate, DeveloperView
from projecttracker.web.dependencies import get_actor, get_container, get_page_request


class SkillsReplace(CamelModel):
    """Request schema for replacing a developer's skill set."""

    skills: list[str]


def create_developers_router() -> APIRouter:
    """Create developers router.

    Routes:
        GET /api/developers - List developers
        GET /api/developers/search - Search by name or email
        GET /api/developers/by-skill - Developers holding a skill
        GET /api/developers/without-tasks - Developers with no assigned tasks
        GET /api/developers/available - Developers below a task limit
        GET /api/developers/email-exists - Check whether an email is taken
        GET /api/developers/{developer_id} - Get developer
        GET /api/developers/{developer_id}/details - Get developer with tasks
        POST /api/developers - Create developer
        PUT /api/developers/{developer_id} - Update developer (partial)
        DELETE /api/developers/{developer_id} - Delete developer, unassigning tasks
        POST /api/developers/{developer_id}/skills/{skill} - Add a skill
        DELETE /api/developers/{developer_id}/skills/{skill} - Remove a skill
        PUT /api/developers/{developer_id}/skills - Replace all skills
    """
    router = APIRouter(prefix="/api/developers", tags=["developers"])

    @router.get("", response_model=PageView[DeveloperView])
    async def list_developers(
        page_request: PageRequest = Depends(get_page_request),  # noqa: B008
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> PageView[DeveloperView]:
        page = await container.developers.list_developers(page_request)
        return PageView[DeveloperView].from_page(page)

    @router.get("/search", response_model=list[DeveloperView])
    async def search_developers(
        term: str = Query(..., min_length=1),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[DeveloperView]:
        return await container.developers.search_developers(term)

    @router.get("/by-skill", response_model=list[DeveloperView])
    async def developers_by_skill(
        skill: str = Query(..., min_length=1),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[DeveloperView]:
        return await container.developers.developers_by_skill(skill)

    @router.get("/without-tasks", response_model=list[DeveloperView])
    async def developers_without_tasks(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[DeveloperView]:
        return await container.developers.developers_without_tasks()

    @router.get("/available", response_model=list[DeveloperView])
    async def available_developers(
        max_tasks: int = Query(default=5, ge=0, alias="maxTasks"),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> list[DeveloperView]:
        return await container.developers.available_developers(max_tasks)

    @router.get("/email-exists")
    async def email_exists(
        email: str = Query(..., min_length=1),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, bool]:
        return {"exists": await container.developers.email_exists(email)}

    @router.get("/{developer_id}", response_model=DeveloperView)
    async def get_developer(
        developer_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperView:
        return await container.developers.get_developer(developer_id)

    @router.get("/{developer_id}/details", response_model=DeveloperDetailView)
    async def get_developer_details(
        developer_id: int,
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperDetailView:
        return await container.developers.get_developer_details(developer_id)

    @router.post("", response_model=DeveloperView, status_code=http_status.HTTP_201_CREATED)
    async def create_developer(
        data: DeveloperCreate,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperView:
        return await container.developers.create_developer(data, actor)

    @router.put("/{developer_id}", response_model=DeveloperView)
    async def update_developer(
        developer_id: int,
        data: DeveloperUpdate,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperView:
        return await container.developers.update_developer(developer_id, data, actor)

    @router.delete("/{developer_id}", status_code=http_status.HTTP_204_NO_CONTENT)
    async def delete_developer(
        developer_id: int,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> Response:
        await container.developers.delete_developer(developer_id, actor)
        return Response(status_code=http_status.HTTP_204_NO_CONTENT)

    @router.post("/{developer_id}/skills/{skill}", response_model=DeveloperView)
    async def add_skill(
        developer_id: int,
        skill: str,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperView:
        return await container.developers.add_skill(developer_id, skill, actor)

    @router.delete("/{developer_id}/skills/{skill}", response_model=DeveloperView)
    async def remove_skill(
        developer_id: int,
        skill: str,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperView:
        return await container.developers.remove_skill(developer_id, skill, actor)

    @router.put("/{developer_id}/skills", response_model=DeveloperView)
    async def replace_skills(
        developer_id: int,
        data: SkillsReplace,
        actor: str = Depends(get_actor),
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> DeveloperView:
        return await container.developers.replace_skills(developer_id, data.skills, actor)

    return router
