"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from fastapi import Header, Query, Request

from projecttracker.audit.recorder import resolve_actor
from projecttracker.database.queries.paging import MAX_PAGE_SIZE, PageRequest
from projecttracker.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """Dependency that retrieves the service container from app state.

    Args:
        request: FastAPI request object

    Returns:
        ServiceContainer built at startup
    """
    return request.app.state.container  # type: ignore[no-any-return]


def get_actor(
    x_actor_name: str | None = Header(default=None, alias="X-Actor-Name"),
) -> str:
    """Actor performing the request, as asserted by the identity provider."""
    return resolve_actor(x_actor_name)


def get_page_request(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    sort: str | None = Query(default=None, description="field or field,asc|desc"),
) -> PageRequest:
    """Paging parameters from the query string."""
    return PageRequest.parse(page=page, size=size, sort=sort)
