"""Project query functions for Project Tracker.

Provides async functions for creating, reading, updating, and deleting
Project records using the SQLAlchemy 2.0 select() API.

These functions never begin or commit transactions themselves: the calling
service owns the transaction boundary so that a multi-statement operation
(e.g. deleting a project together with its tasks) commits atomically.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projecttracker.database.models.project import Project, ProjectStatus
from projecttracker.database.models.task import Task
from projecttracker.database.queries.paging import Page, PageRequest, SortDirection, fetch_page

logger = structlog.get_logger(__name__)

PROJECT_SORT_FIELDS: dict[str, Any] = {
    "id": Project.id,
    "name": Project.name,
    "deadline": Project.deadline,
    "status": Project.status,
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
}


async def create_project(
    session: AsyncSession,
    name: str,
    deadline: datetime,
    description: str | None = None,
    status: ProjectStatus = ProjectStatus.PLANNING,
) -> Project:
    """Create a new project.

    Args:
        session: Active async database session.
        name: Project name.
        deadline: Project deadline.
        description: Optional description.
        status: Initial status.

    Returns:
        The newly created Project instance.
    """
    project = Project(
        name=name,
        description=description,
        deadline=deadline,
        status=status,
    )
    session.add(project)
    await session.flush()

    logger.debug("project_inserted", project_id=project.id, name=name)
    return project


async def get_project(
    session: AsyncSession,
    project_id: int,
    with_tasks: bool = False,
) -> Project | None:
    """Retrieve a project by ID.

    Args:
        session: Active async database session.
        project_id: ID of the project to retrieve.
        with_tasks: Also load the project's tasks.

    Returns:
        The Project instance if found, None otherwise.
    """
    stmt = select(Project).where(Project.id == project_id)
    if with_tasks:
        stmt = stmt.options(selectinload(Project.tasks))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def project_exists(session: AsyncSession, project_id: int) -> bool:
    """Return True if a project with the given ID exists."""
    stmt = select(Project.id).where(Project.id == project_id)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def name_taken(
    session: AsyncSession,
    name: str,
    exclude_id: int | None = None,
) -> bool:
    """Check whether a project name is in use, ignoring case.

    Args:
        session: Active async database session.
        name: Candidate name.
        exclude_id: Project ID to ignore (the project being renamed).
    """
    stmt = select(Project.id).where(func.lower(Project.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Project.id != exclude_id)
    return (await session.execute(stmt.limit(1))).first() is not None


async def count_tasks(session: AsyncSession, project_ids: list[int]) -> dict[int, int]:
    """Count tasks per project.

    Returns:
        Mapping of project ID to task count (projects without tasks map to 0).
    """
    counts = {project_id: 0 for project_id in project_ids}
    if not project_ids:
        return counts
    stmt = (
        select(Task.project_id, func.count(Task.id))
        .where(Task.project_id.in_(project_ids))
        .group_by(Task.project_id)
    )
    for project_id, count in (await session.execute(stmt)).all():
        counts[project_id] = count
    return counts


async def list_projects(
    session: AsyncSession,
    page_request: PageRequest,
    status_filter: ProjectStatus | None = None,
    name_contains: str | None = None,
) -> Page[Project]:
    """List projects one page at a time.

    Args:
        session: Active async database session.
        page_request: Paging and sorting parameters (default: created_at desc).
        status_filter: Optional status to filter by.
        name_contains: Optional case-insensitive name fragment.

    Returns:
        Page of matching Project instances.
    """
    stmt = select(Project)
    if status_filter is not None:
        stmt = stmt.where(Project.status == status_filter)
    if name_contains:
        stmt = stmt.where(func.lower(Project.name).contains(name_contains.lower(), autoescape=True))

    return await fetch_page(
        session,
        stmt,
        page_request,
        PROJECT_SORT_FIELDS,
        ("created_at", SortDirection.DESC),
    )


async def list_overdue_projects(session: AsyncSession, now: datetime) -> list[Project]:
    """List projects past their deadline that are not completed."""
    stmt = (
        select(Project)
        .where(Project.deadline < now)
        .where(Project.status != ProjectStatus.COMPLETED)
        .order_by(Project.deadline.asc(), Project.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_projects_without_tasks(session: AsyncSession) -> list[Project]:
    """List projects that own no tasks."""
    stmt = (
        select(Project)
        .where(~select(Task.id).where(Task.project_id == Project.id).exists())
        .order_by(Project.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def delete_project(session: AsyncSession, project_id: int) -> bool:
    """Delete a project and every task it owns.

    Tasks are removed with an explicit statement rather than relying on a
    database-level cascade, so the behavior is the same on every backend.

    Returns:
        True if the project was deleted, False if not found.
    """
    await session.execute(
        delete(Task)
        .where(Task.project_id == project_id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        delete(Project)
        .where(Project.id == project_id)
        .execution_options(synchronize_session=False)
    )
    deleted = result.rowcount > 0

    if deleted:
        logger.debug("project_row_deleted", project_id=project_id)
    return deleted


async def project_status_counts(session: AsyncSession) -> dict[str, int]:
    """Count projects grouped by status."""
    stmt = select(Project.status, func.count(Project.id)).group_by(Project.status)
    return {status.value: count for status, count in (await session.execute(stmt)).all()}
