"""Developer query functions for Project Tracker.

Provides async functions for creating, reading, searching, and deleting
Developer records, plus the task-load and skill aggregates used by the
statistics surface.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from projecttracker.database.models.developer import Developer, DeveloperSkill, normalize_skill, normalize_skills
from projecttracker.database.models.task import Task
from projecttracker.database.queries.paging import Page, PageRequest, SortDirection, fetch_page

logger = structlog.get_logger(__name__)

DEVELOPER_SORT_FIELDS: dict[str, Any] = {
    "id": Developer.id,
    "name": Developer.name,
    "email": Developer.email,
    "created_at": Developer.created_at,
    "updated_at": Developer.updated_at,
}


async def create_developer(
    session: AsyncSession,
    name: str,
    email: str,
    skills: list[str] | None = None,
) -> Developer:
    """Create a new developer with an initial skill set.

    Args:
        session: Active async database session.
        name: Display name.
        email: Unique email address.
        skills: Skill names; normalized and de-duplicated before storing.

    Returns:
        The newly created Developer instance.
    """
    developer = Developer(
        name=name,
        email=email,
        skill_entries=[DeveloperSkill(skill=skill) for skill in sorted(normalize_skills(skills or []))],
    )
    session.add(developer)
    await session.flush()

    logger.debug("developer_inserted", developer_id=developer.id, email=email)
    return developer


async def get_developer(
    session: AsyncSession,
    developer_id: int,
    with_tasks: bool = False,
) -> Developer | None:
    """Retrieve a developer by ID.

    Args:
        session: Active async database session.
        developer_id: ID of the developer.
        with_tasks: Also load the developer's assigned tasks.

    Returns:
        The Developer instance if found, None otherwise.
    """
    stmt = select(Developer).where(Developer.id == developer_id)
    if with_tasks:
        stmt = stmt.options(selectinload(Developer.assigned_tasks))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def developer_exists(session: AsyncSession, developer_id: int) -> bool:
    """Return True if a developer with the given ID exists."""
    stmt = select(Developer.id).where(Developer.id == developer_id)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def email_taken(
    session: AsyncSession,
    email: str,
    exclude_id: int | None = None,
) -> bool:
    """Check whether an email address is already registered."""
    stmt = select(Developer.id).where(Developer.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Developer.id != exclude_id)
    return (await session.execute(stmt.limit(1))).first() is not None


async def count_assigned(session: AsyncSession, developer_ids: list[int]) -> dict[int, int]:
    """Count assigned tasks per developer (developers without tasks map to 0)."""
    counts = {developer_id: 0 for developer_id in developer_ids}
    if not developer_ids:
        return counts
    stmt = (
        select(Task.assigned_developer_id, func.count(Task.id))
        .where(Task.assigned_developer_id.in_(developer_ids))
        .group_by(Task.assigned_developer_id)
    )
    for developer_id, count in (await session.execute(stmt)).all():
        counts[developer_id] = count
    return counts


async def list_developers(
    session: AsyncSession,
    page_request: PageRequest,
) -> Page[Developer]:
    """List developers one page at a time (default: name asc)."""
    return await fetch_page(
        session,
        select(Developer),
        page_request,
        DEVELOPER_SORT_FIELDS,
        ("name", SortDirection.ASC),
    )


async def search_developers(session: AsyncSession, term: str) -> list[Developer]:
    """Find developers whose name or email contains the term, ignoring case."""
    needle = term.lower()
    stmt = (
        select(Developer)
        .where(
            or_(
                func.lower(Developer.name).contains(needle, autoescape=True),
                func.lower(Developer.email).contains(needle, autoescape=True),
            )
        )
        .order_by(Developer.name.asc(), Developer.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_developers_by_skill(session: AsyncSession, skill: str) -> list[Developer]:
    """List developers holding a skill; the lookup is normalized like stored skills."""
    normalized = normalize_skill(skill)
    if normalized is None:
        return []
    stmt = (
        select(Developer)
        .join(DeveloperSkill, DeveloperSkill.developer_id == Developer.id)
        .where(DeveloperSkill.skill == normalized)
        .order_by(Developer.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_developers_without_tasks(session: AsyncSession) -> list[Developer]:
    """List developers with no assigned tasks."""
    stmt = (
        select(Developer)
        .where(~select(Task.id).where(Task.assigned_developer_id == Developer.id).exists())
        .order_by(Developer.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def list_available_developers(session: AsyncSession, max_tasks: int) -> list[Developer]:
    """List developers with fewer than max_tasks assigned tasks."""
    task_count = func.count(Task.id)
    stmt = (
        select(Developer)
        .outerjoin(Task, Task.assigned_developer_id == Developer.id)
        .group_by(Developer.id)
        .having(task_count < max_tasks)
        .order_by(task_count.asc(), Developer.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def assigned_task_refs(
    session: AsyncSession,
    developer_id: int,
) -> list[tuple[int, int]]:
    """Return (task_id, project_id) for every task assigned to a developer."""
    stmt = select(Task.id, Task.project_id).where(Task.assigned_developer_id == developer_id)
    return [(task_id, project_id) for task_id, project_id in (await session.execute(stmt)).all()]


async def delete_developer(session: AsyncSession, developer_id: int) -> int | None:
    """Delete a developer, unassigning their tasks first.

    Args:
        session: Active async database session.
        developer_id: ID of the developer to delete.

    Returns:
        Number of tasks that were unassigned, or None if the developer
        did not exist.
    """
    unassigned = await session.execute(
        update(Task)
        .where(Task.assigned_developer_id == developer_id)
        .values(assigned_developer_id=None)
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        delete(DeveloperSkill)
        .where(DeveloperSkill.developer_id == developer_id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(
        delete(Developer)
        .where(Developer.id == developer_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None

    logger.debug(
        "developer_row_deleted",
        developer_id=developer_id,
        unassigned_tasks=unassigned.rowcount,
    )
    return unassigned.rowcount


async def developer_task_load(
    session: AsyncSession,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Rank developers by number of assigned tasks.

    Returns:
        Dicts with id, name, email and taskCount, ordered by task count
        descending then id.
    """
    task_count = func.count(Task.id).label("task_count")
    stmt = (
        select(Developer.id, Developer.name, Developer.email, task_count)
        .outerjoin(Task, Task.assigned_developer_id == Developer.id)
        .group_by(Developer.id, Developer.name, Developer.email)
        .order_by(task_count.desc(), Developer.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [
        {"id": row.id, "name": row.name, "email": row.email, "taskCount": row.task_count}
        for row in (await session.execute(stmt)).all()
    ]


async def skill_counts(session: AsyncSession) -> dict[str, int]:
    """Count developers per normalized skill."""
    stmt = (
        select(DeveloperSkill.skill, func.count(DeveloperSkill.developer_id))
        .group_by(DeveloperSkill.skill)
        .order_by(DeveloperSkill.skill.asc())
    )
    return {skill: count for skill, count in (await session.execute(stmt)).all()}
