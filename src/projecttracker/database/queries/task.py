"""Task query functions for Project Tracker.

Provides async functions for creating, reading, searching, and updating Task
records, including the set-based statements used by bulk operations and the
status aggregates used by the statistics surface.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from projecttracker.database.models.task import Task, TaskStatus
from projecttracker.database.queries.paging import Page, PageRequest, SortDirection, fetch_page

logger = structlog.get_logger(__name__)

TASK_SORT_FIELDS: dict[str, Any] = {
    "id": Task.id,
    "title": Task.title,
    "status": Task.status,
    "due_date": Task.due_date,
    "created_at": Task.created_at,
    "updated_at": Task.updated_at,
}


async def create_task(
    session: AsyncSession,
    project_id: int,
    title: str,
    description: str | None = None,
    status: TaskStatus = TaskStatus.TODO,
    due_date: datetime | None = None,
    assigned_developer_id: int | None = None,
) -> Task:
    """Create a new task.

    Args:
        session: Active async database session.
        project_id: ID of the owning project.
        title: Short task description.
        description: Optional detailed description.
        status: Initial status.
        due_date: Optional due date.
        assigned_developer_id: Optional assignee.

    Returns:
        The newly created Task with its project and assignee loaded.
    """
    task = Task(
        project_id=project_id,
        title=title,
        description=description,
        status=status,
        due_date=due_date,
        assigned_developer_id=assigned_developer_id,
    )
    session.add(task)
    await session.flush()
    await session.refresh(task, attribute_names=["project", "assigned_developer"])

    logger.debug("task_inserted", task_id=task.id, project_id=project_id)
    return task


async def get_task(session: AsyncSession, task_id: int) -> Task | None:
    """Retrieve a task by ID, with its project and assignee."""
    result = await session.execute(select(Task).where(Task.id == task_id))
    return result.unique().scalar_one_or_none()


async def find_tasks(
    session: AsyncSession,
    page_request: PageRequest,
    project_id: int | None = None,
    developer_id: int | None = None,
    status: TaskStatus | None = None,
    title_contains: str | None = None,
    unassigned_only: bool = False,
) -> Page[Task]:
    """Search tasks by criteria, one page at a time.

    Unset criteria match everything. unassigned_only takes precedence over
    developer_id.

    Returns:
        Page of matching tasks (default: created_at desc).
    """
    stmt = select(Task)
    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    if unassigned_only:
        stmt = stmt.where(Task.assigned_developer_id.is_(None))
    elif developer_id is not None:
        stmt = stmt.where(Task.assigned_developer_id == developer_id)
    if status is not None:
        stmt = stmt.where(Task.status == status)
    if title_contains:
        stmt = stmt.where(func.lower(Task.title).contains(title_contains.lower(), autoescape=True))

    return await fetch_page(
        session,
        stmt,
        page_request,
        TASK_SORT_FIELDS,
        ("created_at", SortDirection.DESC),
    )


async def list_overdue_tasks(session: AsyncSession, now: datetime) -> list[Task]:
    """List tasks past their due date that are not completed."""
    stmt = (
        select(Task)
        .where(Task.due_date.is_not(None))
        .where(Task.due_date < now)
        .where(Task.status != TaskStatus.COMPLETED)
        .order_by(Task.due_date.asc(), Task.id.asc())
    )
    return list((await session.execute(stmt)).unique().scalars().all())


async def list_tasks_due_between(
    session: AsyncSession,
    start: datetime,
    end: datetime,
) -> list[Task]:
    """List incomplete tasks due within [start, end]."""
    stmt = (
        select(Task)
        .where(Task.due_date >= start)
        .where(Task.due_date <= end)
        .where(Task.status != TaskStatus.COMPLETED)
        .order_by(Task.due_date.asc(), Task.id.asc())
    )
    return list((await session.execute(stmt)).unique().scalars().all())


async def task_refs(
    session: AsyncSession,
    task_ids: list[int],
) -> list[tuple[int, int, int | None]]:
    """Return (task_id, project_id, assigned_developer_id) for existing task IDs."""
    if not task_ids:
        return []
    stmt = select(Task.id, Task.project_id, Task.assigned_developer_id).where(Task.id.in_(task_ids))
    return [tuple(row) for row in (await session.execute(stmt)).all()]


async def project_task_refs(
    session: AsyncSession,
    project_id: int,
) -> list[tuple[int, int | None]]:
    """Return (task_id, assigned_developer_id) for every task of a project."""
    stmt = select(Task.id, Task.assigned_developer_id).where(Task.project_id == project_id)
    return [(task_id, developer_id) for task_id, developer_id in (await session.execute(stmt)).all()]


async def delete_task(session: AsyncSession, task_id: int) -> bool:
    """Delete a task.

    Returns:
        True if the task was deleted, False if not found.
    """
    result = await session.execute(
        delete(Task).where(Task.id == task_id).execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


async def bulk_assign_tasks(
    session: AsyncSession,
    task_ids: list[int],
    developer_id: int,
) -> int:
    """Assign every listed task to a developer in one statement.

    IDs that do not exist are ignored.

    Returns:
        Number of rows updated.
    """
    result = await session.execute(
        update(Task)
        .where(Task.id.in_(task_ids))
        .values(assigned_developer_id=developer_id)
        .execution_options(synchronize_session=False)
    )
    logger.debug(
        "tasks_bulk_assigned",
        requested=len(task_ids),
        updated=result.rowcount,
        developer_id=developer_id,
    )
    return result.rowcount


async def update_status_by_project(
    session: AsyncSession,
    project_id: int,
    status: TaskStatus,
) -> int:
    """Set the status of every task in a project in one statement.

    Returns:
        Number of rows updated.
    """
    result = await session.execute(
        update(Task)
        .where(Task.project_id == project_id)
        .values(status=status)
        .execution_options(synchronize_session=False)
    )
    logger.debug(
        "tasks_status_bulk_updated",
        project_id=project_id,
        status=status.value,
        updated=result.rowcount,
    )
    return result.rowcount


async def status_counts(
    session: AsyncSession,
    project_id: int | None = None,
    developer_id: int | None = None,
) -> dict[str, int]:
    """Count tasks grouped by status, optionally for one project or assignee.

    Returns:
        Mapping of status value to count; only statuses present appear.
    """
    stmt = select(Task.status, func.count(Task.id)).group_by(Task.status)
    if project_id is not None:
        stmt = stmt.where(Task.project_id == project_id)
    if developer_id is not None:
        stmt = stmt.where(Task.assigned_developer_id == developer_id)
    return {status.value: count for status, count in (await session.execute(stmt)).all()}


async def count_unassigned(session: AsyncSession) -> int:
    """Count tasks with no assignee."""
    stmt = select(func.count(Task.id)).where(Task.assigned_developer_id.is_(None))
    return (await session.execute(stmt)).scalar_one()


async def count_overdue(session: AsyncSession, now: datetime) -> int:
    """Count incomplete tasks past their due date."""
    stmt = (
        select(func.count(Task.id))
        .where(Task.due_date.is_not(None))
        .where(Task.due_date < now)
        .where(Task.status != TaskStatus.COMPLETED)
    )
    return (await session.execute(stmt)).scalar_one()
