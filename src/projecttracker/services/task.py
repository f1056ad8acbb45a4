"""Task business service.

Creates, updates, assigns and deletes tasks and serves cached task reads.
A task change can affect the cached projections of two projects and two
developers (before and after a move or reassignment); all four are evicted.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from projecttracker.audit.recorder import resolve_actor
from projecttracker.cache.keys import developer_keys, project_keys, task_key
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.models.task import Task
from projecttracker.database.queries import developer as developer_queries
from projecttracker.database.queries import project as project_queries
from projecttracker.database.queries import task as task_queries
from projecttracker.database.queries.paging import Page, PageRequest
from projecttracker.errors import NotFoundError, ValidationFailedError
from projecttracker.services.base import BaseService, snapshot
from projecttracker.services.schemas import TaskCreate, TaskCriteria, TaskUpdate, TaskView

logger = structlog.get_logger(__name__)


class TaskService(BaseService):
    """Task operations with cache maintenance and auditing."""

    async def create_task(self, data: TaskCreate, actor: str | None = None) -> TaskView:
        """Create a task in an existing project.

        Raises:
            NotFoundError: If the project or the assignee does not exist.
        """
        async with self.writing("create_task") as session:
            if not await project_queries.project_exists(session, data.project_id):
                raise NotFoundError("Project", data.project_id)
            if data.assigned_developer_id is not None and not await developer_queries.developer_exists(
                session, data.assigned_developer_id
            ):
                raise NotFoundError("Developer", data.assigned_developer_id)
            task = await task_queries.create_task(
                session,
                project_id=data.project_id,
                title=data.title,
                description=data.description,
                status=data.status,
                due_date=data.due_date,
                assigned_developer_id=data.assigned_developer_id,
            )
            view = TaskView.from_task(task)

        await self.cache.evict(*project_keys(view.project_id), *developer_keys(view.assigned_developer_id))
        logger.info(
            "task_created",
            task_id=view.id,
            project_id=view.project_id,
            actor=resolve_actor(actor),
        )
        await self.recorder.record(ActionType.CREATE, EntityType.TASK, view.id, actor, snapshot(view))
        return view

    async def update_task(
        self,
        task_id: int,
        data: TaskUpdate,
        actor: str | None = None,
    ) -> TaskView:
        """Apply a partial update.

        An explicit null assigned_developer_id unassigns the task.

        Raises:
            NotFoundError: If the task, a new project, or a new assignee does
                not exist.
        """
        changes = data.model_dump(exclude_unset=True)
        old_view, view = await self.apply_changes(task_id, changes, "update_task")

        logger.info("task_updated", task_id=task_id, fields=sorted(changes), actor=resolve_actor(actor))
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.TASK,
            task_id,
            actor,
            {"oldData": snapshot(old_view), "newData": snapshot(view)},
        )
        return view

    async def delete_task(self, task_id: int, actor: str | None = None) -> None:
        """Delete a task.

        Raises:
            NotFoundError: If the task does not exist.
        """
        async with self.writing("delete_task") as session:
            task = await self._require(session, task_id)
            view = TaskView.from_task(task)
            await task_queries.delete_task(session, task_id)

        await self.cache.evict(
            task_key(task_id),
            *project_keys(view.project_id),
            *developer_keys(view.assigned_developer_id),
        )
        logger.info("task_deleted", task_id=task_id, actor=resolve_actor(actor))
        await self.recorder.record(ActionType.DELETE, EntityType.TASK, task_id, actor, snapshot(view))

    async def get_task(self, task_id: int) -> TaskView:
        """Return a task, served from the cache when possible.

        Raises:
            NotFoundError: If the task does not exist.
        """

        async def load() -> TaskView:
            async with self.reading("get_task") as session:
                return TaskView.from_task(await self._require(session, task_id))

        return await self.cache.get_or_load(task_key(task_id), load)

    async def find_tasks(self, criteria: TaskCriteria, page_request: PageRequest) -> Page[TaskView]:
        """Search tasks; unset criteria match everything."""
        async with self.reading("find_tasks") as session:
            page = await task_queries.find_tasks(
                session,
                page_request,
                project_id=criteria.project_id,
                developer_id=criteria.developer_id,
                status=criteria.status,
                title_contains=criteria.title,
                unassigned_only=criteria.unassigned_only,
            )
            return page.map(TaskView.from_task)

    async def overdue_tasks(self) -> list[TaskView]:
        """Incomplete tasks whose due date has passed."""
        async with self.reading("overdue_tasks") as session:
            tasks = await task_queries.list_overdue_tasks(session, self._clock())
            return _views(tasks)

    async def tasks_due_within(self, days: int) -> list[TaskView]:
        """Incomplete tasks due between now and now + days.

        Raises:
            ValidationFailedError: If days is negative.
        """
        if days < 0:
            raise ValidationFailedError("Invalid day count", {"days": "must be greater than or equal to 0"})
        now = self._clock()
        async with self.reading("tasks_due_within") as session:
            tasks = await task_queries.list_tasks_due_between(session, now, now + timedelta(days=days))
            return _views(tasks)

    async def assign_task(self, task_id: int, developer_id: int, actor: str | None = None) -> TaskView:
        """Assign a task to a developer, replacing any previous assignee.

        Raises:
            NotFoundError: If the task or the developer does not exist.
        """
        old_view, view = await self.apply_changes(
            task_id,
            {"assigned_developer_id": developer_id},
            "assign_task",
        )
        logger.info(
            "task_assigned",
            task_id=task_id,
            developer_id=developer_id,
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.TASK,
            task_id,
            actor,
            {
                "action": "ASSIGN_TASK",
                "taskId": task_id,
                "oldDeveloperId": old_view.assigned_developer_id,
                "newDeveloperId": developer_id,
            },
        )
        return view

    async def unassign_task(self, task_id: int, actor: str | None = None) -> TaskView:
        """Remove a task's assignee.

        Raises:
            NotFoundError: If the task does not exist.
        """
        old_view, view = await self.apply_changes(
            task_id,
            {"assigned_developer_id": None},
            "unassign_task",
        )
        logger.info("task_unassigned", task_id=task_id, actor=resolve_actor(actor))
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.TASK,
            task_id,
            actor,
            {
                "action": "UNASSIGN_TASK",
                "taskId": task_id,
                "oldDeveloperId": old_view.assigned_developer_id,
            },
        )
        return view

    async def apply_changes(
        self,
        task_id: int,
        changes: dict[str, Any],
        operation: str,
    ) -> tuple[TaskView, TaskView]:
        """Apply field changes to one task in its own transaction, then evict.

        No audit entry is recorded; callers record the entry that describes
        their operation.

        Returns:
            The task's views before and after the change.

        Raises:
            NotFoundError: If the task, a new project, or a new assignee does
                not exist.
        """
        async with self.writing(operation) as session:
            task = await self._require(session, task_id)
            old_view = TaskView.from_task(task)

            project_id = changes.get("project_id")
            if project_id is not None and project_id != task.project_id:
                if not await project_queries.project_exists(session, project_id):
                    raise NotFoundError("Project", project_id)
            developer_id = changes.get("assigned_developer_id")
            if developer_id is not None and developer_id != task.assigned_developer_id:
                if not await developer_queries.developer_exists(session, developer_id):
                    raise NotFoundError("Developer", developer_id)

            for field, value in changes.items():
                setattr(task, field, value)
            await session.flush()
            await session.refresh(task, attribute_names=["project", "assigned_developer"])
            view = TaskView.from_task(task)

        await self.cache.evict(
            task_key(task_id),
            *project_keys(old_view.project_id),
            *project_keys(view.project_id),
            *developer_keys(old_view.assigned_developer_id),
            *developer_keys(view.assigned_developer_id),
        )
        return old_view, view

    async def _require(self, session: AsyncSession, task_id: int) -> Task:
        task = await task_queries.get_task(session, task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task


def _views(tasks: Sequence[Task]) -> list[TaskView]:
    return [TaskView.from_task(task) for task in tasks]
