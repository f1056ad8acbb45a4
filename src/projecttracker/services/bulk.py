"""Bulk task mutations.

Two kinds of bulk operation exist:

- set-based: bulk_assign and bulk_update_status issue a single UPDATE in one
  transaction and report the number of rows it touched. Requested IDs that do
  not exist are silently excluded from the count.
- per-item: bulk_update applies the same change to each task in its own
  transaction. It is not atomic: a failing item is skipped and the items
  before it stay applied.

Each call records exactly one audit entry with no entity ID. The entry lists
the IDs that were requested, not the subset that actually changed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from projecttracker.audit.recorder import AuditRecorder, Clock, resolve_actor
from projecttracker.cache.keys import (
    developer_detail_keys,
    developers_keys,
    project_detail_key,
    project_detail_keys,
    task_keys,
)
from projecttracker.cache.store import EntityCache
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.models.base import utcnow
from projecttracker.database.models.task import TaskStatus
from projecttracker.database.queries import developer as developer_queries
from projecttracker.database.queries import project as project_queries
from projecttracker.database.queries import task as task_queries
from projecttracker.errors import NotFoundError, ProjectTrackerError, ValidationFailedError
from projecttracker.services.base import BaseService
from projecttracker.services.schemas import BulkTaskUpdate, TaskView
from projecttracker.services.task import TaskService

logger = structlog.get_logger(__name__)


@dataclass
class BatchResult:
    """Outcome of a per-item bulk update.

    Attributes:
        attempted: Number of task IDs processed.
        succeeded: IDs of tasks that were updated.
        failed: (task_id, reason) for every task that was skipped.
        updated: Views of the updated tasks, in request order.
    """

    attempted: int = 0
    succeeded: list[int] = field(default_factory=list)
    failed: list[tuple[int, str]] = field(default_factory=list)
    updated: list[TaskView] = field(default_factory=list)


def _require_ids(task_ids: list[int]) -> list[int]:
    if not task_ids:
        raise ValidationFailedError("Task IDs are required", {"taskIds": "must not be empty"})
    return list(task_ids)


class BulkCoordinator(BaseService):
    """Runs bulk task mutations with one audit entry per call.

    Args:
        session_factory: Session factory bound to the primary engine.
        cache: Entity cache to evict from.
        recorder: Audit recorder.
        tasks: Task service used for per-item updates.
        clock: Source of "now".
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: EntityCache,
        recorder: AuditRecorder,
        tasks: TaskService,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(session_factory, cache, recorder, clock)
        self.tasks = tasks

    async def bulk_assign(
        self,
        task_ids: list[int],
        developer_id: int,
        actor: str | None = None,
    ) -> int:
        """Assign many tasks to one developer in a single statement.

        Returns:
            Number of tasks updated.

        Raises:
            ValidationFailedError: If task_ids is empty.
            NotFoundError: If the developer does not exist.
        """
        task_ids = _require_ids(task_ids)
        async with self.writing("bulk_assign") as session:
            if not await developer_queries.developer_exists(session, developer_id):
                raise NotFoundError("Developer", developer_id)
            refs = await task_queries.task_refs(session, task_ids)
            updated = await task_queries.bulk_assign_tasks(session, task_ids, developer_id)

        await self.cache.evict(
            *task_keys(task_ids),
            *developers_keys([developer_id, *(previous for _, _, previous in refs)]),
            *project_detail_keys(project_id for _, project_id, _ in refs),
        )
        logger.info(
            "tasks_bulk_assigned",
            requested=len(task_ids),
            updated=updated,
            developer_id=developer_id,
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.TASK,
            None,
            actor,
            {
                "action": "BULK_ASSIGN_TASKS",
                "taskIds": task_ids,
                "developerId": developer_id,
                "updatedCount": updated,
            },
        )
        return updated

    async def bulk_update_status(
        self,
        project_id: int,
        status: TaskStatus,
        actor: str | None = None,
    ) -> int:
        """Set the status of every task in a project in a single statement.

        Returns:
            Number of tasks updated.

        Raises:
            NotFoundError: If the project does not exist.
        """
        async with self.writing("bulk_update_status") as session:
            if not await project_queries.project_exists(session, project_id):
                raise NotFoundError("Project", project_id)
            refs = await task_queries.project_task_refs(session, project_id)
            updated = await task_queries.update_status_by_project(session, project_id, status)

        await self.cache.evict(
            project_detail_key(project_id),
            *task_keys(task_id for task_id, _ in refs),
            *developer_detail_keys(developer_id for _, developer_id in refs),
        )
        logger.info(
            "tasks_bulk_status_updated",
            project_id=project_id,
            status=status.value,
            updated=updated,
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.TASK,
            None,
            actor,
            {
                "action": "BULK_UPDATE_STATUS_BY_PROJECT",
                "projectId": project_id,
                "status": status,
                "updatedCount": updated,
            },
        )
        return updated

    async def run_batch(self, task_ids: list[int], update: BulkTaskUpdate) -> BatchResult:
        """Apply an update to each task in its own transaction.

        Only the fields of update that are set and non-null are applied.
        Failures are collected in the result instead of raised. An update
        with no such fields touches no task. Nothing is audited here.
        """
        changes = update.changes()
        result = BatchResult(attempted=len(task_ids))
        if not changes:
            logger.debug("bulk_update_empty", task_count=len(task_ids))
            return result
        for task_id in task_ids:
            try:
                _, view = await self.tasks.apply_changes(task_id, changes, "bulk_update_item")
            except ProjectTrackerError as e:
                logger.warning("bulk_update_item_failed", task_id=task_id, reason=e.message)
                result.failed.append((task_id, e.message))
                continue
            result.succeeded.append(task_id)
            result.updated.append(view)
        return result

    async def bulk_update(
        self,
        task_ids: list[int],
        update: BulkTaskUpdate,
        actor: str | None = None,
    ) -> list[TaskView]:
        """Apply the same partial update to many tasks, item by item.

        Returns:
            Views of the tasks that were updated; failed items are omitted.

        Raises:
            ValidationFailedError: If task_ids is empty.
        """
        task_ids = _require_ids(task_ids)
        result = await self.run_batch(task_ids, update)

        logger.info(
            "tasks_bulk_updated",
            attempted=result.attempted,
            succeeded=len(result.succeeded),
            failed=len(result.failed),
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.TASK,
            None,
            actor,
            {
                "action": "BULK_UPDATE_TASKS",
                "taskIds": task_ids,
                "updateData": update.model_dump(mode="json", by_alias=True, exclude_none=True),
                "updatedCount": len(result.succeeded),
            },
        )
        return result.updated
