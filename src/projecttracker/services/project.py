"""Project business service.

Creates, updates and deletes projects and serves cached project reads. Every
mutation commits, then evicts the cache keys whose projections it changed,
then records one audit entry.

Deleting a project deletes all of its tasks in the same transaction.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from projecttracker.audit.recorder import resolve_actor
from projecttracker.cache.keys import (
    developer_detail_keys,
    developers_keys,
    project_detail_key,
    project_key,
    project_keys,
    task_keys,
)
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.models.project import Project, ProjectStatus
from projecttracker.database.queries import project as project_queries
from projecttracker.database.queries import task as task_queries
from projecttracker.database.queries.paging import Page, PageRequest
from projecttracker.errors import ConflictError, NotFoundError
from projecttracker.services.base import BaseService, snapshot
from projecttracker.services.schemas import ProjectCreate, ProjectDetailView, ProjectUpdate, ProjectView

logger = structlog.get_logger(__name__)


class ProjectService(BaseService):
    """Project operations with cache maintenance and auditing."""

    async def create_project(self, data: ProjectCreate, actor: str | None = None) -> ProjectView:
        """Create a project.

        Raises:
            ConflictError: If the name is taken, ignoring case.
        """
        async with self.writing("create_project") as session:
            if await project_queries.name_taken(session, data.name):
                raise ConflictError(f"Project with name '{data.name}' already exists")
            project = await project_queries.create_project(
                session,
                name=data.name,
                deadline=data.deadline,
                description=data.description,
                status=data.status,
            )
            view = ProjectView.from_project(project, task_count=0)

        logger.info("project_created", project_id=view.id, name=view.name, actor=resolve_actor(actor))
        await self.recorder.record(ActionType.CREATE, EntityType.PROJECT, view.id, actor, snapshot(view))
        return view

    async def update_project(
        self,
        project_id: int,
        data: ProjectUpdate,
        actor: str | None = None,
    ) -> ProjectView:
        """Apply a partial update to a project.

        Raises:
            NotFoundError: If the project does not exist.
            ConflictError: If the new name is taken by another project.
        """
        changes = data.model_dump(exclude_unset=True)
        async with self.writing("update_project") as session:
            project = await self._require(session, project_id)
            refs = await task_queries.project_task_refs(session, project_id)
            old_view = ProjectView.from_project(project, len(refs))

            new_name = changes.get("name")
            if new_name is not None and await project_queries.name_taken(session, new_name, exclude_id=project_id):
                raise ConflictError(f"Project with name '{new_name}' already exists")

            for field, value in changes.items():
                setattr(project, field, value)
            await session.flush()
            view = ProjectView.from_project(project, len(refs))

        await self.cache.evict(
            *project_keys(project_id),
            *task_keys(task_id for task_id, _ in refs),
            *developer_detail_keys(developer_id for _, developer_id in refs),
        )
        logger.info(
            "project_updated",
            project_id=project_id,
            fields=sorted(changes),
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.PROJECT,
            project_id,
            actor,
            {"oldData": snapshot(old_view), "newData": snapshot(view)},
        )
        return view

    async def delete_project(self, project_id: int, actor: str | None = None) -> None:
        """Delete a project together with all of its tasks.

        Raises:
            NotFoundError: If the project does not exist.
        """
        async with self.writing("delete_project") as session:
            project = await self._require(session, project_id)
            refs = await task_queries.project_task_refs(session, project_id)
            view = ProjectView.from_project(project, len(refs))
            await project_queries.delete_project(session, project_id)

        await self.cache.evict(
            *project_keys(project_id),
            *task_keys(task_id for task_id, _ in refs),
            *developers_keys(developer_id for _, developer_id in refs),
        )
        logger.info(
            "project_deleted",
            project_id=project_id,
            deleted_tasks=len(refs),
            actor=resolve_actor(actor),
        )
        await self.recorder.record(ActionType.DELETE, EntityType.PROJECT, project_id, actor, snapshot(view))

    async def get_project(self, project_id: int) -> ProjectView:
        """Return a project, served from the cache when possible.

        Raises:
            NotFoundError: If the project does not exist.
        """

        async def load() -> ProjectView:
            async with self.reading("get_project") as session:
                project = await self._require(session, project_id)
                counts = await project_queries.count_tasks(session, [project_id])
                return ProjectView.from_project(project, counts[project_id])

        return await self.cache.get_or_load(project_key(project_id), load)

    async def get_project_details(self, project_id: int) -> ProjectDetailView:
        """Return a project with its tasks, served from the cache when possible.

        Raises:
            NotFoundError: If the project does not exist.
        """

        async def load() -> ProjectDetailView:
            async with self.reading("get_project_details") as session:
                project = await self._require(session, project_id, with_tasks=True)
                return ProjectDetailView.from_project(project)

        return await self.cache.get_or_load(project_detail_key(project_id), load)

    async def list_projects(
        self,
        page_request: PageRequest,
        status: ProjectStatus | None = None,
    ) -> Page[ProjectView]:
        """List projects, optionally filtered by status."""
        async with self.reading("list_projects") as session:
            page = await project_queries.list_projects(session, page_request, status_filter=status)
            views = await self._views(session, page.items)
        return Page(items=views, page=page.page, size=page.size, total=page.total)

    async def search_projects(self, name: str, page_request: PageRequest) -> Page[ProjectView]:
        """List projects whose name contains the given text, ignoring case."""
        async with self.reading("search_projects") as session:
            page = await project_queries.list_projects(session, page_request, name_contains=name)
            views = await self._views(session, page.items)
        return Page(items=views, page=page.page, size=page.size, total=page.total)

    async def overdue_projects(self) -> list[ProjectView]:
        """Projects past their deadline that are not completed."""
        async with self.reading("overdue_projects") as session:
            projects = await project_queries.list_overdue_projects(session, self._clock())
            return await self._views(session, projects)

    async def projects_without_tasks(self) -> list[ProjectView]:
        async with self.reading("projects_without_tasks") as session:
            projects = await project_queries.list_projects_without_tasks(session)
        return [ProjectView.from_project(project, task_count=0) for project in projects]

    async def name_exists(self, name: str) -> bool:
        """Return True if a project has this name, ignoring case."""
        async with self.reading("name_exists") as session:
            return await project_queries.name_taken(session, name.strip())

    async def _require(
        self,
        session: AsyncSession,
        project_id: int,
        with_tasks: bool = False,
    ) -> Project:
        project = await project_queries.get_project(session, project_id, with_tasks=with_tasks)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    @staticmethod
    async def _views(session: AsyncSession, projects: Sequence[Project]) -> list[ProjectView]:
        counts = await project_queries.count_tasks(session, [project.id for project in projects])
        return [ProjectView.from_project(project, counts[project.id]) for project in projects]
