"""Developer business service.

Creates, updates and deletes developers, maintains their skill sets, and
serves cached developer reads. Deleting a developer unassigns their tasks
instead of deleting them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from projecttracker.audit.recorder import resolve_actor
from projecttracker.cache.keys import (
    developer_detail_key,
    developer_key,
    developer_keys,
    project_detail_keys,
    task_keys,
)
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.models.developer import Developer, normalize_skill, normalize_skills
from projecttracker.database.queries import developer as developer_queries
from projecttracker.database.queries.paging import Page, PageRequest
from projecttracker.errors import ConflictError, NotFoundError, ValidationFailedError
from projecttracker.services.base import BaseService, snapshot
from projecttracker.services.schemas import DeveloperCreate, DeveloperDetailView, DeveloperUpdate, DeveloperView

logger = structlog.get_logger(__name__)


def _require_skill(skill: str | None) -> str:
    normalized = normalize_skill(skill)
    if normalized is None:
        raise ValidationFailedError("Invalid skill", {"skill": "must not be blank"})
    return normalized


class DeveloperService(BaseService):
    """Developer operations with cache maintenance and auditing."""

    async def create_developer(self, data: DeveloperCreate, actor: str | None = None) -> DeveloperView:
        """Create a developer.

        Raises:
            ConflictError: If the email is already registered.
        """
        async with self.writing("create_developer") as session:
            if await developer_queries.email_taken(session, data.email):
                raise ConflictError(f"Developer with email '{data.email}' already exists")
            developer = await developer_queries.create_developer(
                session,
                name=data.name,
                email=data.email,
                skills=data.skills,
            )
            view = DeveloperView.from_developer(developer, task_count=0)

        logger.info("developer_created", developer_id=view.id, actor=resolve_actor(actor))
        await self.recorder.record(ActionType.CREATE, EntityType.DEVELOPER, view.id, actor, snapshot(view))
        return view

    async def update_developer(
        self,
        developer_id: int,
        data: DeveloperUpdate,
        actor: str | None = None,
    ) -> DeveloperView:
        """Apply a partial update; a provided skills list replaces the skill set.

        Raises:
            NotFoundError: If the developer does not exist.
            ConflictError: If the new email belongs to another developer.
        """
        changes = data.model_dump(exclude_unset=True)
        async with self.writing("update_developer") as session:
            developer = await self._require(session, developer_id)
            refs = await developer_queries.assigned_task_refs(session, developer_id)
            old_view = DeveloperView.from_developer(developer, len(refs))

            new_email = changes.get("email")
            if new_email is not None and await developer_queries.email_taken(
                session, new_email, exclude_id=developer_id
            ):
                raise ConflictError(f"Developer with email '{new_email}' already exists")

            if "name" in changes:
                developer.name = changes["name"]
            if "email" in changes:
                developer.email = changes["email"]
            if changes.get("skills") is not None:
                developer.replace_skills(changes["skills"])
            await session.flush()
            view = DeveloperView.from_developer(developer, len(refs))

        await self._evict(developer_id, refs, renamed=old_view.name != view.name)
        logger.info(
            "developer_updated",
            developer_id=developer_id,
            fields=sorted(changes),
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.DEVELOPER,
            developer_id,
            actor,
            {"oldData": snapshot(old_view), "newData": snapshot(view)},
        )
        return view

    async def delete_developer(self, developer_id: int, actor: str | None = None) -> None:
        """Delete a developer and unassign every task assigned to them.

        Raises:
            NotFoundError: If the developer does not exist.
        """
        async with self.writing("delete_developer") as session:
            developer = await self._require(session, developer_id)
            refs = await developer_queries.assigned_task_refs(session, developer_id)
            view = DeveloperView.from_developer(developer, len(refs))
            await developer_queries.delete_developer(session, developer_id)

        await self._evict(developer_id, refs, renamed=True)
        logger.info(
            "developer_deleted",
            developer_id=developer_id,
            unassigned_tasks=len(refs),
            actor=resolve_actor(actor),
        )
        await self.recorder.record(ActionType.DELETE, EntityType.DEVELOPER, developer_id, actor, snapshot(view))

    async def get_developer(self, developer_id: int) -> DeveloperView:
        """Return a developer, served from the cache when possible.

        Raises:
            NotFoundError: If the developer does not exist.
        """

        async def load() -> DeveloperView:
            async with self.reading("get_developer") as session:
                developer = await self._require(session, developer_id)
                counts = await developer_queries.count_assigned(session, [developer_id])
                return DeveloperView.from_developer(developer, counts[developer_id])

        return await self.cache.get_or_load(developer_key(developer_id), load)

    async def get_developer_details(self, developer_id: int) -> DeveloperDetailView:
        """Return a developer with assigned tasks, served from the cache when possible.

        Raises:
            NotFoundError: If the developer does not exist.
        """

        async def load() -> DeveloperDetailView:
            async with self.reading("get_developer_details") as session:
                developer = await self._require(session, developer_id, with_tasks=True)
                return DeveloperDetailView.from_developer(developer)

        return await self.cache.get_or_load(developer_detail_key(developer_id), load)

    async def list_developers(self, page_request: PageRequest) -> Page[DeveloperView]:
        async with self.reading("list_developers") as session:
            page = await developer_queries.list_developers(session, page_request)
            views = await self._views(session, page.items)
        return Page(items=views, page=page.page, size=page.size, total=page.total)

    async def search_developers(self, term: str) -> list[DeveloperView]:
        """Developers whose name or email contains term, ignoring case."""
        async with self.reading("search_developers") as session:
            developers = await developer_queries.search_developers(session, term.strip())
            return await self._views(session, developers)

    async def developers_by_skill(self, skill: str) -> list[DeveloperView]:
        """Developers holding a skill; matching ignores case and surrounding spaces."""
        async with self.reading("developers_by_skill") as session:
            developers = await developer_queries.list_developers_by_skill(session, skill)
            return await self._views(session, developers)

    async def developers_without_tasks(self) -> list[DeveloperView]:
        async with self.reading("developers_without_tasks") as session:
            developers = await developer_queries.list_developers_without_tasks(session)
        return [DeveloperView.from_developer(developer, task_count=0) for developer in developers]

    async def available_developers(self, max_tasks: int) -> list[DeveloperView]:
        """Developers with fewer than max_tasks assigned tasks.

        Raises:
            ValidationFailedError: If max_tasks is negative.
        """
        if max_tasks < 0:
            raise ValidationFailedError("Invalid task limit", {"maxTasks": "must be greater than or equal to 0"})
        async with self.reading("available_developers") as session:
            developers = await developer_queries.list_available_developers(session, max_tasks)
            return await self._views(session, developers)

    async def add_skill(self, developer_id: int, skill: str, actor: str | None = None) -> DeveloperView:
        """Add one skill, stored trimmed and lower-cased."""
        normalized = _require_skill(skill)
        return await self._change_skills(
            developer_id,
            lambda developer: developer.add_skill(normalized),
            {"action": "ADD_SKILL", "skill": normalized, "developerId": developer_id},
            actor,
        )

    async def remove_skill(self, developer_id: int, skill: str, actor: str | None = None) -> DeveloperView:
        """Remove one skill, matching case-insensitively."""
        normalized = _require_skill(skill)
        return await self._change_skills(
            developer_id,
            lambda developer: developer.remove_skill(normalized),
            {"action": "REMOVE_SKILL", "skill": normalized, "developerId": developer_id},
            actor,
        )

    async def replace_skills(
        self,
        developer_id: int,
        skills: Iterable[str],
        actor: str | None = None,
    ) -> DeveloperView:
        """Replace the whole skill set; blanks and duplicates are dropped."""
        wanted = sorted(normalize_skills(skills))
        return await self._change_skills(
            developer_id,
            lambda developer: developer.replace_skills(wanted),
            {"action": "UPDATE_SKILLS", "newSkills": wanted, "developerId": developer_id},
            actor,
        )

    async def email_exists(self, email: str) -> bool:
        async with self.reading("email_exists") as session:
            return await developer_queries.email_taken(session, email.strip())

    async def _change_skills(
        self,
        developer_id: int,
        mutate: Callable[[Developer], object],
        payload: dict[str, Any],
        actor: str | None,
    ) -> DeveloperView:
        async with self.writing(str(payload["action"]).lower()) as session:
            developer = await self._require(session, developer_id)
            old_skills = sorted(developer.skills)
            mutate(developer)
            await session.flush()
            counts = await developer_queries.count_assigned(session, [developer_id])
            view = DeveloperView.from_developer(developer, counts[developer_id])

        await self.cache.evict(*developer_keys(developer_id))
        logger.info(
            "developer_skills_changed",
            developer_id=developer_id,
            action=payload["action"],
            skills=view.skills,
            actor=resolve_actor(actor),
        )
        await self.recorder.record(
            ActionType.UPDATE,
            EntityType.DEVELOPER,
            developer_id,
            actor,
            {**payload, "oldSkills": old_skills},
        )
        return view

    async def _evict(
        self,
        developer_id: int,
        refs: list[tuple[int, int]],
        renamed: bool,
    ) -> None:
        keys = developer_keys(developer_id)
        if renamed:
            keys += task_keys(task_id for task_id, _ in refs)
            keys += project_detail_keys(project_id for _, project_id in refs)
        await self.cache.evict(*keys)

    async def _require(
        self,
        session: AsyncSession,
        developer_id: int,
        with_tasks: bool = False,
    ) -> Developer:
        developer = await developer_queries.get_developer(session, developer_id, with_tasks=with_tasks)
        if developer is None:
            raise NotFoundError("Developer", developer_id)
        return developer

    @staticmethod
    async def _views(session: AsyncSession, developers: Sequence[Developer]) -> list[DeveloperView]:
        counts = await developer_queries.count_assigned(session, [developer.id for developer in developers])
        return [DeveloperView.from_developer(developer, counts[developer.id]) for developer in developers]
