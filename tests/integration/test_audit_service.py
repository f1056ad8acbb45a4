"""Integration tests for the audit log service and recorder."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from projecttracker.audit.schemas import SearchCriteria
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.queries import audit as audit_queries
from projecttracker.database.queries.paging import PageRequest
from projecttracker.errors import NotFoundError, ValidationFailedError
from projecttracker.services.container import ServiceContainer


@pytest.fixture
def seed_entry(container: ServiceContainer) -> Callable[..., Awaitable[None]]:
    """Insert an audit entry directly with an explicit timestamp."""

    async def seed(timestamp: datetime, actor: str = "seed", **fields: Any) -> None:
        fields.setdefault("action_type", ActionType.CREATE)
        fields.setdefault("entity_type", EntityType.PROJECT)
        fields.setdefault("entity_id", 1)
        fields.setdefault("payload", {})
        async with container.audit_session_factory() as session, session.begin():
            await audit_queries.append_entry(session, actor_name=actor, timestamp=timestamp, **fields)

    return seed


@pytest.mark.integration
class TestCleanup:
    async def test_entry_at_cutoff_is_retained(self, container, clock, seed_entry) -> None:
        clock.tick = timedelta(0)
        await seed_entry(clock.now - timedelta(days=91), actor="older")
        await seed_entry(clock.now - timedelta(days=90), actor="boundary")
        await seed_entry(clock.now - timedelta(days=89), actor="newer")

        result = await container.audit.cleanup(90, "admin")

        assert result.deleted_count == 1
        assert result.retention_days == 90
        assert result.actor == "admin"
        assert result.timestamp == clock.now
        remaining = await container.audit.recent_logs(365)
        assert sorted(entry.actor_name for entry in remaining) == ["boundary", "newer"]

    async def test_default_retention(self, container, clock, seed_entry) -> None:
        await seed_entry(clock.now - timedelta(days=100))
        await seed_entry(clock.now - timedelta(days=10))

        result = await container.audit.cleanup()

        assert result.retention_days == 90
        assert result.deleted_count == 1
        assert result.actor == "system"

    async def test_zero_retention_deletes_past_entries(self, container, clock, seed_entry) -> None:
        await seed_entry(clock.now - timedelta(seconds=1))
        assert (await container.audit.cleanup(0)).deleted_count == 1

    async def test_negative_retention(self, container) -> None:
        with pytest.raises(ValidationFailedError):
            await container.audit.cleanup(-1)


@pytest.mark.integration
class TestSearch:
    async def test_default_window_is_thirty_days(self, container, clock, seed_entry) -> None:
        await seed_entry(clock.now - timedelta(days=31), actor="old")
        await seed_entry(clock.now - timedelta(days=29), actor="recent")

        page = await container.audit.search(SearchCriteria(), PageRequest())

        assert [entry.actor_name for entry in page.items] == ["recent"]

    async def test_start_defaults_to_window_before_now(self, container, clock, seed_entry) -> None:
        """With only an end, the window starts search_window_days before now."""
        await seed_entry(clock.now - timedelta(days=70), actor="old")
        await seed_entry(clock.now - timedelta(days=20), actor="inside")
        await seed_entry(clock.now - timedelta(days=1), actor="after")

        page = await container.audit.search(
            SearchCriteria(end=clock.now - timedelta(days=10)),
            PageRequest(),
        )

        assert [entry.actor_name for entry in page.items] == ["inside"]

    async def test_end_before_default_start_matches_nothing(self, container, clock, seed_entry) -> None:
        await seed_entry(clock.now - timedelta(days=70), actor="old")

        page = await container.audit.search(
            SearchCriteria(end=clock.now - timedelta(days=60)),
            PageRequest(),
        )

        assert page.total == 0

    async def test_end_defaults_to_now(self, container, clock, seed_entry) -> None:
        clock.tick = timedelta(0)
        await seed_entry(clock.now - timedelta(days=45), actor="old")
        await seed_entry(clock.now, actor="now")
        await seed_entry(clock.now + timedelta(days=1), actor="future")

        page = await container.audit.search(
            SearchCriteria(start=clock.now - timedelta(days=60)),
            PageRequest(),
        )

        assert [entry.actor_name for entry in page.items] == ["now", "old"]

    async def test_filters_combine(self, container, make_project, make_developer) -> None:
        await make_project("Apollo", actor="alice")
        await make_developer("Ada", actor="alice")
        await make_project("Gemini", actor="bob")

        page = await container.audit.search(
            SearchCriteria(entity_type=EntityType.PROJECT, actor_name="alice"),
            PageRequest(),
        )

        assert page.total == 1
        assert page.items[0].entity_type == EntityType.PROJECT
        assert page.items[0].actor_name == "alice"

    async def test_newest_first(self, container, make_project) -> None:
        first = await make_project("Apollo")
        second = await make_project("Gemini")

        page = await container.audit.search(SearchCriteria(), PageRequest())

        assert [entry.entity_id for entry in page.items] == [second.id, first.id]


@pytest.mark.integration
class TestAuditReads:
    async def test_get_log(self, container, make_project, audit_entries) -> None:
        project = await make_project("Apollo", actor="alice")
        entry = (await audit_entries())[0]

        loaded = await container.audit.get_log(entry.id)

        assert loaded.entity_id == project.id
        assert loaded.payload["name"] == "Apollo"

    async def test_get_missing_log(self, container) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await container.audit.get_log("missing")
        assert exc_info.value.entity == "AuditLogEntry"

    async def test_logs_for_entity(self, container, make_project, make_task) -> None:
        project = await make_project("Apollo")
        await make_task(project.id)
        await container.projects.delete_project(project.id)

        history = await container.audit.logs_for_entity(EntityType.PROJECT, project.id)

        assert [entry.action_type for entry in history] == [ActionType.DELETE, ActionType.CREATE]

    async def test_logs_between_rejects_inverted_range(self, container, clock) -> None:
        with pytest.raises(ValidationFailedError):
            await container.audit.logs_between(clock.now, clock.now - timedelta(days=1))

    async def test_recent_logs(self, container, clock, seed_entry) -> None:
        await seed_entry(clock.now - timedelta(days=8), actor="old")
        await seed_entry(clock.now - timedelta(days=2), actor="new")

        assert [entry.actor_name for entry in await container.audit.recent_logs(7)] == ["new"]

    async def test_list_logs_filters(self, container, make_project, make_developer) -> None:
        await make_project("Apollo")
        await make_developer("Ada")

        page = await container.audit.list_logs(PageRequest(), entity_type=EntityType.DEVELOPER)

        assert page.total == 1
        assert page.items[0].entity_type == EntityType.DEVELOPER


@pytest.mark.integration
class TestRecorder:
    async def test_blank_actor_becomes_system(self, make_project, audit_entries) -> None:
        await make_project("Apollo", actor="   ")
        assert (await audit_entries())[0].actor_name == "system"

    async def test_authentication_failure_entry(self, container, audit_entries) -> None:
        await container.recorder.record_authentication_failure("mallory", "bad password")

        entry = (await audit_entries())[0]
        assert entry.action_type == ActionType.UPDATE
        assert entry.entity_type == EntityType.DEVELOPER
        assert entry.entity_id is None
        assert entry.actor_name == "mallory"
        assert entry.payload["action"] == "LOGIN_FAILED"
        assert entry.payload["reason"] == "bad password"

    async def test_background_writes_land_after_drain(self, container, make_project, audit_entries) -> None:
        container.recorder.background = True

        await make_project("Apollo")

        entries = await audit_entries()
        assert container.recorder.pending == 0
        assert len(entries) == 1

    async def test_audit_store_failure_does_not_fail_mutation(
        self, container, engines, make_project
    ) -> None:
        _, audit_engine = engines
        async with audit_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE audit_logs")

        project = await make_project("Apollo")

        assert (await container.projects.get_project(project.id)).name == "Apollo"
