"""Cached reads must match the stores after every mutation.

Each test warms every cached projection, runs one mutation through the
cached container, and compares each cached read with the same read from a
container that has caching disabled but shares the same stores.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable
from dataclasses import dataclass, field

import pytest
import pytest_asyncio

from projecttracker.config import CacheConfig, ProjectTrackerConfig
from projecttracker.database.models.project import ProjectStatus
from projecttracker.database.models.task import TaskStatus
from projecttracker.errors import NotFoundError
from projecttracker.services.container import ServiceContainer, build_container
from projecttracker.services.schemas import BulkTaskUpdate, DeveloperUpdate, ProjectUpdate, TaskUpdate


@dataclass
class World:
    project_ids: list[int] = field(default_factory=list)
    developer_ids: list[int] = field(default_factory=list)
    task_ids: list[int] = field(default_factory=list)


async def _reads(services: ServiceContainer, world: World) -> dict[str, object]:
    results: dict[str, object] = {}

    async def read(name: str, call: Awaitable[object]) -> None:
        try:
            results[name] = await call
        except NotFoundError:
            results[name] = "missing"

    for project_id in world.project_ids:
        await read(f"project:{project_id}", services.projects.get_project(project_id))
        await read(f"project-detail:{project_id}", services.projects.get_project_details(project_id))
    for developer_id in world.developer_ids:
        await read(f"developer:{developer_id}", services.developers.get_developer(developer_id))
        await read(f"developer-detail:{developer_id}", services.developers.get_developer_details(developer_id))
    for task_id in world.task_ids:
        await read(f"task:{task_id}", services.tasks.get_task(task_id))
    return results


@pytest_asyncio.fixture
async def uncached(engines, clock) -> AsyncGenerator[ServiceContainer, None]:
    primary, audit = engines
    config = ProjectTrackerConfig(cache=CacheConfig(enabled=False))
    yield build_container(config, engine=primary, audit_engine=audit, clock=clock)


@pytest_asyncio.fixture
async def world(make_project, make_developer, make_task) -> World:
    """Two projects, two developers, and four tasks spread across them."""
    apollo = await make_project("Apollo")
    gemini = await make_project("Gemini")
    ada = await make_developer("Ada", skills=["python"])
    bob = await make_developer("Bob", skills=["go"])
    tasks = [
        await make_task(apollo.id, "A1", assigned_developer_id=ada.id),
        await make_task(apollo.id, "A2", assigned_developer_id=bob.id),
        await make_task(gemini.id, "G1", assigned_developer_id=ada.id),
        await make_task(gemini.id, "G2"),
    ]
    return World(
        project_ids=[apollo.id, gemini.id],
        developer_ids=[ada.id, bob.id],
        task_ids=[task.id for task in tasks],
    )


async def assert_consistent(container: ServiceContainer, uncached: ServiceContainer, world: World) -> None:
    assert await _reads(container, world) == await _reads(uncached, world)


@pytest.mark.integration
class TestCacheConsistency:
    @pytest.fixture(autouse=True)
    async def warm(self, container, world) -> None:
        await _reads(container, world)

    async def test_project_rename(self, container, uncached, world) -> None:
        await container.projects.update_project(world.project_ids[0], ProjectUpdate(name="Apollo 11"))
        await assert_consistent(container, uncached, world)

    async def test_project_status_change(self, container, uncached, world) -> None:
        await container.projects.update_project(world.project_ids[1], ProjectUpdate(status=ProjectStatus.ON_HOLD))
        await assert_consistent(container, uncached, world)

    async def test_project_delete(self, container, uncached, world) -> None:
        await container.projects.delete_project(world.project_ids[0])
        await assert_consistent(container, uncached, world)

    async def test_developer_rename(self, container, uncached, world) -> None:
        await container.developers.update_developer(world.developer_ids[0], DeveloperUpdate(name="Ada L."))
        await assert_consistent(container, uncached, world)

    async def test_developer_delete(self, container, uncached, world) -> None:
        await container.developers.delete_developer(world.developer_ids[0])
        await assert_consistent(container, uncached, world)

    async def test_skill_changes(self, container, uncached, world) -> None:
        developer_id = world.developer_ids[1]
        await container.developers.add_skill(developer_id, "rust")
        await container.developers.remove_skill(developer_id, "go")
        await assert_consistent(container, uncached, world)
        await container.developers.replace_skills(developer_id, ["Java"])
        await assert_consistent(container, uncached, world)

    async def test_task_create_and_delete(self, container, uncached, world, make_task) -> None:
        task = await make_task(world.project_ids[1], "G3", assigned_developer_id=world.developer_ids[1])
        world.task_ids.append(task.id)
        await assert_consistent(container, uncached, world)

        await container.tasks.delete_task(world.task_ids[0])
        await assert_consistent(container, uncached, world)

    async def test_task_moves_project_and_assignee(self, container, uncached, world) -> None:
        await container.tasks.update_task(
            world.task_ids[0],
            TaskUpdate(project_id=world.project_ids[1], assigned_developer_id=world.developer_ids[1]),
        )
        await assert_consistent(container, uncached, world)

    async def test_assign_and_unassign(self, container, uncached, world) -> None:
        await container.tasks.assign_task(world.task_ids[3], world.developer_ids[1])
        await assert_consistent(container, uncached, world)
        await container.tasks.unassign_task(world.task_ids[0])
        await assert_consistent(container, uncached, world)

    async def test_bulk_assign(self, container, uncached, world) -> None:
        await container.bulk.bulk_assign(world.task_ids, world.developer_ids[1])
        await assert_consistent(container, uncached, world)

    async def test_bulk_status(self, container, uncached, world) -> None:
        await container.bulk.bulk_update_status(world.project_ids[0], TaskStatus.COMPLETED)
        await assert_consistent(container, uncached, world)

    async def test_bulk_update(self, container, uncached, world) -> None:
        await container.bulk.bulk_update(
            world.task_ids,
            BulkTaskUpdate(status=TaskStatus.BLOCKED, assigned_developer_id=world.developer_ids[0]),
        )
        await assert_consistent(container, uncached, world)
