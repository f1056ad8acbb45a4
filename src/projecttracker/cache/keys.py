"""Cache keys for entity read projections.

A key names one cached projection of one entity: the namespace says which
projection (the entity on its own, or the entity with its related
collection), the entity type and ID say which row it was built from.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from projecttracker.database.models.audit import EntityType


class CacheNamespace(str, enum.Enum):
    """Kind of projection stored under a key.

    Values:
        ENTITY: Base read projection (ProjectView, DeveloperView, TaskView).
        DETAIL: Entity together with its related collection.
    """

    ENTITY = "entity"
    DETAIL = "detail"


@dataclass(frozen=True)
class CacheKey:
    """Identity of one cached projection."""

    namespace: CacheNamespace
    entity_type: EntityType
    entity_id: int

    def __str__(self) -> str:
        return f"{self.namespace.value}:{self.entity_type.value.lower()}:{self.entity_id}"


def project_key(project_id: int) -> CacheKey:
    return CacheKey(CacheNamespace.ENTITY, EntityType.PROJECT, project_id)


def project_detail_key(project_id: int) -> CacheKey:
    return CacheKey(CacheNamespace.DETAIL, EntityType.PROJECT, project_id)


def developer_key(developer_id: int) -> CacheKey:
    return CacheKey(CacheNamespace.ENTITY, EntityType.DEVELOPER, developer_id)


def developer_detail_key(developer_id: int) -> CacheKey:
    return CacheKey(CacheNamespace.DETAIL, EntityType.DEVELOPER, developer_id)


def task_key(task_id: int) -> CacheKey:
    return CacheKey(CacheNamespace.ENTITY, EntityType.TASK, task_id)


def project_keys(project_id: int | None) -> list[CacheKey]:
    """ENTITY and DETAIL keys of a project (empty for None)."""
    if project_id is None:
        return []
    return [project_key(project_id), project_detail_key(project_id)]


def developer_keys(developer_id: int | None) -> list[CacheKey]:
    """ENTITY and DETAIL keys of a developer (empty for None)."""
    if developer_id is None:
        return []
    return [developer_key(developer_id), developer_detail_key(developer_id)]


def task_keys(task_ids: Iterable[int]) -> list[CacheKey]:
    """ENTITY keys of several tasks."""
    return [task_key(task_id) for task_id in task_ids]


def _distinct(ids: Iterable[int | None]) -> list[int]:
    return sorted({entity_id for entity_id in ids if entity_id is not None})


def developers_keys(developer_ids: Iterable[int | None]) -> list[CacheKey]:
    """ENTITY and DETAIL keys of several developers; None and repeats are skipped."""
    return [key for developer_id in _distinct(developer_ids) for key in developer_keys(developer_id)]


def developer_detail_keys(developer_ids: Iterable[int | None]) -> list[CacheKey]:
    """DETAIL keys of several developers; None and repeats are skipped."""
    return [developer_detail_key(developer_id) for developer_id in _distinct(developer_ids)]


def project_detail_keys(project_ids: Iterable[int | None]) -> list[CacheKey]:
    """DETAIL keys of several projects; None and repeats are skipped."""
    return [project_detail_key(project_id) for project_id in _distinct(project_ids)]
