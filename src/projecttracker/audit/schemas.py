"""Read and query schemas for the audit log."""

from __future__ import annotations

from typing import Any

from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.schemas import CamelModel, UtcDatetime, ViewModel


class AuditLogSummary(ViewModel):
    """Audit entry without its payload, used in paged listings."""

    id: str
    action_type: ActionType
    entity_type: EntityType
    entity_id: int | None
    timestamp: UtcDatetime
    actor_name: str


class AuditLogView(AuditLogSummary):
    """Full audit entry including the change payload."""

    payload: dict[str, Any]


class SearchCriteria(CamelModel):
    """Filters for audit search; unset filters match everything.

    When end is unset it defaults to now; when start is unset it defaults to
    the configured trailing window before now.
    """

    entity_type: EntityType | None = None
    action_type: ActionType | None = None
    actor_name: str | None = None
    start: UtcDatetime | None = None
    end: UtcDatetime | None = None


class CleanupResult(ViewModel):
    """Outcome of an audit retention cleanup."""

    deleted_count: int
    retention_days: int
    actor: str
    timestamp: UtcDatetime
