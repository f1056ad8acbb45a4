"""Audit log query functions for Project Tracker.

The audit log is append-only: entries are inserted, listed, counted and
removed in bulk by retention cleanup, never updated. All functions expect a
session bound to the audit engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from projecttracker.database.models.audit import ActionType, AuditLogEntry, EntityType
from projecttracker.database.queries.paging import Page, PageRequest, SortDirection, fetch_page

logger = structlog.get_logger(__name__)

AUDIT_SORT_FIELDS: dict[str, Any] = {
    "id": AuditLogEntry.id,
    "timestamp": AuditLogEntry.timestamp,
    "actor_name": AuditLogEntry.actor_name,
    "entity_type": AuditLogEntry.entity_type,
    "action_type": AuditLogEntry.action_type,
}


async def append_entry(
    session: AsyncSession,
    action_type: ActionType,
    entity_type: EntityType,
    entity_id: int | None,
    actor_name: str,
    payload: dict[str, Any],
    timestamp: datetime,
) -> AuditLogEntry:
    """Insert one audit entry.

    Args:
        session: Active async session on the audit store.
        action_type: Kind of mutation.
        entity_type: Kind of entity affected.
        entity_id: Affected entity ID, or None for bulk actions.
        actor_name: Who performed the operation.
        payload: JSON-safe change snapshot.
        timestamp: Time of the append.

    Returns:
        The inserted AuditLogEntry.
    """
    entry = AuditLogEntry(
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_name=actor_name,
        payload=payload,
        timestamp=timestamp,
    )
    session.add(entry)
    await session.flush()
    return entry


async def get_entry(session: AsyncSession, entry_id: str) -> AuditLogEntry | None:
    """Retrieve an audit entry by ID."""
    result = await session.execute(select(AuditLogEntry).where(AuditLogEntry.id == entry_id))
    return result.scalar_one_or_none()


async def list_entries(
    session: AsyncSession,
    page_request: PageRequest,
    entity_type: EntityType | None = None,
    action_type: ActionType | None = None,
    actor_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Page[AuditLogEntry]:
    """List audit entries matching optional filters, newest first by default.

    Args:
        session: Active async session on the audit store.
        page_request: Paging and sorting parameters.
        entity_type: Optional entity type filter.
        action_type: Optional action type filter.
        actor_name: Optional exact actor filter.
        start: Optional inclusive lower timestamp bound.
        end: Optional inclusive upper timestamp bound.

    Returns:
        Page of AuditLogEntry.
    """
    stmt = select(AuditLogEntry)
    if entity_type is not None:
        stmt = stmt.where(AuditLogEntry.entity_type == entity_type)
    if action_type is not None:
        stmt = stmt.where(AuditLogEntry.action_type == action_type)
    if actor_name is not None:
        stmt = stmt.where(AuditLogEntry.actor_name == actor_name)
    if start is not None:
        stmt = stmt.where(AuditLogEntry.timestamp >= start)
    if end is not None:
        stmt = stmt.where(AuditLogEntry.timestamp <= end)

    return await fetch_page(
        session,
        stmt,
        page_request,
        AUDIT_SORT_FIELDS,
        ("timestamp", SortDirection.DESC),
    )


async def entries_for_entity(
    session: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
) -> list[AuditLogEntry]:
    """List every entry for one entity, newest first."""
    stmt = (
        select(AuditLogEntry)
        .where(AuditLogEntry.entity_type == entity_type)
        .where(AuditLogEntry.entity_id == entity_id)
        .order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def entries_between(
    session: AsyncSession,
    start: datetime,
    end: datetime | None = None,
) -> list[AuditLogEntry]:
    """List entries with start <= timestamp (<= end when given), newest first."""
    stmt = select(AuditLogEntry).where(AuditLogEntry.timestamp >= start)
    if end is not None:
        stmt = stmt.where(AuditLogEntry.timestamp <= end)
    stmt = stmt.order_by(AuditLogEntry.timestamp.desc(), AuditLogEntry.id.asc())
    return list((await session.execute(stmt)).scalars().all())


async def count_entries(session: AsyncSession, since: datetime | None = None) -> int:
    """Count entries, optionally only those at or after since."""
    stmt = select(func.count(AuditLogEntry.id))
    if since is not None:
        stmt = stmt.where(AuditLogEntry.timestamp >= since)
    return (await session.execute(stmt)).scalar_one()


async def delete_before(session: AsyncSession, cutoff: datetime) -> int:
    """Delete every entry strictly older than cutoff.

    Returns:
        Number of entries deleted.
    """
    result = await session.execute(
        delete(AuditLogEntry)
        .where(AuditLogEntry.timestamp < cutoff)
        .execution_options(synchronize_session=False)
    )
    logger.debug("audit_entries_deleted", cutoff=cutoff.isoformat(), count=result.rowcount)
    return result.rowcount


async def _count_by(session: AsyncSession, column: Any) -> dict[Any, int]:
    stmt = select(column, func.count(AuditLogEntry.id)).group_by(column)
    return {key: count for key, count in (await session.execute(stmt)).all()}


async def count_by_entity_type(session: AsyncSession) -> dict[str, int]:
    """Count entries per entity type; every type is present (zero-filled)."""
    counts = await _count_by(session, AuditLogEntry.entity_type)
    return {entity_type.value: counts.get(entity_type, 0) for entity_type in EntityType}


async def count_by_action_type(session: AsyncSession) -> dict[str, int]:
    """Count entries per action type; every type is present (zero-filled)."""
    counts = await _count_by(session, AuditLogEntry.action_type)
    return {action_type.value: counts.get(action_type, 0) for action_type in ActionType}


async def count_by_actor(session: AsyncSession) -> dict[str, int]:
    """Count entries per actor name."""
    counts = await _count_by(session, AuditLogEntry.actor_name)
    return dict(sorted(counts.items()))
