"""Audit log model for Project Tracker.

The audit log is an append-only record of every mutating operation. It is
kept in a store independent of the primary one, so its table is declared on
its own AuditBase metadata and bound to a separate engine.

Entries are immutable once written and are only removed by age-based
retention cleanup.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from projecttracker.database.models.base import utcnow


class ActionType(str, enum.Enum):
    """Kind of mutation recorded by an audit entry."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EntityType(str, enum.Enum):
    """Kind of entity an audit entry (or cache key) refers to."""

    PROJECT = "PROJECT"
    TASK = "TASK"
    DEVELOPER = "DEVELOPER"


def new_audit_id() -> str:
    """Generate an opaque audit entry identifier."""
    return uuid.uuid4().hex


class AuditBase(DeclarativeBase):
    """Declarative base for the audit log store."""

    pass


class AuditLogEntry(AuditBase):
    """One immutable audit record.

    Attributes:
        id: Opaque identifier generated at append time.
        action_type: CREATE, UPDATE, or DELETE.
        entity_type: PROJECT, TASK, or DEVELOPER.
        entity_id: Affected entity id; None for bulk actions and failed logins.
        timestamp: Server time at append.
        actor_name: Who performed the operation.
        payload: Free-form JSON snapshot of the change.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=new_audit_id,
    )
    action_type: Mapped[ActionType] = mapped_column(nullable=False, index=True)
    entity_type: Mapped[EntityType] = mapped_column(nullable=False, index=True)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )
    actor_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
