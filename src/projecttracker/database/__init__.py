"""Database layer for Project Tracker.

This module handles database connections and session management for the two
independent stores (primary and audit), and exposes the ORM models.

Public API:
    get_engine: Create the primary-store AsyncEngine from DatabaseConfig.
    get_audit_engine: Create the audit-store AsyncEngine from AuditConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    create_schema: Create all tables in both stores.
"""

from projecttracker.database.connection import (
    create_schema,
    get_audit_engine,
    get_engine,
    get_session_factory,
)
from projecttracker.database.models import (
    ActionType,
    AuditBase,
    AuditLogEntry,
    Base,
    Developer,
    DeveloperSkill,
    EntityType,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TimestampMixin,
)

__all__ = [
    "get_engine",
    "get_audit_engine",
    "get_session_factory",
    "create_schema",
    "Base",
    "TimestampMixin",
    "Project",
    "ProjectStatus",
    "Developer",
    "DeveloperSkill",
    "Task",
    "TaskStatus",
    "AuditBase",
    "AuditLogEntry",
    "ActionType",
    "EntityType",
]
