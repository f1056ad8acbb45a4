"""SQLAlchemy ORM models for Project Tracker.

This module defines the primary-store schema (projects, developers, developer
skills, tasks) and the separately stored audit log table.

All models use SQLAlchemy 2.0 declarative style with Mapped[] type annotations.
"""

from projecttracker.database.models.audit import (
    ActionType,
    AuditBase,
    AuditLogEntry,
    EntityType,
)
from projecttracker.database.models.base import Base, TimestampMixin, as_utc, utcnow
from projecttracker.database.models.developer import (
    Developer,
    DeveloperSkill,
    normalize_skill,
    normalize_skills,
)
from projecttracker.database.models.project import Project, ProjectStatus
from projecttracker.database.models.task import Task, TaskStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "as_utc",
    "Project",
    "ProjectStatus",
    "Developer",
    "DeveloperSkill",
    "normalize_skill",
    "normalize_skills",
    "Task",
    "TaskStatus",
    "AuditBase",
    "AuditLogEntry",
    "ActionType",
    "EntityType",
]
