"""Project model for Project Tracker.

Defines the Project table and ProjectStatus enum. A project owns its tasks:
deleting a project deletes every task that belongs to it.

Project names are unique case-insensitively, enforced by a functional
unique index on lower(name).
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from projecttracker.database.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from projecttracker.database.models.task import Task


class ProjectStatus(str, enum.Enum):
    """Lifecycle status for a project.

    States:
        PLANNING: Initial state, scope is being defined.
        IN_PROGRESS: Project is actively being worked on.
        ON_HOLD: Work temporarily suspended.
        COMPLETED: All work delivered.
        CANCELLED: Project abandoned.
    """

    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Project(TimestampMixin, Base):
    """A project tracked by the system.

    Attributes:
        id: Integer primary key (from TimestampMixin).
        name: Human-readable project name, unique ignoring case.
        description: Optional free-text description.
        deadline: Date by which the project is due.
        status: Current lifecycle status.
        tasks: Tasks owned by this project (loaded explicitly).
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    status: Mapped[ProjectStatus] = mapped_column(
        default=ProjectStatus.PLANNING,
        nullable=False,
    )

    tasks: Mapped[list["Task"]] = relationship(
        "Task",
        back_populates="project",
        lazy="raise",
        passive_deletes=True,
    )


Index("uq_projects_name_lower", func.lower(Project.name), unique=True)
