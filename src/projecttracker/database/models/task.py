"""Task model for Project Tracker.

Defines the Task table and TaskStatus enum. Every task belongs to exactly one
project and may be assigned to one developer. The owning project and the
assignee are eagerly joined on every task load, since task projections always
show their names.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from projecttracker.database.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from projecttracker.database.models.developer import Developer
    from projecttracker.database.models.project import Project


class TaskStatus(str, enum.Enum):
    """Workflow status for a task.

    States:
        TODO: Not started.
        IN_PROGRESS: Being worked on.
        IN_REVIEW: Work complete, pending review.
        COMPLETED: Done.
        BLOCKED: Cannot progress because of an external factor.
    """

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


class Task(TimestampMixin, Base):
    """A unit of work within a project.

    Attributes:
        id: Integer primary key (from TimestampMixin).
        title: Short description of the task.
        description: Optional detailed description.
        status: Current workflow status.
        due_date: Optional due date.
        project_id: Foreign key to the owning project.
        assigned_developer_id: Optional foreign key to the assignee.
        project: Owning Project (joined eagerly).
        assigned_developer: Assigned Developer, if any (joined eagerly).
    """

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TaskStatus] = mapped_column(
        default=TaskStatus.TODO,
        nullable=False,
    )
    due_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    project_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_developer_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("developers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    project: Mapped["Project"] = relationship(
        "Project",
        back_populates="tasks",
        lazy="joined",
        innerjoin=True,
    )
    assigned_developer: Mapped["Developer | None"] = relationship(
        "Developer",
        back_populates="assigned_tasks",
        lazy="joined",
    )

    def is_overdue(self, now: datetime | None = None) -> bool:
        """Return True if the due date has passed and the task is not completed."""
        if self.due_date is None or self.status == TaskStatus.COMPLETED:
            return False
        current = now or utcnow()
        due = self.due_date
        # SQLite hands back naive datetimes; all stored values are UTC.
        if due.tzinfo is None:
            current = current.astimezone(timezone.utc).replace(tzinfo=None)
        return due < current
