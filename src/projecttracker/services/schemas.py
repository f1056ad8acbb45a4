"""Request and view schemas for the business services.

Request models validate input before any store access. View models are the
immutable read projections returned by services and held in the entity
cache; they are built from ORM rows inside the session that loaded them.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import Field, StringConstraints, computed_field, model_validator

from projecttracker.database.models.base import utcnow
from projecttracker.database.models.developer import Developer
from projecttracker.database.models.project import Project, ProjectStatus
from projecttracker.database.models.task import Task, TaskStatus
from projecttracker.schemas import CamelModel, UtcDatetime, ViewModel

ProjectName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
DeveloperName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
Email = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        max_length=100,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    ),
]
TaskTitle = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


def _reject_nulls(model: CamelModel, fields: tuple[str, ...]) -> None:
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")


# --- Requests ---


class ProjectCreate(CamelModel):
    """Fields for a new project."""

    name: ProjectName
    description: str | None = Field(default=None, max_length=500)
    deadline: UtcDatetime
    status: ProjectStatus = ProjectStatus.PLANNING


class ProjectUpdate(CamelModel):
    """Partial project update; only fields that are set are applied."""

    name: ProjectName | None = None
    description: str | None = Field(default=None, max_length=500)
    deadline: UtcDatetime | None = None
    status: ProjectStatus | None = None

    @model_validator(mode="after")
    def check_required_not_null(self) -> ProjectUpdate:
        _reject_nulls(self, ("name", "deadline", "status"))
        return self


class DeveloperCreate(CamelModel):
    """Fields for a new developer."""

    name: DeveloperName
    email: Email
    skills: list[str] = Field(default_factory=list)


class DeveloperUpdate(CamelModel):
    """Partial developer update; skills, when set, replace the whole set."""

    name: DeveloperName | None = None
    email: Email | None = None
    skills: list[str] | None = None

    @model_validator(mode="after")
    def check_required_not_null(self) -> DeveloperUpdate:
        _reject_nulls(self, ("name", "email"))
        return self


class TaskCreate(CamelModel):
    """Fields for a new task."""

    title: TaskTitle
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    due_date: UtcDatetime | None = None
    project_id: int
    assigned_developer_id: int | None = None


class TaskUpdate(CamelModel):
    """Partial task update.

    Fields left unset are untouched. An explicit null assigned_developer_id
    unassigns the task; an explicit null due_date or description clears it.
    """

    title: TaskTitle | None = None
    description: str | None = None
    status: TaskStatus | None = None
    due_date: UtcDatetime | None = None
    project_id: int | None = None
    assigned_developer_id: int | None = None

    @model_validator(mode="after")
    def check_required_not_null(self) -> TaskUpdate:
        _reject_nulls(self, ("title", "status", "project_id"))
        return self


class BulkTaskUpdate(CamelModel):
    """Changes applied to every task of a bulk update; null fields are skipped."""

    status: TaskStatus | None = None
    assigned_developer_id: int | None = None
    due_date: UtcDatetime | None = None

    def changes(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("status", self.status),
                ("assigned_developer_id", self.assigned_developer_id),
                ("due_date", self.due_date),
            )
            if value is not None
        }


class TaskCriteria(CamelModel):
    """Task search filters; unset filters match everything."""

    project_id: int | None = None
    developer_id: int | None = None
    status: TaskStatus | None = None
    title: str | None = None
    unassigned_only: bool = False


# --- Views ---


class TaskSummary(ViewModel):
    """Compact task line used inside project and developer details."""

    id: int
    title: str
    status: TaskStatus
    due_date: UtcDatetime | None
    assigned_developer_name: str | None

    @classmethod
    def from_task(cls, task: Task, developer_name: str | None = None) -> TaskSummary:
        if developer_name is None and task.assigned_developer is not None:
            developer_name = task.assigned_developer.name
        return cls(
            id=task.id,
            title=task.title,
            status=task.status,
            due_date=task.due_date,
            assigned_developer_name=developer_name,
        )


class TaskView(ViewModel):
    """Task with the names of its project and assignee."""

    id: int
    title: str
    description: str | None
    status: TaskStatus
    due_date: UtcDatetime | None
    project_id: int
    project_name: str
    assigned_developer_id: int | None
    assigned_developer_name: str | None
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @computed_field(alias="isOverdue")  # type: ignore[prop-decorator]
    @property
    def is_overdue(self) -> bool:
        if self.due_date is None or self.status == TaskStatus.COMPLETED:
            return False
        return self.due_date < utcnow()

    @classmethod
    def from_task(cls, task: Task) -> TaskView:
        developer = task.assigned_developer
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            due_date=task.due_date,
            project_id=task.project_id,
            project_name=task.project.name,
            assigned_developer_id=task.assigned_developer_id,
            assigned_developer_name=developer.name if developer is not None else None,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class ProjectView(ViewModel):
    """Project with its task count."""

    id: int
    name: str
    description: str | None
    deadline: UtcDatetime
    status: ProjectStatus
    task_count: int
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_project(cls, project: Project, task_count: int) -> ProjectView:
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            deadline=project.deadline,
            status=project.status,
            task_count=task_count,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class ProjectDetailView(ViewModel):
    """Project together with summaries of all its tasks."""

    id: int
    name: str
    description: str | None
    deadline: UtcDatetime
    status: ProjectStatus
    tasks: list[TaskSummary]
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_project(cls, project: Project) -> ProjectDetailView:
        """Build from a project whose tasks collection is loaded."""
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            deadline=project.deadline,
            status=project.status,
            tasks=[TaskSummary.from_task(task) for task in sorted(project.tasks, key=lambda t: t.id)],
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class DeveloperView(ViewModel):
    """Developer with sorted skills and assigned task count."""

    id: int
    name: str
    email: str
    skills: list[str]
    task_count: int
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_developer(cls, developer: Developer, task_count: int) -> DeveloperView:
        return cls(
            id=developer.id,
            name=developer.name,
            email=developer.email,
            skills=sorted(developer.skills),
            task_count=task_count,
            created_at=developer.created_at,
            updated_at=developer.updated_at,
        )


class DeveloperDetailView(ViewModel):
    """Developer together with summaries of the tasks assigned to them."""

    id: int
    name: str
    email: str
    skills: list[str]
    assigned_tasks: list[TaskSummary]
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_developer(cls, developer: Developer) -> DeveloperDetailView:
        """Build from a developer whose assigned_tasks collection is loaded."""
        return cls(
            id=developer.id,
            name=developer.name,
            email=developer.email,
            skills=sorted(developer.skills),
            assigned_tasks=[
                TaskSummary.from_task(task, developer_name=developer.name)
                for task in sorted(developer.assigned_tasks, key=lambda t: t.id)
            ],
            created_at=developer.created_at,
            updated_at=developer.updated_at,
        )
