"""Developer model for Project Tracker.

Defines the Developer table and its skills collection. Skills are stored one
row per (developer, skill) in the developer_skills table, always trimmed and
lower-cased, so skill statistics aggregate case-insensitively.

Developers do not own tasks: deleting a developer unassigns their tasks.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from projecttracker.database.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from projecttracker.database.models.task import Task


def normalize_skill(skill: str | None) -> str | None:
    """Trim and lower-case a skill name.

    Returns:
        The normalized skill, or None when the input is None or blank.
    """
    if skill is None:
        return None
    normalized = skill.strip().lower()
    return normalized or None


def normalize_skills(skills: Iterable[str | None]) -> set[str]:
    """Normalize a collection of skill names, dropping blanks and duplicates."""
    result = set()
    for skill in skills:
        normalized = normalize_skill(skill)
        if normalized is not None:
            result.add(normalized)
    return result


class DeveloperSkill(Base):
    """One normalized skill held by a developer."""

    __tablename__ = "developer_skills"

    developer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("developers.id", ondelete="CASCADE"),
        primary_key=True,
    )
    skill: Mapped[str] = mapped_column(String(100), primary_key=True)


class Developer(TimestampMixin, Base):
    """A developer who can be assigned tasks.

    Attributes:
        id: Integer primary key (from TimestampMixin).
        name: Display name.
        email: Unique contact email.
        skill_entries: Normalized skill rows (loaded eagerly).
        assigned_tasks: Tasks currently assigned (loaded explicitly).
    """

    __tablename__ = "developers"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    skill_entries: Mapped[list[DeveloperSkill]] = relationship(
        DeveloperSkill,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    assigned_tasks: Mapped[list["Task"]] = relationship(
        "Task",
        back_populates="assigned_developer",
        lazy="raise",
        passive_deletes=True,
    )

    @property
    def skills(self) -> set[str]:
        """Normalized skill names held by this developer."""
        return {entry.skill for entry in self.skill_entries}

    def add_skill(self, skill: str | None) -> bool:
        """Add a skill after normalizing it.

        Returns:
            True if the skill was added, False if blank or already present.
        """
        normalized = normalize_skill(skill)
        if normalized is None or normalized in self.skills:
            return False
        self.skill_entries.append(DeveloperSkill(skill=normalized))
        return True

    def remove_skill(self, skill: str | None) -> bool:
        """Remove a skill, matching case-insensitively.

        Returns:
            True if the skill was present and removed.
        """
        normalized = normalize_skill(skill)
        for entry in list(self.skill_entries):
            if entry.skill == normalized:
                self.skill_entries.remove(entry)
                return True
        return False

    def replace_skills(self, skills: Iterable[str | None]) -> None:
        """Replace the skill set, touching only rows that actually change."""
        wanted = normalize_skills(skills)
        for entry in list(self.skill_entries):
            if entry.skill not in wanted:
                self.skill_entries.remove(entry)
        existing = self.skills
        for skill in sorted(wanted - existing):
            self.skill_entries.append(DeveloperSkill(skill=skill))
