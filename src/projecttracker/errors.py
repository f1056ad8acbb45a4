"""Error taxonomy for Project Tracker.

Every failure surfaced by the service layer is one of four kinds:

- NotFoundError: a referenced project, developer, task, or audit entry is absent
- ValidationFailedError: malformed input, with field-level messages
- ConflictError: a unique project name or developer email is already taken
- InternalFailureError: an unexpected lower-layer error (details are logged,
  not exposed)

Business-rule violations are raised before any audit entry is written, so a
rejected attempt leaves no trace in the audit log.
"""

from __future__ import annotations

from typing import Any


class ProjectTrackerError(Exception):
    """Base class for all service-layer errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-safe response body."""
        return {"error": self.code, "message": self.message}


class NotFoundError(ProjectTrackerError):
    """A referenced entity does not exist.

    Attributes:
        entity: Entity label (e.g. "Project", "AuditLogEntry")
        entity_id: Identifier that was looked up
    """

    code = "not_found"

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found with ID: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailedError(ProjectTrackerError):
    """Input failed validation.

    Attributes:
        field_errors: Mapping of field name to validation message
    """

    code = "validation_failed"

    def __init__(
        self,
        message: str,
        field_errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.field_errors = dict(field_errors or {})

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["fieldErrors"] = self.field_errors
        return body


class ConflictError(ProjectTrackerError):
    """A uniqueness rule would be violated."""

    code = "conflict"


class InternalFailureError(ProjectTrackerError):
    """An unexpected failure in a lower layer."""

    code = "internal_failure"

    def __init__(self, message: str = "An internal error occurred") -> None:
        super().__init__(message)
