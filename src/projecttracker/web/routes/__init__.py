"""FastAPI route definitions for Project Tracker.

One router factory per resource: projects, developers, tasks, audit logs,
statistics, and health checks.
"""

from __future__ import annotations

from projecttracker.web.routes.audit import create_audit_router
from projecttracker.web.routes.developers import SkillsReplace, create_developers_router
from projecttracker.web.routes.health import (
    HealthResponse,
    ReadinessResponse,
    create_health_router,
)
from projecttracker.web.routes.projects import create_projects_router
from projecttracker.web.routes.statistics import create_statistics_router
from projecttracker.web.routes.tasks import (
    BulkAssignRequest,
    BulkCountResponse,
    BulkStatusRequest,
    BulkUpdateRequest,
    create_tasks_router,
)

__all__ = [
    # Audit
    "create_audit_router",
    # Developers
    "SkillsReplace",
    "create_developers_router",
    # Health
    "HealthResponse",
    "ReadinessResponse",
    "create_health_router",
    # Projects
    "create_projects_router",
    # Statistics
    "create_statistics_router",
    # Tasks
    "BulkAssignRequest",
    "BulkCountResponse",
    "BulkStatusRequest",
    "BulkUpdateRequest",
    "create_tasks_router",
]
