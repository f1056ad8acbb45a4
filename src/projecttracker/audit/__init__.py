"""Audit logging for Project Tracker.

Public API:
    AuditRecorder: Best-effort, non-blocking append of audit entries.
    AuditLogService: Query, search and retention cleanup of the audit log.
"""

from projecttracker.audit.recorder import DEFAULT_ACTOR, AuditRecorder, resolve_actor
from projecttracker.audit.schemas import AuditLogSummary, AuditLogView, CleanupResult, SearchCriteria
from projecttracker.audit.service import AuditLogService

__all__ = [
    "DEFAULT_ACTOR",
    "AuditRecorder",
    "AuditLogService",
    "AuditLogSummary",
    "AuditLogView",
    "CleanupResult",
    "SearchCriteria",
    "resolve_actor",
]
