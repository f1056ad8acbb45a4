"""Audit log query, search and retention surface.

All reads run against the audit store's own session factory. Timestamps are
compared in UTC; entries exactly at a cleanup cutoff are retained.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from projecttracker.audit.recorder import Clock, resolve_actor
from projecttracker.audit.schemas import AuditLogSummary, AuditLogView, CleanupResult, SearchCriteria
from projecttracker.config import AuditConfig
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.models.base import as_utc, utcnow
from projecttracker.database.queries import audit as audit_queries
from projecttracker.database.queries.paging import Page, PageRequest
from projecttracker.errors import NotFoundError, ValidationFailedError

logger = structlog.get_logger(__name__)


class AuditLogService:
    """Reads and maintains the audit log.

    Args:
        session_factory: Session factory bound to the audit engine.
        config: Audit configuration (retention and search defaults).
        clock: Source of "now".
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: AuditConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.config = config or AuditConfig()
        self._clock = clock

    async def get_log(self, log_id: str) -> AuditLogView:
        """Return a full audit entry.

        Raises:
            NotFoundError: If no entry has the given ID.
        """
        async with self._session_factory() as session:
            entry = await audit_queries.get_entry(session, log_id)
        if entry is None:
            raise NotFoundError("AuditLogEntry", log_id)
        return AuditLogView.model_validate(entry)

    async def list_logs(
        self,
        page_request: PageRequest,
        entity_type: EntityType | None = None,
        action_type: ActionType | None = None,
        actor_name: str | None = None,
    ) -> Page[AuditLogSummary]:
        """List audit entry summaries, newest first unless sorted otherwise."""
        async with self._session_factory() as session:
            page = await audit_queries.list_entries(
                session,
                page_request,
                entity_type=entity_type,
                action_type=action_type,
                actor_name=actor_name,
            )
        return page.map(AuditLogSummary.model_validate)

    async def logs_for_entity(self, entity_type: EntityType, entity_id: int) -> list[AuditLogView]:
        """Every entry recorded for one entity, newest first."""
        async with self._session_factory() as session:
            entries = await audit_queries.entries_for_entity(session, entity_type, entity_id)
        return [AuditLogView.model_validate(entry) for entry in entries]

    async def logs_between(self, start: datetime, end: datetime) -> list[AuditLogView]:
        """Entries with start <= timestamp <= end, newest first.

        Raises:
            ValidationFailedError: If start is after end.
        """
        start, end = as_utc(start), as_utc(end)
        if start > end:
            raise ValidationFailedError(
                "Invalid date range",
                {"startDate": "must not be after endDate"},
            )
        async with self._session_factory() as session:
            entries = await audit_queries.entries_between(session, start, end)
        return [AuditLogView.model_validate(entry) for entry in entries]

    async def recent_logs(self, days: int = 7) -> list[AuditLogView]:
        """Entries recorded within the last days days."""
        if days < 0:
            raise ValidationFailedError("Invalid day count", {"days": "must be greater than or equal to 0"})
        since = self._clock() - timedelta(days=days)
        async with self._session_factory() as session:
            entries = await audit_queries.entries_between(session, since)
        return [AuditLogView.model_validate(entry) for entry in entries]

    async def search(
        self,
        criteria: SearchCriteria,
        page_request: PageRequest,
    ) -> Page[AuditLogSummary]:
        """Search entries by criteria within a time window.

        end defaults to now; start defaults to search_window_days before now,
        whatever end is.
        """
        now = self._clock()
        end = as_utc(criteria.end) or now
        start = as_utc(criteria.start) or now - timedelta(days=self.config.search_window_days)

        async with self._session_factory() as session:
            page = await audit_queries.list_entries(
                session,
                page_request,
                entity_type=criteria.entity_type,
                action_type=criteria.action_type,
                actor_name=criteria.actor_name,
                start=start,
                end=end,
            )

        logger.debug(
            "audit_search",
            start=start.isoformat(),
            end=end.isoformat(),
            total=page.total,
        )
        return page.map(AuditLogSummary.model_validate)

    async def cleanup(
        self,
        retention_days: int | None = None,
        actor: str | None = None,
    ) -> CleanupResult:
        """Delete entries older than the retention window.

        Args:
            retention_days: Days of history to keep; defaults to the
                configured retention.
            actor: Who requested the cleanup.

        Returns:
            CleanupResult with the exact number of entries removed.

        Raises:
            ValidationFailedError: If retention_days is negative.
        """
        if retention_days is None:
            retention_days = self.config.default_retention_days
        if retention_days < 0:
            raise ValidationFailedError(
                "Invalid retention period",
                {"retentionDays": "must be greater than or equal to 0"},
            )

        now = self._clock()
        cutoff = now - timedelta(days=retention_days)
        async with self._session_factory() as session, session.begin():
            deleted = await audit_queries.delete_before(session, cutoff)

        actor_name = resolve_actor(actor)
        logger.info(
            "audit_cleanup_completed",
            deleted_count=deleted,
            retention_days=retention_days,
            actor=actor_name,
        )
        return CleanupResult(
            deleted_count=deleted,
            retention_days=retention_days,
            actor=actor_name,
            timestamp=now,
        )
