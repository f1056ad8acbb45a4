"""Shared plumbing for the business services.

Each service method opens its own session. Writes run inside one
primary-store transaction that commits when the ``writing`` block exits;
cache eviction and audit recording happen afterwards, on the caller's path.

Lower-layer failures are translated into the service error taxonomy here:
unique-constraint violations become ConflictError and any other SQLAlchemy
error becomes InternalFailureError (logged with its traceback).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from projecttracker.audit.recorder import AuditRecorder, Clock
from projecttracker.cache.store import EntityCache
from projecttracker.database.models.base import utcnow
from projecttracker.errors import ConflictError, InternalFailureError

logger = structlog.get_logger(__name__)


class BaseService:
    """Holds the collaborators every service needs.

    Args:
        session_factory: Session factory bound to the primary engine.
        cache: Entity cache for cached reads and evictions.
        recorder: Audit recorder for mutation events.
        clock: Source of "now" for time-relative queries.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: EntityCache,
        recorder: AuditRecorder,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.cache = cache
        self.recorder = recorder
        self._clock = clock

    @asynccontextmanager
    async def reading(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session for read-only work."""
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error("database_error", operation=operation, error=str(e), exc_info=True)
            raise InternalFailureError() from e

    @asynccontextmanager
    async def writing(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session with a transaction that commits on clean exit."""
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except IntegrityError as e:
            logger.warning("integrity_conflict", operation=operation, error=str(e.orig))
            raise ConflictError("Operation conflicts with existing data") from e
        except SQLAlchemyError as e:
            logger.error("database_error", operation=operation, error=str(e), exc_info=True)
            raise InternalFailureError() from e


def snapshot(view: BaseModel) -> dict[str, Any]:
    """JSON-safe camelCase dump of a view, used as an audit payload."""
    return view.model_dump(mode="json", by_alias=True)
