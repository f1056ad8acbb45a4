"""Best-effort audit recording for Project Tracker.

Every successful mutation appends one entry to the audit log store after the
primary transaction has committed. Recording never raises: a failing audit
store or an unserializable payload is logged and discarded, and the business
operation still succeeds.

Two delivery modes are supported:

- inline: the insert is awaited on the caller's path
- background: the insert runs as an asyncio task owned by the recorder, and
  the caller returns immediately; drain() waits for pending inserts
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.models.base import utcnow
from projecttracker.database.queries import audit as audit_queries

logger = structlog.get_logger(__name__)

DEFAULT_ACTOR = "system"

Clock = Callable[[], datetime]


def resolve_actor(actor: str | None) -> str:
    """Return the actor name, falling back to "system" when blank."""
    if actor is None or not actor.strip():
        return DEFAULT_ACTOR
    return actor.strip()


def _sort_sets(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted((_sort_sets(item) for item in value), key=str)
    if isinstance(value, Mapping):
        return {key: _sort_sets(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sort_sets(item) for item in value]
    return value


def to_json_payload(payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Convert a payload to JSON-safe data.

    Datetimes become ISO strings, enums their values, sets sorted lists, and
    pydantic models their camelCase dumps.

    Raises:
        pydantic_core.PydanticSerializationError: If a value cannot be converted.
    """
    if not payload:
        return {}
    return to_jsonable_python(_sort_sets(payload), by_alias=True)


class AuditRecorder:
    """Appends audit entries to the audit log store.

    Args:
        session_factory: Session factory bound to the audit engine.
        background: Run inserts as background tasks instead of inline.
        clock: Source of entry timestamps.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        background: bool = False,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self.background = background
        self._clock = clock
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of background inserts not yet finished."""
        return len(self._pending)

    async def record(
        self,
        action: ActionType,
        entity_type: EntityType,
        entity_id: int | None,
        actor: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        """Append one audit entry; never raises.

        Args:
            action: Kind of mutation.
            entity_type: Kind of entity affected.
            entity_id: Affected entity ID, or None for bulk actions.
            actor: Who performed the operation ("system" when omitted).
            payload: Change snapshot.
        """
        actor_name = resolve_actor(actor)
        try:
            data = to_json_payload(payload)
        except Exception:
            logger.error(
                "audit_write_failed",
                action=action.value,
                entity_type=entity_type.value,
                entity_id=entity_id,
                reason="payload_not_serializable",
                exc_info=True,
            )
            return

        timestamp = self._clock()
        if self.background:
            task = asyncio.create_task(
                self._write(action, entity_type, entity_id, actor_name, data, timestamp)
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return

        await self._write(action, entity_type, entity_id, actor_name, data, timestamp)

    async def record_authentication_failure(
        self,
        actor: str | None,
        reason: str,
    ) -> None:
        """Record a rejected login attempt reported by the identity provider.

        Stored as UPDATE/DEVELOPER with no entity ID.
        """
        await self.record(
            ActionType.UPDATE,
            EntityType.DEVELOPER,
            None,
            actor,
            {"action": "LOGIN_FAILED", "reason": reason, "attemptedAt": self._clock()},
        )

    async def drain(self) -> None:
        """Wait for every pending background insert to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _write(
        self,
        action: ActionType,
        entity_type: EntityType,
        entity_id: int | None,
        actor_name: str,
        payload: dict[str, Any],
        timestamp: datetime,
    ) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                entry = await audit_queries.append_entry(
                    session,
                    action_type=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    actor_name=actor_name,
                    payload=payload,
                    timestamp=timestamp,
                )
        except Exception:
            logger.error(
                "audit_write_failed",
                action=action.value,
                entity_type=entity_type.value,
                entity_id=entity_id,
                actor=actor_name,
                exc_info=True,
            )
            return

        logger.debug(
            "audit_recorded",
            audit_id=entry.id,
            action=action.value,
            entity_type=entity_type.value,
            entity_id=entity_id,
            actor=actor_name,
        )
