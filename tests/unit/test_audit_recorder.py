"""Unit tests for the audit recorder.

Tests cover:
- Actor resolution and payload conversion
- Inline recording with the resolved actor and clock timestamp
- Store failures and unserializable payloads are swallowed
- Background recording and drain()
- Failed authentication entries
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from projecttracker.audit.recorder import AuditRecorder, resolve_actor, to_json_payload
from projecttracker.database.models.audit import ActionType, EntityType

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

APPEND_ENTRY = "projecttracker.audit.recorder.audit_queries.append_entry"


class Colour(str, enum.Enum):
    RED = "RED"


@pytest.fixture
def session_factory() -> MagicMock:
    """Session factory whose sessions support async with and begin()."""
    session = MagicMock()
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    session.begin.return_value.__aenter__ = AsyncMock(return_value=None)
    session.begin.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


@pytest.fixture
def append_entry() -> AsyncMock:
    return AsyncMock(return_value=MagicMock(id="a1b2"))


class TestResolveActor:
    @pytest.mark.parametrize("actor", [None, "", "   "])
    def test_blank_actor_is_system(self, actor: str | None) -> None:
        assert resolve_actor(actor) == "system"

    def test_actor_is_trimmed(self) -> None:
        assert resolve_actor("  bob ") == "bob"


class TestToJsonPayload:
    def test_empty(self) -> None:
        assert to_json_payload(None) == {}
        assert to_json_payload({}) == {}

    def test_converts_values(self) -> None:
        payload = to_json_payload(
            {
                "skills": {"python", "go", "java"},
                "when": FIXED_NOW,
                "colour": Colour.RED,
                "nested": {"ids": (3, 1)},
            }
        )
        assert payload["skills"] == ["go", "java", "python"]
        assert payload["when"].startswith("2026-03-01T12:00:00")
        assert payload["colour"] == "RED"
        assert payload["nested"] == {"ids": [3, 1]}


class TestInlineRecording:
    async def test_record_writes_entry(self, session_factory: MagicMock, append_entry: AsyncMock) -> None:
        recorder = AuditRecorder(session_factory, clock=lambda: FIXED_NOW)

        with patch(APPEND_ENTRY, append_entry):
            await recorder.record(ActionType.CREATE, EntityType.PROJECT, 7, None, {"name": "Apollo"})

        append_entry.assert_awaited_once()
        kwargs = append_entry.await_args.kwargs
        assert kwargs["action_type"] == ActionType.CREATE
        assert kwargs["entity_type"] == EntityType.PROJECT
        assert kwargs["entity_id"] == 7
        assert kwargs["actor_name"] == "system"
        assert kwargs["payload"] == {"name": "Apollo"}
        assert kwargs["timestamp"] == FIXED_NOW

    async def test_store_failure_is_swallowed(self, session_factory: MagicMock) -> None:
        recorder = AuditRecorder(session_factory)
        failing = AsyncMock(side_effect=RuntimeError("audit store down"))

        with patch(APPEND_ENTRY, failing):
            await recorder.record(ActionType.DELETE, EntityType.TASK, 3, "alice", {"id": 3})

        failing.assert_awaited_once()

    async def test_session_failure_is_swallowed(self) -> None:
        session_factory = MagicMock(side_effect=ConnectionError("refused"))
        recorder = AuditRecorder(session_factory)

        await recorder.record(ActionType.UPDATE, EntityType.DEVELOPER, 1, "alice", {})

    async def test_unserializable_payload_is_dropped(
        self, session_factory: MagicMock, append_entry: AsyncMock
    ) -> None:
        recorder = AuditRecorder(session_factory)

        with patch(APPEND_ENTRY, append_entry):
            await recorder.record(ActionType.CREATE, EntityType.TASK, 1, None, {"bad": object()})

        append_entry.assert_not_awaited()


class TestBackgroundRecording:
    async def test_record_returns_before_write_and_drain_waits(
        self, session_factory: MagicMock, append_entry: AsyncMock
    ) -> None:
        recorder = AuditRecorder(session_factory, background=True)

        with patch(APPEND_ENTRY, append_entry):
            await recorder.record(ActionType.CREATE, EntityType.DEVELOPER, 2, "bob", {"name": "Bob"})
            assert recorder.pending == 1

            await recorder.drain()

        assert recorder.pending == 0
        append_entry.assert_awaited_once()
        assert append_entry.await_args.kwargs["actor_name"] == "bob"

    async def test_background_failure_is_swallowed(self, session_factory: MagicMock) -> None:
        recorder = AuditRecorder(session_factory, background=True)
        failing = AsyncMock(side_effect=RuntimeError("audit store down"))

        with patch(APPEND_ENTRY, failing):
            await recorder.record(ActionType.DELETE, EntityType.PROJECT, 9)
            await recorder.drain()

        assert recorder.pending == 0


class TestAuthenticationFailure:
    async def test_recorded_as_developer_update(
        self, session_factory: MagicMock, append_entry: AsyncMock
    ) -> None:
        recorder = AuditRecorder(session_factory, clock=lambda: FIXED_NOW)

        with patch(APPEND_ENTRY, append_entry):
            await recorder.record_authentication_failure("mallory", "bad password")

        kwargs = append_entry.await_args.kwargs
        assert kwargs["action_type"] == ActionType.UPDATE
        assert kwargs["entity_type"] == EntityType.DEVELOPER
        assert kwargs["entity_id"] is None
        assert kwargs["actor_name"] == "mallory"
        assert kwargs["payload"]["action"] == "LOGIN_FAILED"
        assert kwargs["payload"]["reason"] == "bad password"
