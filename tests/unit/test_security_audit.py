"""Tests for agent_trust.security.audit — SecurityAuditLogger."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from agent_trust.security.audit import SecurityAuditLogger
from agent_trust.security.types import SecurityEvent, SecurityEventType, Severity


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def logger_in_memory() -> SecurityAuditLogger:
    return SecurityAuditLogger(log_path=None)


@pytest.fixture()
def log_file(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "security.jsonl"


@pytest.fixture()
def logger_on_disk(log_file: Path) -> SecurityAuditLogger:
    return SecurityAuditLogger(log_path=log_file)


def _event(
    timestamp: float = 1000.0,
    room_id: str | None = None,
    severity: Severity = Severity.HIGH,
) -> SecurityEvent:
    return SecurityEvent(
        type=SecurityEventType.PROMPT_INJECTION_ATTEMPT,
        entity_id="mallory",
        severity=severity,
        context={"room_id": room_id} if room_id else {},
        details={"patterns": ["ignore previous instructions"]},
        timestamp=timestamp,
    )


# ---------------------------------------------------------------------------
# SecurityEvent
# ---------------------------------------------------------------------------


class TestSecurityEvent:
    def test_to_dict_uses_enum_values(self) -> None:
        data = _event().to_dict()
        assert data["type"] == "prompt_injection_attempt"
        assert data["severity"] == "high"
        assert data["handled"] is False

    def test_dict_round_trip(self) -> None:
        event = _event(room_id="r1")
        assert SecurityEvent.from_dict(event.to_dict()) == event

    def test_timestamp_defaults_to_now(self) -> None:
        event = SecurityEvent(
            type=SecurityEventType.ANOMALOUS_REQUEST, entity_id="x", severity=Severity.LOW
        )
        assert event.timestamp > 1_600_000_000_000


# ---------------------------------------------------------------------------
# In-memory logging
# ---------------------------------------------------------------------------


class TestInMemoryLogging:
    def test_events_buffered(self, logger_in_memory: SecurityAuditLogger) -> None:
        logger_in_memory.log(_event())
        lines = logger_in_memory.drain_buffer()
        assert len(lines) == 1
        assert json.loads(lines[0])["entity_id"] == "mallory"

    def test_drain_clears_buffer(self, logger_in_memory: SecurityAuditLogger) -> None:
        logger_in_memory.log(_event())
        logger_in_memory.drain_buffer()
        assert logger_in_memory.drain_buffer() == []

    def test_read_log_from_buffer(self, logger_in_memory: SecurityAuditLogger) -> None:
        logger_in_memory.log(_event(timestamp=1.0))
        logger_in_memory.log(_event(timestamp=2.0))
        assert [e["timestamp"] for e in logger_in_memory.read_log()] == [1.0, 2.0]


# ---------------------------------------------------------------------------
# On-disk logging
# ---------------------------------------------------------------------------


class TestOnDiskLogging:
    def test_parent_directory_created(
        self, logger_on_disk: SecurityAuditLogger, log_file: Path
    ) -> None:
        assert log_file.parent.is_dir()

    def test_one_line_per_event(self, logger_on_disk: SecurityAuditLogger, log_file: Path) -> None:
        logger_on_disk.log(_event())
        logger_on_disk.log(_event())
        assert len(log_file.read_text(encoding="utf-8").splitlines()) == 2

    def test_tail(self, logger_on_disk: SecurityAuditLogger) -> None:
        for ts in (1.0, 2.0, 3.0):
            logger_on_disk.log(_event(timestamp=ts))
        assert [e["timestamp"] for e in logger_on_disk.read_log(tail=2)] == [2.0, 3.0]

    def test_malformed_lines_skipped(
        self, logger_on_disk: SecurityAuditLogger, log_file: Path
    ) -> None:
        logger_on_disk.log(_event())
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write("not json\n\n")
        assert len(logger_on_disk.read_log()) == 1


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------


class TestSubscribers:
    def test_subscriber_receives_event(self, logger_in_memory: SecurityAuditLogger) -> None:
        received: list[SecurityEvent] = []
        logger_in_memory.subscribe(received.append)
        event = _event()
        logger_in_memory.log(event)
        assert received == [event]

    def test_failing_subscriber_does_not_block_logging(
        self, logger_in_memory: SecurityAuditLogger
    ) -> None:
        def broken(event: SecurityEvent) -> None:
            raise RuntimeError("sink down")

        received: list[SecurityEvent] = []
        logger_in_memory.subscribe(broken)
        logger_in_memory.subscribe(received.append)
        logger_in_memory.log(_event())
        assert len(received) == 1
        assert len(logger_in_memory.drain_buffer()) == 1

    def test_unsubscribe(self, logger_in_memory: SecurityAuditLogger) -> None:
        received: list[SecurityEvent] = []
        unsubscribe = logger_in_memory.subscribe(received.append)
        unsubscribe()
        unsubscribe()
        logger_in_memory.log(_event())
        assert received == []


# ---------------------------------------------------------------------------
# recent_events
# ---------------------------------------------------------------------------


class TestRecentEvents:
    def test_since_is_inclusive(self, logger_in_memory: SecurityAuditLogger) -> None:
        logger_in_memory.log(_event(timestamp=100.0))
        logger_in_memory.log(_event(timestamp=200.0))
        assert [e.timestamp for e in logger_in_memory.recent_events(100.0)] == [100.0, 200.0]
        assert [e.timestamp for e in logger_in_memory.recent_events(150.0)] == [200.0]

    def test_room_filter(self, logger_in_memory: SecurityAuditLogger) -> None:
        logger_in_memory.log(_event(room_id="r1"))
        logger_in_memory.log(_event(room_id="r2"))
        logger_in_memory.log(_event())
        events = logger_in_memory.recent_events(0.0, room_id="r1")
        assert len(events) == 1
        assert events[0].context["room_id"] == "r1"

    def test_malformed_entries_skipped(
        self, logger_on_disk: SecurityAuditLogger, log_file: Path
    ) -> None:
        logger_on_disk.log(_event())
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps({"type": "no_such_type"}) + "\n")
        assert len(logger_on_disk.recent_events(0.0)) == 1

    def test_history_loaded_from_existing_file(self, log_file: Path) -> None:
        SecurityAuditLogger(log_path=log_file).log(_event(timestamp=100.0, room_id="r1"))
        with log_file.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps({"type": "no_such_type"}) + "\n")

        reopened = SecurityAuditLogger(log_path=log_file)
        events = reopened.recent_events(0.0, room_id="r1")
        assert [e.timestamp for e in events] == [100.0]

    def test_file_not_reread(self, logger_on_disk: SecurityAuditLogger, log_file: Path) -> None:
        logger_on_disk.log(_event())
        log_file.write_text("", encoding="utf-8")
        assert len(logger_on_disk.recent_events(0.0)) == 1

    def test_draining_keeps_recent_events(self, logger_in_memory: SecurityAuditLogger) -> None:
        logger_in_memory.log(_event())
        logger_in_memory.drain_buffer()
        assert len(logger_in_memory.recent_events(0.0)) == 1

    def test_window_keeps_newest(self) -> None:
        audit = SecurityAuditLogger(recent_limit=2)
        for ts in (1.0, 2.0, 3.0):
            audit.log(_event(timestamp=ts))
        assert [e.timestamp for e in audit.recent_events(0.0)] == [2.0, 3.0]


# ---------------------------------------------------------------------------
# Bounded buffer
# ---------------------------------------------------------------------------


class TestBufferLimit:
    def test_oldest_lines_dropped(self) -> None:
        audit = SecurityAuditLogger(buffer_limit=2)
        for ts in (1.0, 2.0, 3.0):
            audit.log(_event(timestamp=ts))
        assert [json.loads(line)["timestamp"] for line in audit.drain_buffer()] == [2.0, 3.0]

    def test_read_log_sees_bounded_buffer(self) -> None:
        audit = SecurityAuditLogger(buffer_limit=1)
        audit.log(_event(timestamp=1.0))
        audit.log(_event(timestamp=2.0))
        assert [e["timestamp"] for e in audit.read_log()] == [2.0]
