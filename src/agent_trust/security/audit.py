"""SecurityAuditLogger — JSONL sink for security events.

Every detection appends one :class:`~agent_trust.security.types.SecurityEvent`
as a single JSON line to the configured log file, giving an append-only
trail. With no file path configured events go to a bounded in-memory buffer
that can be drained via :meth:`SecurityAuditLogger.drain_buffer`.

The most recent events are also kept as objects in a second bounded window,
which is what threat assessment reads back through
:meth:`SecurityAuditLogger.recent_events`. When a log file already exists the
window is seeded from its tail on construction.

Subscribers registered with :meth:`SecurityAuditLogger.subscribe` are called
synchronously after each write. A failing subscriber is logged and skipped;
it never prevents the event from being recorded.
"""
from __future__ import annotations

import json
import logging
import threading
from collections import deque
from pathlib import Path
from typing import Callable, Optional

from agent_trust.security.types import SecurityEvent

logger = logging.getLogger(__name__)

EventSubscriber = Callable[[SecurityEvent], None]

DEFAULT_BUFFER_LIMIT = 10_000
DEFAULT_RECENT_LIMIT = 10_000


class SecurityAuditLogger:
    """Append-only JSONL audit logger for security events.

    Thread-safe.

    Parameters
    ----------
    log_path:
        Path to the JSONL log file. Parent directories are created
        automatically. If None, events are buffered in memory only.
    buffer_limit:
        Lines kept in the in-memory buffer; the oldest are dropped first.
    recent_limit:
        Events kept for :meth:`recent_events`; the oldest are dropped first.
    """

    def __init__(
        self,
        log_path: Path | None = None,
        buffer_limit: int = DEFAULT_BUFFER_LIMIT,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> None:
        self._log_path = log_path
        self._buffer: deque[str] = deque(maxlen=buffer_limit)
        self._recent: deque[SecurityEvent] = deque(maxlen=recent_limit)
        self._subscribers: list[EventSubscriber] = []
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            self._recent.extend(self._parse_events(self.read_log(tail=recent_limit)))

    # ------------------------------------------------------------------
    # Core logging
    # ------------------------------------------------------------------

    def log(self, event: SecurityEvent) -> None:
        """Append *event* to the log and notify subscribers."""
        line = json.dumps(event.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)
            self._recent.append(event)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Security event subscriber %r failed", callback)

    def subscribe(self, callback: EventSubscriber) -> Callable[[], None]:
        """Register *callback* for every future event.

        Returns
        -------
        Callable[[], None]
            Function that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Reading back
    # ------------------------------------------------------------------

    def drain_buffer(self) -> list[str]:
        """Return and clear the in-memory event buffer, oldest first.

        Only meaningful when no ``log_path`` was configured. Draining does
        not affect :meth:`recent_events`.
        """
        with self._lock:
            events = list(self._buffer)
            self._buffer.clear()
        return events

    def read_log(self, tail: int | None = None) -> list[dict[str, object]]:
        """Read events from the log file (or buffer).

        Parameters
        ----------
        tail:
            If provided, return only the last *tail* events.

        Returns
        -------
        list[dict[str, object]]
            Parsed event dictionaries in chronological order. Lines that
            are not valid JSON are skipped.
        """
        with self._lock:
            if self._log_path is None or not self._log_path.exists():
                lines = list(self._buffer)
            else:
                lines = self._log_path.read_text(encoding="utf-8").splitlines()

        parsed: list[dict[str, object]] = []
        for line in lines:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                parsed.append(json.loads(stripped))
            except json.JSONDecodeError:
                continue

        if tail is not None:
            return parsed[-tail:]
        return parsed

    def recent_events(self, since: float, room_id: Optional[str] = None) -> list[SecurityEvent]:
        """Return events at or after *since* (epoch ms), optionally for one room.

        Served from the in-memory window of the last ``recent_limit``
        events; the log file is not re-read.
        """
        with self._lock:
            window = list(self._recent)
        return [
            event
            for event in window
            if event.timestamp >= since
            and (room_id is None or event.context.get("room_id") == room_id)
        ]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_events(entries: list[dict[str, object]]) -> list[SecurityEvent]:
        events: list[SecurityEvent] = []
        for entry in entries:
            try:
                events.append(SecurityEvent.from_dict(entry))
            except (KeyError, ValueError, TypeError) as exc:
                logger.warning("Skipping malformed audit entry: %r", exc)
        return events
