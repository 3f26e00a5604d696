"""NotificationEmitter adapters.

How events reach clients (push, websocket, polling) is outside this package;
these adapters log, record, or fan out events.
"""

import logging
import threading
from collections.abc import Iterable

from cofound.domain import ConnectionEvent

logger = logging.getLogger(__name__)


class LoggingNotificationEmitter:
    """Logs every event. Default emitter for the API."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: ConnectionEvent) -> None:
        self._log.info(
            "event=%s connection=%s requester=%s receiver=%s notify=%s",
            event.type.value,
            event.connection_id,
            event.requester_id,
            event.receiver_id,
            event.recipient_id,
        )


class RecordingNotificationEmitter:
    """Keeps emitted events in memory, per recipient. Used by tests and the
    in-memory backend."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[ConnectionEvent] = []

    @property
    def events(self) -> list[ConnectionEvent]:
        with self._lock:
            return list(self._events)

    def emit(self, event: ConnectionEvent) -> None:
        with self._lock:
            self._events.append(event)

    def for_profile(self, profile_id: str) -> list[ConnectionEvent]:
        """Events the profile should be told about (it did not act)."""
        return [e for e in self.events if e.recipient_id == profile_id]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class CompositeNotificationEmitter:
    """Fans an event out to several emitters. One failing emitter does not stop the rest."""

    def __init__(self, emitters: Iterable) -> None:
        self._emitters = list(emitters)

    def emit(self, event: ConnectionEvent) -> None:
        for emitter in self._emitters:
            try:
                emitter.emit(event)
            except Exception:
                logger.exception(
                    "Emitter %s failed for %s", type(emitter).__name__, event.type.value
                )
