"""Interfaces the engine needs from a connection, plus in-memory building blocks."""

import threading
from typing import Callable, List, Optional, Protocol

from wsscanner.core.models import Direction, Finding, MessageRecord

MessageCallback = Callable[[MessageRecord], None]


class MessageHistory(Protocol):
    def message_count(self) -> int: ...

    def message_at(self, index: int) -> Optional[MessageRecord]: ...


class MessageSender(Protocol):
    def send_text(self, message: str, direction: Direction) -> None: ...


class MessageSubscriptions(Protocol):
    def subscribe(self, connection_id: str, callback: MessageCallback) -> None: ...

    def unsubscribe(self, connection_id: str, callback: MessageCallback) -> None: ...


class ReportingSink(Protocol):
    def report(self, finding: Finding) -> None: ...


class MessageLog:
    """Thread-safe append-only history of a connection."""

    def __init__(self, records: Optional[List[MessageRecord]] = None):
        self._records: List[MessageRecord] = list(records or [])
        self._lock = threading.Lock()

    def append(self, record: MessageRecord):
        with self._lock:
            self._records.append(record)

    def message_count(self) -> int:
        with self._lock:
            return len(self._records)

    def message_at(self, index: int) -> Optional[MessageRecord]:
        with self._lock:
            if 0 <= index < len(self._records):
                return self._records[index]
        return None

    def snapshot(self) -> List[MessageRecord]:
        with self._lock:
            return list(self._records)


class MessageHub:
    """Per-connection subscriber registry.

    publish() dispatches outside the lock on a copy of the subscriber list, so
    callbacks may subscribe or unsubscribe while a message is in flight.
    """

    def __init__(self, logger=None):
        self.logger = logger
        self._subscribers = {}
        self._lock = threading.Lock()

    def subscribe(self, connection_id: str, callback: MessageCallback):
        with self._lock:
            self._subscribers.setdefault(str(connection_id), []).append(callback)

    def unsubscribe(self, connection_id: str, callback: MessageCallback):
        with self._lock:
            callbacks = self._subscribers.get(str(connection_id), [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(str(connection_id), None)

    def subscriber_count(self, connection_id: Optional[str] = None) -> int:
        with self._lock:
            if connection_id is not None:
                return len(self._subscribers.get(str(connection_id), []))
            return sum(len(cbs) for cbs in self._subscribers.values())

    def publish(self, connection_id: str, record: MessageRecord):
        with self._lock:
            callbacks = list(self._subscribers.get(str(connection_id), []))
        for cb in callbacks:
            try:
                cb(record)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Subscriber error on connection {connection_id}: {e}")
