"""Shared fixtures: an in-memory connection that answers like a scripted server."""

import threading
import time
from typing import Callable, List, Optional

import pytest

from wsscanner.core.context import ScanContext
from wsscanner.core.errors import TransportError
from wsscanner.core.models import Direction, MessageRecord
from wsscanner.core.transport import MessageHub, MessageLog
from wsscanner.parsers.handshake import HandshakeRequest


class ScriptedConnection:
    """Implements history, sending and subscriptions.

    *responder* maps each sent message to a reply (or None for silence). Replies are
    published synchronously unless *reply_delay* is set, in which case a timer
    thread delivers them.
    """

    def __init__(self, responder: Optional[Callable[[str], Optional[str]]] = None,
                 connection_id: str = "c1", reply_delay: float = 0.0, fail_sends: bool = False):
        self.connection_id = connection_id
        self.responder = responder or (lambda msg: None)
        self.reply_delay = reply_delay
        self.fail_sends = fail_sends
        self.history = MessageLog()
        self.hub = MessageHub()
        self.sent: List[str] = []
        self._lock = threading.Lock()

    def add_history(self, content: str, direction: Direction):
        self.history.append(MessageRecord(content, direction))

    def send_text(self, message: str, direction: Direction = Direction.CLIENT_TO_SERVER):
        if self.fail_sends:
            raise TransportError("connection reset")
        with self._lock:
            self.sent.append(message)
        self.history.append(MessageRecord(message, direction))
        reply = self.responder(message)
        if reply is None:
            return
        if self.reply_delay > 0:
            t = threading.Timer(self.reply_delay, self._deliver, args=(reply,))
            t.daemon = True
            t.start()
        else:
            self._deliver(reply)

    def _deliver(self, reply: str):
        record = MessageRecord(reply, Direction.SERVER_TO_CLIENT)
        self.history.append(record)
        self.hub.publish(self.connection_id, record)

    def subscribe(self, connection_id, callback):
        self.hub.subscribe(connection_id, callback)

    def unsubscribe(self, connection_id, callback):
        self.hub.unsubscribe(connection_id, callback)

    def message_count(self):
        return self.history.message_count()

    def message_at(self, index):
        return self.history.message_at(index)

    def subscriber_count(self):
        return self.hub.subscriber_count()

    def context(self, url: str = "wss://app.example/ws", templates=(), active_mode: bool = True,
                handshake: Optional[HandshakeRequest] = None, closed: bool = False) -> ScanContext:
        return ScanContext(
            connection_id=self.connection_id,
            url=url,
            handshake=handshake,
            history=self.history,
            sender=None if closed else self,
            subscriptions=self,
            active_mode=active_mode,
            template_messages=tuple(templates),
        )


class RecordingLog:
    """Stand-in for the console Log that keeps lines in memory."""

    def __init__(self, verbose: int = 2):
        self.verbose = verbose
        self.PAY = ""
        self.lines = []

    def _add(self, level, msg):
        self.lines.append((level, msg))

    def info(self, msg):
        self._add("info", msg)

    def warn(self, msg):
        self._add("warn", msg)

    def ok(self, msg):
        self._add("ok", msg)

    def fail(self, msg):
        self._add("fail", msg)

    def debug(self, msg):
        self._add("debug", msg)

    def finding(self, finding):
        self._add("finding", str(finding))

    def messages(self, level):
        return [m for lvl, m in self.lines if lvl == level]


def wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def log():
    return RecordingLog()


@pytest.fixture
def make_connection():
    def factory(responder=None, **kwargs):
        return ScriptedConnection(responder, **kwargs)
    return factory
