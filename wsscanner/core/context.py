"""Per-scan context handed to every check."""

import threading
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from wsscanner.core.models import MessageRecord
from wsscanner.core.transport import MessageHistory, MessageLog, MessageSender, MessageSubscriptions
from wsscanner.parsers.handshake import HandshakeRequest


class CancelToken:
    """Cooperative cancellation flag shared between a caller and a worker."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; returns True as soon as cancellation is requested."""
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


@dataclass(frozen=True)
class ScanContext:
    connection_id: str
    url: str = ""
    handshake: Optional[HandshakeRequest] = None
    history: MessageHistory = field(default_factory=MessageLog)
    sender: Optional[MessageSender] = None
    subscriptions: Optional[MessageSubscriptions] = None
    active_mode: bool = False
    template_messages: Tuple[str, ...] = ()
    cancel_token: CancelToken = field(default_factory=CancelToken)

    def __post_init__(self):
        # lists passed by callers are frozen into a tuple
        object.__setattr__(self, "template_messages", tuple(self.template_messages or ()))

    def message_count(self) -> int:
        return self.history.message_count()

    def message_at(self, index: int) -> Optional[MessageRecord]:
        return self.history.message_at(index)

    def is_secure(self) -> bool:
        return self.url.lower().startswith(("wss://", "https://"))

    def has_active_connection(self) -> bool:
        return self.sender is not None

    def has_template_messages(self) -> bool:
        return bool(self.template_messages)

    def with_cancel_token(self, token: CancelToken) -> "ScanContext":
        return replace(self, cancel_token=token)
