"""Live WebSocket connection built on websocket-client."""

import ssl
import threading
import uuid
from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit

from websocket import (WebSocketConnectionClosedException, WebSocketException,
                       WebSocketTimeoutException, create_connection)

from wsscanner.core.context import ScanContext
from wsscanner.core.errors import TransportError
from wsscanner.core.models import Direction, MessageRecord
from wsscanner.core.transport import MessageCallback, MessageHub, MessageLog
from wsscanner.parsers.handshake import HandshakeRequest

_READ_TIMEOUT = 1.0


class WebSocketConnection:
    """Client side of one connection.

    Keeps the full message history, fans inbound frames out to subscribers from a
    reader thread, and lets the engine send text frames to the server.
    """

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None,
                 origin: Optional[str] = None, connection_id: Optional[str] = None,
                 timeout: float = 10.0, proxy: Optional[str] = None, logger=None):
        self.url = url
        self.headers = dict(headers or {})
        self.origin = origin
        self.connection_id = connection_id or uuid.uuid4().hex[:8]
        self.timeout = timeout
        self.proxy = proxy
        self.logger = logger

        self.history = MessageLog()
        self.hub = MessageHub(logger=logger)
        self.handshake: Optional[HandshakeRequest] = None
        self.response_headers: Dict[str, str] = {}

        self._ws = None
        self._reader: Optional[threading.Thread] = None
        self._closed = threading.Event()
        self._send_lock = threading.Lock()

    # ── connection ──────────────────────────────────────────────

    def _proxy_options(self) -> dict:
        if not self.proxy:
            return {}
        parts = urlsplit(self.proxy)
        return {"http_proxy_host": parts.hostname,
                "http_proxy_port": parts.port or 8080,
                "proxy_type": "http"}

    def _effective_origin(self) -> str:
        if self.origin:
            return self.origin
        parts = urlsplit(self.url)
        scheme = "https" if parts.scheme.lower() == "wss" else "http"
        return f"{scheme}://{parts.netloc}"

    def connect(self) -> "WebSocketConnection":
        try:
            self._ws = create_connection(
                self.url,
                header=[f"{k}: {v}" for k, v in self.headers.items()],
                origin=self._effective_origin(),
                timeout=self.timeout,
                sslopt={"cert_reqs": ssl.CERT_NONE},
                **self._proxy_options())
        except (WebSocketException, OSError) as e:
            raise TransportError(f"Could not connect to {self.url}: {e}") from e

        self.response_headers = dict(self._ws.getheaders() or {})
        self.handshake = self._describe_handshake()
        self._ws.settimeout(_READ_TIMEOUT)
        self._closed.clear()
        self._reader = threading.Thread(target=self._read_loop, name=f"ws-reader-{self.connection_id}",
                                        daemon=True)
        self._reader.start()
        if self.logger:
            self.logger.ok(f"Connected to {self.url} (connection {self.connection_id})")
        return self

    def _describe_handshake(self) -> HandshakeRequest:
        parts = urlsplit(self.url)
        target = parts.path or "/"
        if parts.query:
            target += f"?{parts.query}"
        headers = {
            "Host": parts.netloc,
            "Upgrade": "websocket",
            "Connection": "Upgrade",
            "Origin": self._effective_origin(),
            "Sec-WebSocket-Version": "13",
        }
        headers.update(self.headers)
        return HandshakeRequest.from_headers(target, headers)

    def _read_loop(self):
        while not self._closed.is_set():
            try:
                frame = self._ws.recv()
            except WebSocketTimeoutException:
                continue
            except (WebSocketConnectionClosedException, OSError) as e:
                if self.logger and not self._closed.is_set():
                    self.logger.warn(f"Connection {self.connection_id} closed: {e}")
                break
            except WebSocketException as e:
                if self.logger:
                    self.logger.fail(f"Read error on {self.connection_id}: {e}")
                break
            if isinstance(frame, bytes):
                if self.logger and self.logger.verbose >= 2:
                    self.logger.debug(f"Ignoring {len(frame)} byte binary frame")
                continue
            if not frame and not self._ws.connected:
                break
            record = MessageRecord(frame, Direction.SERVER_TO_CLIENT)
            self.history.append(record)
            self.hub.publish(self.connection_id, record)
        self._closed.set()

    def is_open(self) -> bool:
        return self._ws is not None and not self._closed.is_set()

    def close(self):
        self._closed.set()
        if self._ws is not None:
            try:
                self._ws.close()
            except (WebSocketException, OSError) as e:
                if self.logger:
                    self.logger.debug(f"Error while closing {self.connection_id}: {e}")
        if self._reader is not None:
            self._reader.join(_READ_TIMEOUT * 2)

    def __enter__(self):
        return self.connect()

    def __exit__(self, *exc):
        self.close()

    # ── MessageSender ───────────────────────────────────────────

    def send_text(self, message: str, direction: Direction = Direction.CLIENT_TO_SERVER):
        if direction != Direction.CLIENT_TO_SERVER:
            raise TransportError("A client connection can only send client-to-server frames")
        if not self.is_open():
            raise TransportError(f"Connection {self.connection_id} is closed")
        try:
            with self._send_lock:
                self._ws.send(message)
        except (WebSocketException, OSError) as e:
            raise TransportError(f"Send failed on {self.connection_id}: {e}") from e
        self.history.append(MessageRecord(message, Direction.CLIENT_TO_SERVER))

    # ── MessageSubscriptions / MessageHistory ───────────────────

    def subscribe(self, connection_id: str, callback: MessageCallback):
        self.hub.subscribe(connection_id, callback)

    def unsubscribe(self, connection_id: str, callback: MessageCallback):
        self.hub.unsubscribe(connection_id, callback)

    def message_count(self) -> int:
        return self.history.message_count()

    def message_at(self, index: int) -> Optional[MessageRecord]:
        return self.history.message_at(index)

    def scan_context(self, active_mode: bool = True, templates: Iterable[str] = ()) -> ScanContext:
        return ScanContext(
            connection_id=self.connection_id,
            url=self.url,
            handshake=self.handshake,
            history=self.history,
            sender=self if self.is_open() else None,
            subscriptions=self,
            active_mode=active_mode,
            template_messages=tuple(templates),
        )
