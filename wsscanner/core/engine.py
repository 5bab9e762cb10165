"""Sniper-style fuzzer: one payload at a time into every § marked position."""

import random
import threading
from typing import Callable, List, Optional

from colorama import Style

from wsscanner.core.context import CancelToken
from wsscanner.core.errors import MalformedMarkersError, TransportError
from wsscanner.core.models import Direction, FuzzResult, MessageRecord
from wsscanner.parsers.markers import extract_positions, replace_placeholders
from wsscanner.payloads.models import PayloadModel


class AttackExecutor:
    def __init__(self, min_delay_ms: int = 100, max_delay_ms: int = 200,
                 grace_seconds: float = 5.0, logger=None):
        self.name = "WS Sniper"
        self.logger = logger
        self.set_delay_range(min_delay_ms, max_delay_ms)
        self.grace_seconds = grace_seconds

        self._on_result: Optional[Callable[[FuzzResult], None]] = None
        self._on_progress: Optional[Callable[[int], None]] = None
        self._on_complete: Optional[Callable[[], None]] = None

        self._lock = threading.Lock()
        self._running = False
        self._token: Optional[CancelToken] = None
        self._worker: Optional[threading.Thread] = None
        self._sent: List[FuzzResult] = []
        # best-effort correlation: replies are tagged with whatever payload was sent last
        self._current_payload: Optional[str] = None
        self._payload_lock = threading.Lock()

    # ---------- configuration ----------
    def set_delay_range(self, min_delay_ms: int, max_delay_ms: int):
        if min_delay_ms < 0 or max_delay_ms < min_delay_ms:
            raise ValueError(f"Invalid delay range {min_delay_ms}-{max_delay_ms} ms")
        self.min_delay_ms = min_delay_ms
        self.max_delay_ms = max_delay_ms

    def set_result_callback(self, callback: Callable[[FuzzResult], None]):
        self._on_result = callback

    def set_progress_callback(self, callback: Callable[[int], None]):
        self._on_progress = callback

    def set_completion_callback(self, callback: Callable[[], None]):
        self._on_complete = callback

    @property
    def sent_messages(self) -> List[FuzzResult]:
        with self._lock:
            return list(self._sent)

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    # ---------- lifecycle ----------
    def start(self, connection, payload_model: PayloadModel, template: str,
              direction: Direction = Direction.CLIENT_TO_SERVER,
              connection_id: Optional[str] = None) -> bool:
        """Begin a run on a worker thread. Returns False when the request is rejected."""
        try:
            positions = extract_positions(template)
        except MalformedMarkersError as e:
            if self.logger:
                self.logger.warn(f"Rejected fuzz template: {e}")
            return False
        if not positions:
            if self.logger:
                self.logger.warn("No § payload positions in template, nothing to fuzz")
            return False

        connection_id = connection_id or getattr(connection, "connection_id", "default")
        with self._lock:
            if self._running:
                if self.logger:
                    self.logger.warn("Attack already running")
                return False
            self._running = True
            self._sent = []
            self._token = CancelToken()
            self._worker = threading.Thread(
                target=self._run,
                args=(connection, connection_id, payload_model, template, direction, self._token),
                name="ws-fuzz", daemon=True)
            self._worker.start()

        if self.logger:
            self.logger.info(f"Fuzzing {len(positions)} position(s) with {payload_model.size()} payloads")
        return True

    def cancel(self):
        with self._lock:
            token = self._token if self._running else None
        if token is not None:
            token.cancel()
            if self.logger:
                self.logger.warn("Attack cancelled")

    def wait(self, timeout: Optional[float] = None) -> bool:
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    # ---------- worker ----------
    def _listener(self, record: MessageRecord):
        with self._payload_lock:
            payload = self._current_payload
        self._emit_result(FuzzResult(record.content, record.direction, payload, sent=False,
                                     timestamp=record.timestamp))

    def _run(self, connection, connection_id: str, model: PayloadModel, template: str,
             direction: Direction, token: CancelToken):
        total = model.size()
        last_progress = -1
        connection.subscribe(connection_id, self._listener)
        try:
            for index, payload in enumerate(model, start=1):
                if token.is_cancelled():
                    break
                message = replace_placeholders(template, payload)
                with self._payload_lock:
                    self._current_payload = payload
                try:
                    connection.send_text(message, direction)
                except TransportError as e:
                    if self.logger:
                        self.logger.fail(f"Send failed, stopping attack: {e}")
                    break

                result = FuzzResult(message, direction, payload, sent=True)
                with self._lock:
                    self._sent.append(result)
                self._emit_result(result)
                if self.logger and self.logger.verbose >= 2:
                    self.logger.debug(f"→ [{index}/{total}] {self.logger.PAY}{payload}{Style.RESET_ALL}")

                progress = min(100, index * 100 // total) if total else 100
                if progress != last_progress:
                    last_progress = progress
                    self._emit_progress(progress)

                if token.wait(random.randint(self.min_delay_ms, self.max_delay_ms) / 1000.0):
                    break

            if not token.is_cancelled() and self.grace_seconds > 0:
                # late replies to the final payloads
                token.wait(self.grace_seconds)
        finally:
            connection.unsubscribe(connection_id, self._listener)
            with self._payload_lock:
                self._current_payload = None
            with self._lock:
                self._running = False
            if last_progress != 100:
                self._emit_progress(100)
            if self.logger:
                self.logger.ok(f"Attack finished: {len(self.sent_messages)} payloads sent")
            self._emit_complete()

    def _emit_result(self, result: FuzzResult):
        if self._on_result:
            try:
                self._on_result(result)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Result callback error: {e}")

    def _emit_progress(self, progress: int):
        if self._on_progress:
            try:
                self._on_progress(progress)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Progress callback error: {e}")

    def _emit_complete(self):
        if self._on_complete:
            try:
                self._on_complete()
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Completion callback error: {e}")
