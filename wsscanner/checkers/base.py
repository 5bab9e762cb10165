"""Abstract base for all WebSocket checks, plus the passive and active flavours."""

from abc import ABC, abstractmethod
import queue
import random
import string
import time
from typing import Iterator, List, Optional, Tuple

from wsscanner.core.config import DEFAULT_DELAY_MS, DEFAULT_TIMEOUT_MS, MAX_RESPONSE_LENGTH
from wsscanner.core.context import ScanContext
from wsscanner.core.errors import TransportError
from wsscanner.core.models import (Category, Direction, Finding, FindingBuilder,
                                   MessageRecord, PayloadResponse)

_POLL_SECONDS = 0.1


class BaseChecker(ABC):
    """Every check declares its identity and implements run_check()."""

    id: str = "unnamed"
    name: str = "Unnamed Check"
    description: str = ""
    category: Category = Category.MISCONFIGURATION
    passive: bool = True
    max_display_length: int = MAX_RESPONSE_LENGTH

    def __init__(self, logger=None):
        self.logger = logger

    # ── public API ──────────────────────────────────────────────

    def is_passive(self) -> bool:
        return self.passive

    def is_applicable(self, ctx: ScanContext) -> bool:
        return True

    @abstractmethod
    def run_check(self, ctx: ScanContext) -> List[Finding]:
        """Inspect (or probe) the connection described by *ctx*."""
        ...

    def estimated_duration_ms(self) -> int:
        return 100 if self.passive else 5000

    # ── shared helpers ──────────────────────────────────────────

    def create_finding(self, title: str, ctx: ScanContext) -> FindingBuilder:
        """Builder pre-filled with this check's category and the connection identity."""
        return (FindingBuilder()
                .title(title)
                .category(self.category)
                .connection_id(ctx.connection_id)
                .url(ctx.url))

    @staticmethod
    def is_cancelled(ctx: ScanContext) -> bool:
        return ctx.cancel_token.is_cancelled()

    @staticmethod
    def sleep(ctx: ScanContext, ms: int) -> bool:
        """Cancellable sleep. Returns True when the scan was cancelled meanwhile."""
        return ctx.cancel_token.wait(ms / 1000.0)

    @staticmethod
    def rand(n: int = 8) -> str:
        """Random alphanumeric canary string."""
        abc = string.ascii_letters + string.digits
        return "".join(random.choice(abc) for _ in range(n))

    def truncate_for_display(self, text: Optional[str]) -> str:
        if text is None:
            return ""
        if len(text) <= self.max_display_length:
            return text
        extra = len(text) - self.max_display_length
        return f"{text[:self.max_display_length]}\n... [truncated, {extra} more characters]"

    @staticmethod
    def truncate_for_log(text: Optional[str], limit: int = 100) -> str:
        if text is None:
            return "null"
        return text if len(text) <= limit else text[:limit] + "..."

    def log_debug(self, msg: str):
        if self.logger and self.logger.verbose >= 2:
            self.logger.debug(f"[Scanner:{self.id}] {msg}")

    def log_info(self, msg: str):
        if self.logger:
            self.logger.info(f"[Scanner:{self.id}] {msg}")

    def log_warn(self, msg: str):
        if self.logger:
            self.logger.warn(f"[Scanner:{self.id}] {msg}")

    def __repr__(self):
        return f"<{type(self).__name__} {self.id}>"


class PassiveChecker(BaseChecker):
    """Reads recorded traffic only; never sends."""

    passive = True

    @staticmethod
    def iter_messages(ctx: ScanContext) -> Iterator[MessageRecord]:
        for i in range(ctx.message_count()):
            record = ctx.message_at(i)
            if record is not None and record.content is not None:
                yield record


class ActiveChecker(BaseChecker):
    """Sends crafted messages over the live connection and inspects the replies."""

    passive = False

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS, delay_ms: int = DEFAULT_DELAY_MS,
                 max_display_length: int = MAX_RESPONSE_LENGTH, logger=None):
        super().__init__(logger=logger)
        self.timeout_ms = timeout_ms
        self.delay_ms = delay_ms
        self.max_display_length = max_display_length

    def is_applicable(self, ctx: ScanContext) -> bool:
        return ctx.sender is not None and ctx.active_mode

    # ── sending ─────────────────────────────────────────────────

    def send_message(self, ctx: ScanContext, message: str) -> bool:
        if ctx.sender is None:
            return False
        try:
            ctx.sender.send_text(message, Direction.CLIENT_TO_SERVER)
        except TransportError as e:
            self.log_warn(f"Send failed: {e}")
            return False
        self.log_debug(f"→ {self.truncate_for_log(message)}")
        return True

    def send_and_wait_for_response(self, ctx: ScanContext, message: str,
                                   timeout_ms: Optional[int] = None) -> Optional[str]:
        """First server-to-client message after *message*, or None on timeout/cancel/error."""
        if ctx.sender is None or ctx.subscriptions is None:
            return None
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        replies = queue.Queue()

        def on_message(record: MessageRecord):
            if record.direction == Direction.SERVER_TO_CLIENT:
                replies.put(record.content)

        ctx.subscriptions.subscribe(ctx.connection_id, on_message)
        try:
            if not self.send_message(ctx, message):
                return None
            deadline = time.monotonic() + timeout_ms / 1000.0
            while not self.is_cancelled(ctx):
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                try:
                    reply = replies.get(timeout=min(_POLL_SECONDS, remaining))
                except queue.Empty:
                    continue
                self.log_debug(f"← {self.truncate_for_log(reply)}")
                return reply
            return None
        finally:
            ctx.subscriptions.unsubscribe(ctx.connection_id, on_message)

    def send_and_collect_responses(self, ctx: ScanContext, message: str,
                                   collect_ms: int) -> List[str]:
        """Every server-to-client message seen within *collect_ms* of sending."""
        if ctx.sender is None or ctx.subscriptions is None:
            return []
        replies = []

        def on_message(record: MessageRecord):
            if record.direction == Direction.SERVER_TO_CLIENT:
                replies.append(record.content)

        ctx.subscriptions.subscribe(ctx.connection_id, on_message)
        try:
            if self.send_message(ctx, message):
                self.sleep(ctx, collect_ms)
        finally:
            ctx.subscriptions.unsubscribe(ctx.connection_id, on_message)
        return list(replies)

    def timed_send(self, ctx: ScanContext, message: str,
                   timeout_ms: Optional[int] = None) -> Tuple[Optional[str], int]:
        started = time.monotonic()
        response = self.send_and_wait_for_response(ctx, message, timeout_ms)
        return response, int((time.monotonic() - started) * 1000)

    def measure_response_time(self, ctx: ScanContext, message: str,
                              timeout_ms: Optional[int] = None) -> Optional[int]:
        """Round trip in ms, or None when no reply arrived."""
        response, elapsed = self.timed_send(ctx, message, timeout_ms)
        return elapsed if response is not None else None

    def send_payloads_and_collect_responses(self, ctx: ScanContext, messages: List[str],
                                            delay_ms: Optional[int] = None) -> List[PayloadResponse]:
        delay_ms = self.delay_ms if delay_ms is None else delay_ms
        results = []
        for message in messages:
            if self.is_cancelled(ctx):
                break
            response, elapsed = self.timed_send(ctx, message)
            results.append(PayloadResponse(message, response, elapsed))
            if self.sleep(ctx, delay_ms):
                break
        return results

    # ── templates ───────────────────────────────────────────────

    @staticmethod
    def get_last_outgoing_message(ctx: ScanContext) -> Optional[str]:
        for i in range(ctx.message_count() - 1, -1, -1):
            record = ctx.message_at(i)
            if record is not None and record.direction == Direction.CLIENT_TO_SERVER:
                return record.content
        return None

    def get_template_messages(self, ctx: ScanContext) -> List[str]:
        """Pre-selected templates, else the last client-to-server message."""
        if ctx.has_template_messages():
            return list(ctx.template_messages)
        last = self.get_last_outgoing_message(ctx)
        return [last] if last else []
