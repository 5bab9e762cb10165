"""Runs registered checks against one connection on a background worker."""

import threading
from typing import Callable, Dict, Iterable, List, Optional, Union

from wsscanner.checkers.base import BaseChecker
from wsscanner.core.context import CancelToken, ScanContext
from wsscanner.core.models import Category, Finding, ScanMode, ScanState
from wsscanner.core.transport import ReportingSink


class ScanOrchestrator:
    def __init__(self, logger=None):
        self.logger = logger
        self._checks: Dict[str, BaseChecker] = {}
        self._lock = threading.RLock()
        self._state = ScanState.IDLE
        self._token: Optional[CancelToken] = None
        self._worker: Optional[threading.Thread] = None

        self._on_finding: Optional[Callable[[Finding], None]] = None
        self._on_progress: Optional[Callable[[int, int], None]] = None
        self._on_status: Optional[Callable[[str], None]] = None
        self._on_complete: Optional[Callable[[], None]] = None
        self._reporter: Optional[ReportingSink] = None

    # ── registry ────────────────────────────────────────────────

    def register_check(self, check: BaseChecker):
        with self._lock:
            if check.id in self._checks and self.logger:
                self.logger.warn(f"Replacing registered check '{check.id}'")
            if check.logger is None:
                check.logger = self.logger
            self._checks[check.id] = check

    def register_checks(self, checks: Iterable[BaseChecker]):
        for chk in checks:
            self.register_check(chk)

    def unregister_check(self, check: Union[BaseChecker, str]) -> bool:
        check_id = check if isinstance(check, str) else check.id
        with self._lock:
            return self._checks.pop(check_id, None) is not None

    def registered_checks(self) -> List[BaseChecker]:
        with self._lock:
            return list(self._checks.values())

    def check_count(self) -> int:
        with self._lock:
            return len(self._checks)

    def checks_by_category(self, category: Category) -> List[BaseChecker]:
        return [c for c in self.registered_checks() if c.category == category]

    def passive_checks(self) -> List[BaseChecker]:
        return [c for c in self.registered_checks() if c.is_passive()]

    def active_checks(self) -> List[BaseChecker]:
        return [c for c in self.registered_checks() if not c.is_passive()]

    # ── callbacks ───────────────────────────────────────────────

    def set_finding_callback(self, callback: Callable[[Finding], None]):
        self._on_finding = callback

    def set_progress_callback(self, callback: Callable[[int, int], None]):
        self._on_progress = callback

    def set_status_callback(self, callback: Callable[[str], None]):
        self._on_status = callback

    def set_completion_callback(self, callback: Callable[[], None]):
        self._on_complete = callback

    def set_reporter(self, reporter: Optional[ReportingSink]):
        self._reporter = reporter

    # ── lifecycle ───────────────────────────────────────────────

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    def is_running(self) -> bool:
        return self.state == ScanState.RUNNING

    def start(self, ctx: ScanContext, categories: Optional[Iterable[Category]] = None,
              mode: ScanMode = ScanMode.FULL_SCAN) -> bool:
        """Launch a scan; returns False (and does nothing) if one is already running."""
        with self._lock:
            if self._state == ScanState.RUNNING:
                if self.logger:
                    self.logger.warn("Scan already running, ignoring start request")
                return False

            token = CancelToken()
            ctx = ctx.with_cancel_token(token)
            checks = self._select(ctx, set(categories or ()), mode)

            self._token = token
            self._state = ScanState.RUNNING
            self._worker = threading.Thread(target=self._run, args=(ctx, checks, token),
                                            name="ws-scan", daemon=True)
            self._worker.start()
        return True

    def cancel(self):
        with self._lock:
            if self._state != ScanState.RUNNING or self._token is None:
                return
            self._token.cancel()
        if self.logger:
            self.logger.warn("Scan cancellation requested")
        self._emit_status("Scan cancelled")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker exits. Returns False on timeout."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    # ── internals ───────────────────────────────────────────────

    def _select(self, ctx: ScanContext, categories: set, mode: ScanMode) -> List[BaseChecker]:
        selected = []
        for chk in self.registered_checks():
            if categories and chk.category not in categories:
                continue
            if mode == ScanMode.PASSIVE_ONLY and not chk.is_passive():
                continue
            if mode == ScanMode.ACTIVE_ONLY and chk.is_passive():
                continue
            try:
                applicable = chk.is_applicable(ctx)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"[Scanner:{chk.id}] Applicability test failed: {e}")
                applicable = False
            if applicable:
                selected.append(chk)
            elif self.logger and self.logger.verbose >= 2:
                self.logger.debug(f"[Scanner:{chk.id}] Not applicable, skipped")
        return selected

    def _run(self, ctx: ScanContext, checks: List[BaseChecker], token: CancelToken):
        total = len(checks)
        completed = 0
        try:
            if self.logger:
                self.logger.info(f"Scanning {ctx.url or ctx.connection_id} with {total} checks")

            for chk in checks:
                if token.is_cancelled():
                    break
                self._emit_status(f"Running: {chk.name}")
                self._emit_progress(completed, total)

                try:
                    findings = chk.run_check(ctx) or []
                except Exception as e:
                    if self.logger:
                        self.logger.fail(f"[Scanner:{chk.id}] Check failed: {e}")
                    findings = []

                for finding in findings:
                    if token.is_cancelled():
                        break
                    self._emit_finding(finding)
                completed += 1

            with self._lock:
                self._state = ScanState.CANCELLED if token.is_cancelled() else ScanState.COMPLETED
            if not token.is_cancelled():
                self._emit_status("Scan complete")
                self._emit_progress(total, total)
                if self.logger:
                    self.logger.ok(f"Scan finished: {completed}/{total} checks run")
        finally:
            with self._lock:
                if self._state == ScanState.RUNNING:
                    self._state = ScanState.CANCELLED
            self._emit_complete()

    def _emit_finding(self, finding: Finding):
        if self._on_finding:
            try:
                self._on_finding(finding)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Finding callback error: {e}")
        if self._reporter is not None:
            try:
                self._reporter.report(finding)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Reporter error: {e}")

    def _emit_progress(self, current: int, total: int):
        if self._on_progress:
            try:
                self._on_progress(current, total)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Progress callback error: {e}")

    def _emit_status(self, status: str):
        if self._on_status:
            try:
                self._on_status(status)
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Status callback error: {e}")

    def _emit_complete(self):
        if self._on_complete:
            try:
                self._on_complete()
            except Exception as e:
                if self.logger:
                    self.logger.fail(f"Completion callback error: {e}")
