"""
Tests for the scan orchestrator: selection, lifecycle, cancellation and callbacks.
"""

import threading

from conftest import ScriptedConnection

from wsscanner.checkers.base import ActiveChecker, PassiveChecker
from wsscanner.core.models import Category, ScanMode, ScanState, Severity
from wsscanner.core.orchestrator import ScanOrchestrator


class StubPassive(PassiveChecker):
    def __init__(self, check_id="stub-passive", category=Category.MISCONFIGURATION,
                 findings=1, error=None, **kwargs):
        super().__init__(**kwargs)
        self.id = check_id
        self.name = f"Stub {check_id}"
        self.category = category
        self.findings = findings
        self.error = error
        self.runs = 0

    def run_check(self, ctx):
        self.runs += 1
        if self.error:
            raise self.error
        return [self.create_finding(f"{self.id} #{i}", ctx).severity(Severity.LOW).build()
                for i in range(self.findings)]


class BlockingActive(ActiveChecker):
    """Waits on its gate (or cancellation) before reporting."""

    def __init__(self, check_id="blocking", **kwargs):
        super().__init__(**kwargs)
        self.id = check_id
        self.name = f"Blocking {check_id}"
        self.category = Category.INJECTION
        self.entered = threading.Event()
        self.gate = threading.Event()
        self.runs = 0

    def run_check(self, ctx):
        self.runs += 1
        self.entered.set()
        while not self.gate.wait(0.01):
            if self.is_cancelled(ctx):
                break
        return [self.create_finding("blocked", ctx).severity(Severity.HIGH).build()]


class Recorder:
    def __init__(self, orchestrator):
        self.findings = []
        self.progress = []
        self.status = []
        self.completions = []
        self.done = threading.Event()
        orchestrator.set_finding_callback(self.findings.append)
        orchestrator.set_progress_callback(lambda cur, tot: self.progress.append((cur, tot)))
        orchestrator.set_status_callback(self.status.append)
        orchestrator.set_completion_callback(self._complete)
        self.orchestrator = orchestrator

    def _complete(self):
        self.completions.append(self.orchestrator.state)
        self.done.set()


class TestRegistry:
    """Registering and querying checks"""

    def setup_method(self):
        self.orch = ScanOrchestrator()

    def test_register_and_replace(self, log):
        """Registering an existing id replaces it with a warning"""
        self.orch.logger = log
        self.orch.register_check(StubPassive("a"))
        self.orch.register_check(StubPassive("a"))
        assert self.orch.check_count() == 1
        assert any("Replacing" in m for m in log.messages("warn"))

    def test_logger_is_shared(self, log):
        """Checks without a logger inherit the orchestrator's"""
        self.orch.logger = log
        chk = StubPassive("a")
        self.orch.register_check(chk)
        assert chk.logger is log

    def test_unregister(self):
        """Checks can be removed by instance or id"""
        a, b = StubPassive("a"), StubPassive("b")
        self.orch.register_checks([a, b])
        assert self.orch.unregister_check(a)
        assert self.orch.unregister_check("b")
        assert not self.orch.unregister_check("missing")
        assert self.orch.check_count() == 0

    def test_queries(self):
        """Filtering by category and kind"""
        self.orch.register_checks([StubPassive("a", category=Category.CSWSH),
                                   StubPassive("b"), BlockingActive("c")])
        assert [c.id for c in self.orch.checks_by_category(Category.CSWSH)] == ["a"]
        assert [c.id for c in self.orch.passive_checks()] == ["a", "b"]
        assert [c.id for c in self.orch.active_checks()] == ["c"]


class TestLifecycle:
    """Running, completing and cancelling scans"""

    def setup_method(self):
        self.orch = ScanOrchestrator()
        self.rec = Recorder(self.orch)
        self.conn = ScriptedConnection()

    def test_passive_scan_completes(self):
        """Findings, progress and completion are all delivered"""
        self.orch.register_check(StubPassive("a", findings=2))
        assert self.orch.state == ScanState.IDLE
        assert self.orch.start(self.conn.context())
        assert self.rec.done.wait(5)
        assert self.orch.wait(5)

        assert self.orch.state == ScanState.COMPLETED
        assert self.rec.completions == [ScanState.COMPLETED]
        assert [f.title for f in self.rec.findings] == ["a #0", "a #1"]
        assert self.rec.progress == [(0, 1), (1, 1)]
        assert self.rec.status == ["Running: Stub a", "Scan complete"]

    def test_no_applicable_checks(self):
        """An empty selection still completes"""
        self.orch.register_check(BlockingActive())
        self.orch.start(self.conn.context(active_mode=False))
        assert self.rec.done.wait(5)
        assert self.orch.state == ScanState.COMPLETED
        assert self.rec.progress == [(0, 0)]

    def test_single_flight(self, log):
        """A second start while running is rejected"""
        self.orch.logger = log
        blocking = BlockingActive()
        self.orch.register_check(blocking)
        assert self.orch.start(self.conn.context())
        assert blocking.entered.wait(5)
        assert not self.orch.start(self.conn.context())
        assert self.orch.is_running()
        blocking.gate.set()
        assert self.orch.wait(5)
        assert blocking.runs == 1
        assert any("already running" in m for m in log.messages("warn"))

    def test_restart_after_completion(self):
        """A finished orchestrator can scan again"""
        chk = StubPassive("a")
        self.orch.register_check(chk)
        self.orch.start(self.conn.context())
        self.orch.wait(5)
        assert self.orch.start(self.conn.context())
        self.orch.wait(5)
        assert chk.runs == 2

    def test_cancel_during_check(self):
        """Cancelling stops the scan and suppresses late findings"""
        first = BlockingActive("first")
        later = StubPassive("later")
        self.orch.register_checks([first, later, StubPassive("last")])
        self.orch.start(self.conn.context())
        assert first.entered.wait(5)
        self.orch.cancel()
        assert self.rec.done.wait(5)

        assert self.orch.state == ScanState.CANCELLED
        assert self.rec.completions == [ScanState.CANCELLED]
        assert self.rec.findings == []
        assert later.runs == 0
        assert "Scan cancelled" in self.rec.status
        assert "Scan complete" not in self.rec.status
        assert (3, 3) not in self.rec.progress

    def test_cancel_when_idle(self):
        """Cancelling with nothing running is a no-op"""
        self.orch.cancel()
        assert self.orch.state == ScanState.IDLE
        assert self.rec.status == []

    def test_failing_check_is_isolated(self, log):
        """One check raising does not stop the others"""
        self.orch.logger = log
        self.orch.register_checks([StubPassive("boom", error=RuntimeError("kaboom")),
                                   StubPassive("fine")])
        self.orch.start(self.conn.context())
        assert self.rec.done.wait(5)
        assert self.orch.state == ScanState.COMPLETED
        assert [f.title for f in self.rec.findings] == ["fine #0"]
        assert self.rec.progress[-1] == (2, 2)
        assert any("kaboom" in m for m in log.messages("fail"))


class TestSelection:
    """Mode and category filtering"""

    def setup_method(self):
        self.orch = ScanOrchestrator()
        self.rec = Recorder(self.orch)
        self.conn = ScriptedConnection()
        self.active = BlockingActive("act")
        self.active.gate.set()
        self.orch.register_checks([StubPassive("pas", category=Category.CSWSH), self.active])

    def run(self, **kwargs):
        self.orch.start(self.conn.context(), **kwargs)
        assert self.rec.done.wait(5)
        return [f.title for f in self.rec.findings]

    def test_passive_only(self):
        """Active checks are left out"""
        assert self.run(mode=ScanMode.PASSIVE_ONLY) == ["pas #0"]

    def test_active_only(self):
        """Passive checks are left out"""
        assert self.run(mode=ScanMode.ACTIVE_ONLY) == ["blocked"]

    def test_category_filter(self):
        """Only the requested categories run"""
        assert self.run(categories=[Category.INJECTION]) == ["blocked"]

    def test_full_scan(self):
        """Everything applicable runs in registration order"""
        assert self.run() == ["pas #0", "blocked"]


class TestSinks:
    """Callback and reporter failures"""

    def setup_method(self):
        self.orch = ScanOrchestrator()
        self.conn = ScriptedConnection()

    def test_reporter_receives_findings(self):
        """The reporting sink gets every finding"""
        class Sink:
            def __init__(self):
                self.reported = []

            def report(self, finding):
                self.reported.append(finding)

        sink = Sink()
        self.orch.set_reporter(sink)
        self.orch.register_check(StubPassive("a", findings=3))
        self.orch.start(self.conn.context())
        self.orch.wait(5)
        assert len(sink.reported) == 3

    def test_callback_errors_are_contained(self, log):
        """Raising callbacks and reporters are logged, not fatal"""
        class BrokenSink:
            def report(self, finding):
                raise IOError("disk full")

        def broken(*args):
            raise ValueError("bad callback")

        done = threading.Event()
        self.orch.logger = log
        self.orch.set_reporter(BrokenSink())
        self.orch.set_finding_callback(broken)
        self.orch.set_progress_callback(broken)
        self.orch.set_status_callback(broken)
        self.orch.set_completion_callback(done.set)
        self.orch.register_check(StubPassive("a"))
        self.orch.start(self.conn.context())
        assert done.wait(5)
        assert self.orch.state == ScanState.COMPLETED
        failures = log.messages("fail")
        assert any("Reporter error: disk full" in m for m in failures)
        assert any("Finding callback error" in m for m in failures)
