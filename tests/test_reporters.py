"""
Tests for the finding collector and the console reporter.
"""

import json

from wsscanner.core.models import Category, FindingBuilder, Severity
from wsscanner.reporters.collector import FindingCollector
from wsscanner.reporters.console import ConsoleReporter, Log


def make(title, severity=Severity.HIGH, evidence="", description="desc"):
    return (FindingBuilder().title(title).severity(severity).category(Category.INJECTION)
            .description(description).evidence(evidence).url("wss://app.example/ws").build())


class TestFindingCollector:
    """Numbering, ordering and export"""

    def setup_method(self):
        self.collector = FindingCollector()

    def test_sequential_ids(self):
        """Ids start at 1 in arrival order"""
        for t in ("a", "b", "c"):
            self.collector.report(make(t))
        assert [f.id for f in self.collector.findings] == [1, 2, 3]

    def test_disabled(self):
        """A disabled collector drops findings"""
        self.collector.enabled = False
        self.collector.report(make("a"))
        assert self.collector.findings == []

    def test_clear_resets_numbering(self):
        """Clearing starts the ids again"""
        self.collector.report(make("a"))
        self.collector.clear()
        self.collector.report(make("b"))
        assert [f.id for f in self.collector.findings] == [1]

    def test_sorted_by_severity(self):
        """Most severe first, then arrival order"""
        self.collector.report(make("low", Severity.LOW))
        self.collector.report(make("crit", Severity.CRITICAL))
        self.collector.report(make("info", Severity.INFO))
        self.collector.report(make("crit2", Severity.CRITICAL))
        assert [f.title for f in self.collector.sorted_by_severity()] == ["crit", "crit2", "low", "info"]

    def test_severity_counts(self):
        """Every severity is counted, zero included"""
        self.collector.report(make("a", Severity.MEDIUM))
        counts = self.collector.severity_counts()
        assert counts["Medium"] == 1
        assert counts["Critical"] == 0
        assert set(counts) == {"Critical", "High", "Medium", "Low", "Informational"}

    def test_to_issue_mapping(self):
        """Severity, confidence and escaping follow the issue vocabulary"""
        issue = FindingCollector.to_issue(make("x", Severity.CRITICAL, evidence="<script>",
                                               description="a & b"))
        assert issue["severity"] == "high"
        assert issue["confidence"] == "certain"
        assert issue["name"] == "WebSocket: x"
        assert issue["detail"].startswith("a &amp; b")
        assert "&lt;script&gt;" in issue["detail"]

        tentative = FindingCollector.to_issue(make("y", Severity.INFO))
        assert tentative["severity"] == "information"
        assert tentative["confidence"] == "tentative"

    def test_export_json(self, tmp_path):
        """Findings are written most severe first"""
        self.collector.report(make("low", Severity.LOW))
        self.collector.report(make("high", Severity.HIGH))
        path = tmp_path / "findings.json"
        self.collector.export_json(str(path))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert [d["name"] for d in data] == ["WebSocket: high", "WebSocket: low"]
        assert data[0]["category"] == "Injection Attacks"


class TestConsoleReporter:
    """Printing findings"""

    def test_prints_finding(self, capsys):
        """Severity, category and title appear on one line"""
        ConsoleReporter(Log(verbose=1)).report(make("SQL Injection in parameter 'q'"))
        out = capsys.readouterr().out
        assert "HIGH" in out
        assert "Injection Attacks - SQL Injection in parameter 'q'" in out

    def test_min_severity(self, capsys):
        """Findings below the threshold are not printed"""
        reporter = ConsoleReporter(Log(verbose=1), min_severity=Severity.MEDIUM)
        reporter.report(make("quiet", Severity.LOW))
        reporter.report(make("loud", Severity.CRITICAL))
        out = capsys.readouterr().out
        assert "quiet" not in out
        assert "loud" in out

    def test_evidence_at_debug_level(self, capsys):
        """Evidence lines are shown with -vv"""
        ConsoleReporter(Log(verbose=2)).report(make("x", evidence="Payload: '\nerror line"))
        out = capsys.readouterr().out
        assert "Payload: '" in out
        assert "error line" in out


class TestLog:
    """Verbosity gating"""

    def test_levels(self, capsys):
        """info needs -v1, debug needs -vv"""
        quiet = Log(verbose=0)
        quiet.info("hidden info")
        quiet.debug("hidden debug")
        quiet.warn("shown warn")
        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown warn" in out
