"""
Tests for configuration loading and the scan and passive commands.
"""

import argparse
import json

import pytest

from wsscanner import main as cli
from wsscanner.core.config import ScannerConfig
from wsscanner.core.errors import TransportError
from wsscanner.core.models import Category, FindingBuilder, Severity
from wsscanner.main import _Fanout, main


class TestScannerConfig:
    """Defaults, validation and argparse mapping"""

    def test_defaults(self):
        """Defaults match the documented timings"""
        cfg = ScannerConfig()
        assert cfg.response_timeout_ms == 5000
        assert cfg.probe_delay_ms == 100
        assert (cfg.fuzz_min_delay_ms, cfg.fuzz_max_delay_ms) == (100, 200)
        assert cfg.fuzz_grace_seconds == 5.0

    def test_from_args_keeps_defaults_for_missing(self):
        """Only options that were given override defaults"""
        args = argparse.Namespace(response_timeout_ms=800, probe_delay_ms=None, unrelated="x")
        cfg = ScannerConfig.from_args(args)
        assert cfg.response_timeout_ms == 800
        assert cfg.probe_delay_ms == 100

    @pytest.mark.parametrize("kwargs", [
        {"response_timeout_ms": 0},
        {"fuzz_min_delay_ms": 300, "fuzz_max_delay_ms": 200},
        {"fuzz_min_delay_ms": -1},
        {"fuzz_grace_seconds": -0.5},
    ])
    def test_invalid_values(self, kwargs):
        """Nonsensical timings are refused"""
        with pytest.raises(ValueError):
            ScannerConfig(**kwargs)


class TestPassiveCommand:
    """wsscanner passive over a recorded history"""

    def write_history(self, path):
        lines = [
            {"direction": "out", "content": '{"action":"get","userId":5}'},
            {"direction": "in", "content": '{"name":"alice"}'},
        ]
        path.write_text("\n".join(json.dumps(line) for line in lines), encoding="utf-8")

    def test_exports_findings(self, tmp_path):
        """Offline scan reports transport and handshake issues"""
        history = tmp_path / "history.jsonl"
        self.write_history(history)
        handshake = tmp_path / "upgrade.txt"
        handshake.write_text("GET /ws HTTP/1.1\nHost: app.example\nUpgrade: websocket\n"
                             "Connection: Upgrade\n\n", encoding="utf-8")
        out = tmp_path / "findings.json"

        rc = main(["passive", "--history", str(history), "--url", "ws://app.example/ws",
                   "--handshake", str(handshake), "-o", str(out)])
        assert rc == 0
        names = [issue["name"] for issue in json.loads(out.read_text(encoding="utf-8"))]
        assert "WebSocket: Missing Origin Header in WebSocket Upgrade" in names
        assert "WebSocket: Unencrypted WebSocket Connection" in names
        assert "WebSocket: Potential IDOR Parameter: userId" in names

    def test_category_filter(self, tmp_path):
        """-c limits the run to one category"""
        history = tmp_path / "history.jsonl"
        self.write_history(history)
        out = tmp_path / "findings.json"
        main(["passive", "--history", str(history), "--url", "ws://app.example/ws",
              "-c", "authorization", "-o", str(out)])
        issues = json.loads(out.read_text(encoding="utf-8"))
        assert issues
        assert {i["category"] for i in issues} == {"Authorization/Authentication"}

    def test_invalid_config_exit_code(self, tmp_path):
        """Bad timings exit with status 2"""
        history = tmp_path / "history.jsonl"
        self.write_history(history)
        assert main(["passive", "--history", str(history), "--url", "ws://x/ws",
                     "--timeout", "0"]) == 2


class DroppingConnection:
    """Connects fine, then fails every send."""

    def __init__(self, url, **kwargs):
        self.closed = False

    def connect(self):
        return True

    def send_text(self, message, direction=None):
        raise TransportError("connection reset by peer")

    def close(self):
        self.closed = True


class TestScanCommand:
    """wsscanner scan against a connection that drops"""

    def test_send_failure_exits_cleanly(self, monkeypatch):
        """A failed --send message ends the run with status 1"""
        monkeypatch.setattr(cli, "WebSocketConnection", DroppingConnection)
        with pytest.raises(SystemExit) as exc:
            main(["scan", "ws://app.example/ws", "--send", "hi", "--listen", "0"])
        assert exc.value.code == 1


class BrokenSink:
    def report(self, finding):
        raise OSError("disk full")


class ListSink:
    def __init__(self):
        self.findings = []

    def report(self, finding):
        self.findings.append(finding)


class TestFanout:
    """Finding delivery to several sinks"""

    def test_failing_sink_does_not_starve_the_rest(self, log):
        """Later sinks still receive the finding when an earlier one raises"""
        finding = (FindingBuilder().title("Unencrypted WebSocket Connection")
                   .severity(Severity.MEDIUM).category(Category.MISCONFIGURATION).build())
        sink = ListSink()
        _Fanout(BrokenSink(), sink, logger=log).report(finding)
        assert sink.findings == [finding]
        assert any("BrokenSink" in m for m in log.messages("fail"))
