"""
Tests for findings, severities, categories and the scan context.
"""

import pytest

from wsscanner.core.context import CancelToken, ScanContext
from wsscanner.core.errors import FindingBuildError
from wsscanner.core.models import Category, FindingBuilder, Severity
from wsscanner.parsers.handshake import HandshakeRequest


class TestFinding:
    """Finding construction"""

    def test_build_and_str(self):
        """Built findings render as [severity] category - title"""
        f = (FindingBuilder().title("Open socket").severity(Severity.HIGH)
             .category(Category.CSWSH).evidence("e").build())
        assert str(f) == "[High] Cross-Site WebSocket Hijacking - Open socket"
        assert f.id == 0
        assert f.timestamp is not None

    @pytest.mark.parametrize("builder", [
        FindingBuilder().severity(Severity.LOW).category(Category.DOS),
        FindingBuilder().title("").severity(Severity.LOW).category(Category.DOS),
        FindingBuilder().title("t").category(Category.DOS),
        FindingBuilder().title("t").severity(Severity.LOW),
    ])
    def test_required_fields(self, builder):
        """Title, severity and category are mandatory"""
        with pytest.raises(FindingBuildError):
            builder.build()

    def test_findings_are_immutable(self):
        """with_id returns a copy"""
        f = FindingBuilder().title("t").severity(Severity.INFO).category(Category.DOS).build()
        g = f.with_id(5)
        assert f.id == 0 and g.id == 5
        with pytest.raises(Exception):
            f.title = "changed"


class TestEnums:
    """Display names and ordering"""

    def test_severity_order(self):
        """Critical sorts first, Informational last"""
        ordered = sorted(Severity, key=lambda s: s.sort_order)
        assert ordered == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.INFO]
        assert Severity.INFO.display_name == "Informational"

    def test_category_names(self):
        """Category display names"""
        assert Category.AUTHORIZATION.display_name == "Authorization/Authentication"
        assert Category.INJECTION.display_name == "Injection Attacks"
        assert Category.DOS.display_name == "Denial of Service"


class TestScanContext:
    """Context helpers"""

    def test_secure_and_active(self):
        """Scheme and sender drive the helpers"""
        ctx = ScanContext(connection_id="1", url="WSS://x/ws")
        assert ctx.is_secure()
        assert not ctx.has_active_connection()
        assert not ctx.has_template_messages()
        assert ctx.message_count() == 0
        assert ctx.message_at(0) is None

    def test_templates_frozen(self):
        """Template lists become tuples"""
        ctx = ScanContext(connection_id="1", template_messages=["a"])
        assert ctx.template_messages == ("a",)
        assert ctx.has_template_messages()

    def test_with_cancel_token(self):
        """Copies share everything but the token"""
        ctx = ScanContext(connection_id="1", url="ws://x")
        token = CancelToken()
        copy = ctx.with_cancel_token(token)
        assert copy.cancel_token is token
        assert copy.url == ctx.url
        assert ctx.cancel_token is not token

    def test_cancel_token_wait(self):
        """wait() returns immediately once cancelled"""
        token = CancelToken()
        assert token.wait(0.01) is False
        token.cancel()
        assert token.wait(10) is True


class TestHandshakeRequest:
    """Raw upgrade request parsing"""

    RAW = ("GET /chat?token=abc HTTP/1.1\r\n"
           "Host: app.example\r\n"
           "Upgrade: websocket\r\n"
           "origin: https://app.example\r\n\r\n")

    def test_parse(self):
        """Request line, query and headers"""
        hs = HandshakeRequest(self.RAW)
        assert hs.method == "GET"
        assert hs.path == "/chat"
        assert hs.target == "/chat?token=abc"
        assert hs.parameters == {"token": ["abc"]}
        assert hs.host == "app.example"

    def test_case_insensitive_header(self):
        """Header lookups ignore case"""
        hs = HandshakeRequest(self.RAW)
        assert hs.header("Origin") == "https://app.example"
        assert not hs.has_header("Cookie")

    def test_from_headers(self):
        """Requests can be assembled from parts"""
        hs = HandshakeRequest.from_headers("/ws", {"Host": "h", "Origin": "null"})
        assert hs.header("origin") == "null"
        assert hs.path == "/ws"

    def test_empty_is_rejected(self):
        """Blank requests raise"""
        with pytest.raises(ValueError):
            HandshakeRequest().parse("\n\n")
