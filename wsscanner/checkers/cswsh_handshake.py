import base64
import os
from typing import Callable, List, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity

FORGED_ORIGIN = "https://evil.example"

# handshake headers we replay from the captured upgrade to keep the victim's session
_SESSION_HEADERS = ("Cookie", "Authorization", "Sec-WebSocket-Protocol")

REMEDIATION = (
    "Compare the Origin header of every upgrade request with an allow-list and refuse "
    "the handshake (HTTP 403) for anything else, including 'null'. Add a CSRF token or "
    "per-connection ticket when authentication relies on cookies.")


def to_http_url(url: str) -> str:
    parts = urlsplit(url)
    scheme = {"ws": "http", "wss": "https"}.get(parts.scheme.lower(), parts.scheme)
    return urlunsplit((scheme, parts.netloc, parts.path or "/", parts.query, ""))


def new_websocket_key() -> str:
    return base64.b64encode(os.urandom(16)).decode("ascii")


class CSWSHHandshakeCheck(ActiveChecker):
    """Replays the upgrade with a foreign Origin and reports when the server still switches protocols."""

    id = "active-cswsh-handshake"
    name = "CSWSH - Forged Origin Handshake"
    description = ("Opens a new handshake with a forged and a null Origin, reusing the captured "
                   "session headers, to confirm Cross-Site WebSocket Hijacking.")
    category = Category.CSWSH

    def __init__(self, proxy: Optional[str] = None, client_factory: Optional[Callable[[], httpx.Client]] = None,
                 **kwargs):
        super().__init__(**kwargs)
        self.proxy = proxy
        self.client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.Client:
        return httpx.Client(verify=False, proxy=self.proxy, follow_redirects=False,
                            timeout=self.timeout_ms / 1000.0)

    def is_applicable(self, ctx: ScanContext) -> bool:
        return super().is_applicable(ctx) and ctx.url.lower().startswith(("ws://", "wss://"))

    def _headers(self, ctx: ScanContext, origin: str) -> dict:
        headers = {
            "Upgrade": "websocket",
            "Connection": "Upgrade",
            "Sec-WebSocket-Key": new_websocket_key(),
            "Sec-WebSocket-Version": "13",
            "Origin": origin,
        }
        if ctx.handshake is not None:
            for name in _SESSION_HEADERS:
                value = ctx.handshake.header(name)
                if value:
                    headers[name] = value
        return headers

    def _accepted(self, client: httpx.Client, url: str, headers: dict) -> Optional[int]:
        """Status of the forged upgrade, or None when the server could not be reached."""
        try:
            # stream so a 101 never waits for a body
            with client.stream("GET", url, headers=headers) as resp:
                return resp.status_code
        except httpx.HTTPError as e:
            self.log_warn(f"Handshake probe failed: {e}")
            return None

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        url = to_http_url(ctx.url)
        with self.client_factory() as client:
            for origin, severity, title in (
                    (FORGED_ORIGIN, Severity.HIGH, "Cross-Site WebSocket Hijacking: Forged Origin Accepted"),
                    ("null", Severity.HIGH, "Cross-Site WebSocket Hijacking: Null Origin Accepted")):
                if self.is_cancelled(ctx):
                    break
                headers = self._headers(ctx, origin)
                status = self._accepted(client, url, headers)
                self.log_debug(f"Origin {origin} → HTTP {status}")
                if status != 101:
                    continue
                request = "\r\n".join([f"GET {url} HTTP/1.1"] + [f"{k}: {v}" for k, v in headers.items()])
                findings.append(self.create_finding(title, ctx)
                                .severity(severity)
                                .description(f"The server completed the WebSocket handshake for Origin "
                                             f"'{origin}'. A malicious page can open this socket with the "
                                             "victim's cookies and read or send messages as them.")
                                .evidence(f"Origin: {origin}\nResponse: HTTP 101 Switching Protocols")
                                .remediation(REMEDIATION)
                                .request(request)
                                .build())
        return findings
