from typing import List, Optional
from urllib.parse import urlsplit

from wsscanner.checkers.base import PassiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity

REMEDIATION = (
    "Validate the Origin header of every WebSocket upgrade on the server and "
    "compare it against an explicit allow-list of trusted origins. Reject the "
    "upgrade when the Origin is missing, null or unexpected.")


def origin_host(origin: str) -> str:
    """Host[:port] part of an Origin value (scheme://host[:port])."""
    if "://" in origin:
        return urlsplit(origin).netloc
    return origin.split("/", 1)[0]


def normalize_host(host: str) -> str:
    host = host.strip().lower()
    for default_port in (":80", ":443"):
        if host.endswith(default_port):
            return host[:-len(default_port)]
    return host


class CSWSHOriginCheck(PassiveChecker):
    id = "cswsh-origin"
    name = "CSWSH - Origin Header Analysis"
    description = ("Analyzes the Origin header of the WebSocket upgrade request to spot "
                   "Cross-Site WebSocket Hijacking exposure.")
    category = Category.CSWSH

    def is_applicable(self, ctx: ScanContext) -> bool:
        return ctx.handshake is not None

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        hs = ctx.handshake
        if hs is None:
            return []
        origin: Optional[str] = hs.header("Origin")
        host = hs.header("Host") or ""
        raw = hs.raw

        if origin is None:
            return [self.create_finding("Missing Origin Header in WebSocket Upgrade", ctx)
                    .severity(Severity.HIGH)
                    .description("The WebSocket upgrade request carries no Origin header. "
                                 "Without it the server cannot tell which site opened the "
                                 "connection, so a page on any domain may ride the victim's "
                                 "cookies into this socket.")
                    .evidence("Origin header: Not present")
                    .remediation(REMEDIATION)
                    .request(raw)
                    .build()]

        if origin.strip().lower() == "null":
            return [self.create_finding("Null Origin in WebSocket Upgrade", ctx)
                    .severity(Severity.MEDIUM)
                    .description("The upgrade request sends a 'null' Origin. Sandboxed iframes, "
                                 "data: URLs and local files all produce it, so accepting it "
                                 "lets attacker-controlled documents connect.")
                    .evidence("Origin header: null")
                    .remediation(REMEDIATION + " Never accept 'null' as a valid Origin.")
                    .request(raw)
                    .build()]

        evidence = f"Origin: {origin}\nHost: {host}"
        if host and normalize_host(origin_host(origin)) != normalize_host(host):
            return [self.create_finding("Origin Differs from Host", ctx)
                    .severity(Severity.MEDIUM)
                    .description("The Origin domain differs from the Host header. This is normal "
                                 "for some cross-origin deployments, but it also means the server "
                                 "accepted a connection initiated by another site. Confirm that "
                                 "this origin is on the allow-list.")
                    .evidence(evidence)
                    .remediation(REMEDIATION)
                    .request(raw)
                    .build()]

        return [self.create_finding("Origin Header Present and Valid", ctx)
                .severity(Severity.INFO)
                .description("The upgrade request carries an Origin header that matches the Host.")
                .evidence(evidence)
                .remediation("No action required. Ensure server-side Origin validation is implemented.")
                .request(raw)
                .build()]
