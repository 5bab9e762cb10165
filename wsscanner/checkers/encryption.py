from typing import List

from wsscanner.checkers.base import PassiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity


class EncryptionCheck(PassiveChecker):
    id = "encryption"
    name = "Unencrypted WebSocket Detection"
    description = "Flags WebSocket connections that travel over plain ws:// instead of wss://."
    category = Category.MISCONFIGURATION

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        url = ctx.url or ""
        lower = url.lower()

        if lower.startswith(("ws://", "http://")):
            return [self.create_finding("Unencrypted WebSocket Connection", ctx)
                    .severity(Severity.HIGH)
                    .description("The connection uses the unencrypted ws:// scheme. Every frame, "
                                 "including credentials and session tokens, can be read or "
                                 "modified by anyone on the network path.")
                    .evidence(f"URL: {url}")
                    .remediation("Serve the endpoint over wss:// (TLS) only and refuse plain "
                                 "ws:// upgrades.")
                    .build()]

        if lower.startswith(("wss://", "https://")):
            return [self.create_finding("Encrypted WebSocket Connection", ctx)
                    .severity(Severity.INFO)
                    .description("The connection is protected by TLS (wss://).")
                    .evidence(f"URL: {url}")
                    .remediation("No action required.")
                    .build()]

        return [self.create_finding("WebSocket Connection May Be Unencrypted", ctx)
                .severity(Severity.MEDIUM)
                .description("The connection scheme could not be determined, so transport "
                             "encryption could not be confirmed.")
                .evidence(f"URL: {url or '(unknown)'}")
                .remediation("Verify the endpoint is only reachable over wss://.")
                .build()]
