from typing import List, Optional

from wsscanner.analyzers.response import analyze_xss_reflection
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, InjectionPoint, Severity
from wsscanner.parsers.message import find_injection_points, inject_payload
from wsscanner.payloads import catalog

REMEDIATION = (
    "Treat every WebSocket message value as untrusted when rendering it. Encode it for "
    "the output context, prefer textContent over innerHTML in client code and deploy a "
    "restrictive Content-Security-Policy.")


class XSSInjectionCheck(ActiveChecker):
    id = "active-xss-injection"
    name = "Cross-Site Scripting (Active)"
    description = "Sends script payloads and checks whether they are reflected back unencoded."
    category = Category.INJECTION

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.basic_payloads = catalog.basic_xss_payloads()[:5]
        self.event_payloads = catalog.event_handler_xss_payloads()[:5]

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            for point in find_injection_points(template):
                if self.is_cancelled(ctx):
                    return findings
                finding = self._probe(ctx, template, point, self.basic_payloads, Severity.HIGH,
                                      f"XSS in parameter '{point.param_name}'")
                if finding is None:
                    finding = self._probe(ctx, template, point, self.event_payloads, Severity.MEDIUM,
                                          f"DOM-based XSS (Event Handler) in '{point.param_name}'")
                if finding:
                    findings.append(finding)
        return findings

    def _probe(self, ctx: ScanContext, template: str, point: InjectionPoint,
               payloads: List[str], severity: Severity, title: str) -> Optional[Finding]:
        for payload in payloads:
            if self.is_cancelled(ctx):
                return None
            probe = inject_payload(template, point, payload)
            response = self.send_and_wait_for_response(ctx, probe)
            result = analyze_xss_reflection(response, payload)
            if result.vulnerable:
                return (self.create_finding(title, ctx)
                        .severity(severity)
                        .description(f"The value of '{point.param_name}' comes back in a server "
                                     "message without encoding. A client that renders it as HTML "
                                     "will run the injected script.")
                        .evidence(f"Payload: {payload}\n{result.evidence}")
                        .remediation(REMEDIATION)
                        .request(probe)
                        .response(self.truncate_for_display(response))
                        .build())
            self.sleep(ctx, self.delay_ms)
        return None
