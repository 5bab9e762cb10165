import re
from typing import List

from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity
from wsscanner.parsers.message import find_injection_points, inject_payload
from wsscanner.payloads import catalog

# arithmetic probes only; each is prefixed with a per-run canary
_EXPRESSIONS = tuple(p for p in catalog.template_injection_payloads() if "7*7" in p)

REMEDIATION = (
    "Never build templates from message content. Pass user data to templates as "
    "context variables and enable the engine's sandbox where available.")


class TemplateInjectionCheck(ActiveChecker):
    id = "active-template-injection"
    name = "Server-Side Template Injection (Active)"
    description = "Sends canary-prefixed template expressions and looks for their evaluated result."
    category = Category.INJECTION

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        canary = self.rand(8)
        evaluated = re.compile(re.escape(canary) + r".{0,20}?49", re.S)

        for template in self.get_template_messages(ctx):
            for point in find_injection_points(template):
                for expr in _EXPRESSIONS:
                    if self.is_cancelled(ctx):
                        return findings
                    payload = canary + expr
                    probe = inject_payload(template, point, payload)
                    response = self.send_and_wait_for_response(ctx, probe)
                    if response and evaluated.search(response) and payload not in response:
                        findings.append(
                            self.create_finding(f"Template Injection in parameter '{point.param_name}'", ctx)
                            .severity(Severity.HIGH)
                            .description(f"The expression placed in '{point.param_name}' was evaluated "
                                         "by a server-side template engine (7*7 came back as 49).")
                            .evidence(f"Payload: {payload}\nMatched: {evaluated.search(response).group(0)}")
                            .remediation(REMEDIATION)
                            .request(probe)
                            .response(self.truncate_for_display(response))
                            .build())
                        break
                    self.sleep(ctx, self.delay_ms)
        return findings
