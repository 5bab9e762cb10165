from typing import List

from wsscanner.analyzers.response import analyze_nosql_injection, response_differs_significantly
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity
from wsscanner.parsers.message import find_injection_points, inject_payload, is_json
from wsscanner.payloads import catalog

REMEDIATION = (
    "Reject operator objects and unexpected types in message values before they reach "
    "the database: cast to the expected scalar type, strip keys starting with '$' and "
    "disable server-side JavaScript ($where).")


class NoSQLInjectionCheck(ActiveChecker):
    id = "active-nosql-injection"
    name = "NoSQL Injection (Active)"
    description = ("Replaces JSON values with MongoDB operator payloads and watches for "
                   "database errors or changed query results.")
    category = Category.INJECTION

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.payloads = catalog.mongodb_payloads()[:6]

    def is_applicable(self, ctx: ScanContext) -> bool:
        if not super().is_applicable(ctx):
            return False
        return any(is_json(t) for t in self.get_template_messages(ctx))

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            if not is_json(template):
                continue
            baseline = self.send_and_wait_for_response(ctx, template)

            for point in find_injection_points(template):
                for payload in self.payloads:
                    if self.is_cancelled(ctx):
                        return findings
                    probe = inject_payload(template, point, payload)
                    response = self.send_and_wait_for_response(ctx, probe)
                    if response is None:
                        continue

                    result = analyze_nosql_injection(response)
                    if result.vulnerable:
                        findings.append(
                            self.create_finding(f"NoSQL Injection in parameter '{point.param_name}'", ctx)
                            .severity(Severity.CRITICAL)
                            .description(f"An operator payload in '{point.param_name}' produced a "
                                         "NoSQL database error, so the value is interpreted as part "
                                         "of the query.")
                            .evidence(f"Payload: {payload}\nDatabase error:\n{result.evidence}")
                            .remediation(REMEDIATION)
                            .request(probe)
                            .response(self.truncate_for_display(response))
                            .build())
                        break

                    if baseline is not None and response_differs_significantly(baseline, response):
                        findings.append(
                            self.create_finding(f"Potential NoSQL Injection in '{point.param_name}'", ctx)
                            .severity(Severity.MEDIUM)
                            .description(f"Replacing '{point.param_name}' with an operator payload "
                                         "changed the reply substantially. The query may be "
                                         "evaluating the operator.")
                            .evidence(f"Payload: {payload}\nBaseline length: {len(baseline)}\n"
                                      f"Response length: {len(response)}")
                            .remediation(REMEDIATION)
                            .request(probe)
                            .response(self.truncate_for_display(response))
                            .build())
                        break
                    self.sleep(ctx, self.delay_ms)
        return findings
