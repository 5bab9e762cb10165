from typing import List

from wsscanner.analyzers.response import (analyze_ldap_injection, contains_generic_error,
                                          response_differs_significantly)
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity
from wsscanner.parsers.message import append_payload, find_injection_points
from wsscanner.payloads import catalog

REMEDIATION = (
    "Escape LDAP filter metacharacters ( * ( ) \\ NUL ) in every value placed into a "
    "search filter, or build filters with a library that does it for you.")


class LDAPInjectionCheck(ActiveChecker):
    id = "active-ldap-injection"
    name = "LDAP Injection (Active)"
    description = "Appends LDAP filter syntax to message values and looks for directory errors."
    category = Category.INJECTION

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.payloads = catalog.ldap_payloads()[:6]

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            baseline = self.send_and_wait_for_response(ctx, template)

            for point in find_injection_points(template):
                for payload in self.payloads:
                    if self.is_cancelled(ctx):
                        return findings
                    probe = append_payload(template, point, payload)
                    response = self.send_and_wait_for_response(ctx, probe)
                    if response is None:
                        continue

                    result = analyze_ldap_injection(response)
                    if result.vulnerable:
                        findings.append(
                            self.create_finding(f"LDAP Injection in parameter '{point.param_name}'", ctx)
                            .severity(Severity.HIGH)
                            .description(f"Filter syntax appended to '{point.param_name}' caused an "
                                         "LDAP error, so the value is concatenated into a search "
                                         "filter.")
                            .evidence(f"Payload: {payload}\nLDAP error:\n{result.evidence}")
                            .remediation(REMEDIATION)
                            .request(probe)
                            .response(self.truncate_for_display(response))
                            .build())
                        break

                    if (payload == "*" and baseline is not None
                            and response_differs_significantly(baseline, response)
                            and not contains_generic_error(response)):
                        findings.append(
                            self.create_finding(f"Potential LDAP Wildcard Injection in '{point.param_name}'", ctx)
                            .severity(Severity.MEDIUM)
                            .description(f"A '*' appended to '{point.param_name}' changed the reply "
                                         "without an error, consistent with a wildcard match in "
                                         "an LDAP filter.")
                            .evidence(f"Payload: {payload}\nBaseline length: {len(baseline)}\n"
                                      f"Response length: {len(response)}")
                            .remediation(REMEDIATION)
                            .request(probe)
                            .response(self.truncate_for_display(response))
                            .build())
                        break
                    self.sleep(ctx, self.delay_ms)
        return findings
