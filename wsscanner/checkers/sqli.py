from typing import List, Optional

from wsscanner.analyzers.response import analyze_sql_injection, analyze_timing_difference
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, InjectionPoint, Severity
from wsscanner.parsers.message import append_payload, find_injection_points
from wsscanner.payloads import catalog

REMEDIATION = (
    "Use parameterized queries or prepared statements for every value taken from a "
    "WebSocket message. Validate input types, run the database account with least "
    "privilege and never return raw database errors to the client.")


class SQLInjectionCheck(ActiveChecker):
    id = "active-sql-injection"
    name = "SQL Injection (Active)"
    description = ("Appends SQL metacharacters to every message value and looks for database "
                   "errors or injected delays in the replies.")
    category = Category.INJECTION

    def __init__(self, time_based_timeout_ms: int = 10000, timing_threshold_ms: int = 4000, **kwargs):
        super().__init__(**kwargs)
        self.error_payloads = catalog.sql_error_payloads()[:5]
        self.time_payloads = catalog.sql_time_based_payloads()[:2]
        self.time_based_timeout_ms = time_based_timeout_ms
        self.timing_threshold_ms = timing_threshold_ms

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            points = find_injection_points(template)
            self.log_debug(f"{len(points)} injection points in template")
            template_findings = []
            for point in points:
                if self.is_cancelled(ctx):
                    return findings + template_findings
                finding = self._error_based(ctx, template, point)
                if finding:
                    template_findings.append(finding)

            # timing test only for templates without an error hit
            if not template_findings and points and not self.is_cancelled(ctx):
                finding = self._time_based(ctx, template, points[0])
                if finding:
                    template_findings.append(finding)
            findings.extend(template_findings)
        return findings

    def _error_based(self, ctx: ScanContext, template: str, point: InjectionPoint) -> Optional[Finding]:
        for payload in self.error_payloads:
            if self.is_cancelled(ctx):
                return None
            probe = append_payload(template, point, payload)
            response = self.send_and_wait_for_response(ctx, probe)
            result = analyze_sql_injection(response)
            if result.vulnerable:
                self.log_info(f"SQL error triggered via '{point.param_name}'")
                return (self.create_finding(f"SQL Injection in parameter '{point.param_name}'", ctx)
                        .severity(Severity.CRITICAL)
                        .description(f"Appending SQL syntax to '{point.param_name}' made the server "
                                     "return a database error, so the value reaches a SQL query "
                                     "without proper parameterization.")
                        .evidence(f"Payload: {payload}\nDatabase error:\n{result.evidence}")
                        .remediation(REMEDIATION)
                        .request(probe)
                        .response(self.truncate_for_display(response))
                        .build())
            self.sleep(ctx, self.delay_ms)
        return None

    def _time_based(self, ctx: ScanContext, template: str, point: InjectionPoint) -> Optional[Finding]:
        baseline = self.measure_response_time(ctx, template)
        if baseline is None:
            self.log_debug("No baseline reply, skipping time-based test")
            return None

        for payload in self.time_payloads:
            if self.is_cancelled(ctx):
                return None
            probe = append_payload(template, point, payload)
            response, elapsed = self.timed_send(ctx, probe, self.time_based_timeout_ms)
            # a probe that never answered is inconclusive
            if response is None:
                continue
            if analyze_timing_difference(baseline, elapsed, self.timing_threshold_ms):
                return (self.create_finding(f"Time-based SQL Injection in '{point.param_name}'", ctx)
                        .severity(Severity.HIGH)
                        .description(f"A sleep payload in '{point.param_name}' delayed the reply well "
                                     "beyond the baseline, which points to blind SQL injection.")
                        .evidence(f"Payload: {payload}\nBaseline: {baseline} ms\n"
                                  f"With payload: {elapsed} ms\nThreshold: {self.timing_threshold_ms} ms")
                        .remediation(REMEDIATION)
                        .request(probe)
                        .response(self.truncate_for_display(response))
                        .build())
            self.sleep(ctx, self.delay_ms)
        return None
