from typing import List, Optional

from wsscanner.analyzers.response import analyze_command_injection, analyze_timing_difference
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, InjectionPoint, Severity
from wsscanner.parsers.message import append_payload, find_injection_points
from wsscanner.payloads import catalog

REMEDIATION = (
    "Do not pass message values to a shell. Call programs with an argument list instead "
    "of a command string, validate input against a strict allow-list and run the service "
    "with least privilege.")


class CommandInjectionCheck(ActiveChecker):
    id = "active-command-injection"
    name = "OS Command Injection (Active)"
    description = ("Appends shell metacharacters followed by harmless commands and looks for "
                   "their output or an injected delay.")
    category = Category.INJECTION

    def __init__(self, time_based_timeout_ms: int = 10000, timing_threshold_ms: int = 4000, **kwargs):
        super().__init__(**kwargs)
        self.payloads = (catalog.unix_command_payloads()[:4]
                         + catalog.windows_command_payloads()[:4])
        self.time_payloads = catalog.command_time_based_payloads()
        self.time_based_timeout_ms = time_based_timeout_ms
        self.timing_threshold_ms = timing_threshold_ms

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            points = find_injection_points(template)
            template_findings = []
            for point in points:
                if self.is_cancelled(ctx):
                    return findings + template_findings
                finding = self._output_based(ctx, template, point)
                if finding:
                    template_findings.append(finding)

            if not template_findings and points and not self.is_cancelled(ctx):
                finding = self._time_based(ctx, template, points[0])
                if finding:
                    template_findings.append(finding)
            findings.extend(template_findings)
        return findings

    def _output_based(self, ctx: ScanContext, template: str, point: InjectionPoint) -> Optional[Finding]:
        for payload in self.payloads:
            if self.is_cancelled(ctx):
                return None
            probe = append_payload(template, point, payload)
            response = self.send_and_wait_for_response(ctx, probe)
            result = analyze_command_injection(response)
            if result.vulnerable:
                return (self.create_finding(f"OS Command Injection in parameter '{point.param_name}'", ctx)
                        .severity(Severity.CRITICAL)
                        .description(f"Shell syntax appended to '{point.param_name}' produced command "
                                     "output in the reply. The server executes attacker-controlled "
                                     "commands.")
                        .evidence(f"Payload: {payload}\nCommand output:\n{result.evidence}")
                        .remediation(REMEDIATION)
                        .request(probe)
                        .response(self.truncate_for_display(response))
                        .build())
            self.sleep(ctx, self.delay_ms)
        return None

    def _time_based(self, ctx: ScanContext, template: str, point: InjectionPoint) -> Optional[Finding]:
        baseline = self.measure_response_time(ctx, template)
        if baseline is None:
            return None
        for payload in self.time_payloads:
            if self.is_cancelled(ctx):
                return None
            probe = append_payload(template, point, payload)
            response, elapsed = self.timed_send(ctx, probe, self.time_based_timeout_ms)
            if response is None:
                continue
            if analyze_timing_difference(baseline, elapsed, self.timing_threshold_ms):
                return (self.create_finding(f"Time-based Command Injection in '{point.param_name}'", ctx)
                        .severity(Severity.HIGH)
                        .description(f"A sleep command appended to '{point.param_name}' delayed the "
                                     "reply beyond the baseline, which points to blind command "
                                     "injection.")
                        .evidence(f"Payload: {payload!r}\nBaseline: {baseline} ms\n"
                                  f"With payload: {elapsed} ms\nThreshold: {self.timing_threshold_ms} ms")
                        .remediation(REMEDIATION)
                        .request(probe)
                        .response(self.truncate_for_display(response))
                        .build())
            self.sleep(ctx, self.delay_ms)
        return None
