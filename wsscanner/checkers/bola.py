import uuid
from typing import List

from wsscanner.analyzers.response import (contains_auth_error, contains_generic_error,
                                          response_differs_significantly)
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity
from wsscanner.parsers.message import (find_id_parameters, inject_payload, is_mongo_id,
                                       is_numeric_id, is_uuid)

BOLA_DENIAL_TOKENS = (
    "unauthorized", "forbidden", "permission denied", "access denied",
    "not allowed", "403", "401",
)

REMEDIATION = (
    "Check on every message that the authenticated user owns or may access the object "
    "referenced by each identifier. Do not rely on identifiers being hard to guess.")


def mutate_id(value: str) -> List[str]:
    """Candidate foreign identifiers shaped like *value*."""
    if is_numeric_id(value):
        n = int(value)
        candidates = [str(n + 1), str(n - 1), "1", "0", "999999"]
    elif is_uuid(value):
        candidates = [str(uuid.uuid4()), "00000000-0000-0000-0000-000000000000"]
    elif is_mongo_id(value):
        candidates = ["000000000000000000000001", "aaaaaaaaaaaaaaaaaaaaaaaa"]
    else:
        candidates = ["admin", "test", "1", value + "1"]
    return [c for c in dict.fromkeys(candidates) if c != value]


class BOLACheck(ActiveChecker):
    id = "active-bola"
    name = "Broken Object Level Authorization (Active)"
    description = ("Swaps object identifiers in captured messages for neighbouring or well-known "
                   "values and checks whether another object's data comes back.")
    category = Category.AUTHORIZATION

    def estimated_duration_ms(self) -> int:
        return 10000

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            id_points = find_id_parameters(template)
            if not id_points:
                self.log_debug("No identifier parameters in template")
                continue
            baseline = self.send_and_wait_for_response(ctx, template)
            if baseline is None:
                self.log_debug("No baseline reply, skipping template")
                continue

            for point in id_points:
                for candidate in mutate_id(point.original_value):
                    if self.is_cancelled(ctx):
                        return findings
                    probe = inject_payload(template, point, candidate)
                    response = self.send_and_wait_for_response(ctx, probe)
                    if response is None:
                        continue
                    if (response_differs_significantly(baseline, response)
                            and not contains_generic_error(response)
                            and not contains_auth_error(response, BOLA_DENIAL_TOKENS)):
                        findings.append(
                            self.create_finding(f"Potential BOLA/IDOR via '{point.param_name}'", ctx)
                            .severity(Severity.HIGH)
                            .description(f"Changing '{point.param_name}' from "
                                         f"'{point.original_value}' to '{candidate}' returned a "
                                         "different, successful reply instead of an access error. "
                                         "The server may hand out objects that belong to other "
                                         "users.")
                            .evidence(f"Parameter: {point.param_name}\nOriginal: {point.original_value}\n"
                                      f"Tested: {candidate}\nBaseline length: {len(baseline)}\n"
                                      f"Response length: {len(response)}")
                            .remediation(REMEDIATION)
                            .request(probe)
                            .response(self.truncate_for_display(response))
                            .build())
                        break
                    self.sleep(ctx, self.delay_ms)
        return findings
