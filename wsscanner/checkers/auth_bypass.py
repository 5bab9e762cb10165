import re
from typing import List

from wsscanner.analyzers.response import (contains_auth_error, contains_generic_error,
                                          response_differs_significantly)
from wsscanner.checkers.base import ActiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity

_TOKEN_PARAM = re.compile(
    r'"(token|auth|session|jwt|bearer|apikey|api_key|access_token|accessToken)"\s*:\s*"([^"]+)"',
    re.IGNORECASE)
_JWT = re.compile(r"eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*")

INVALID_TOKENS = ("invalid", "null", "undefined", "test123", "")


def is_auth_rejection(response: str) -> bool:
    lower = response.lower()
    return contains_auth_error(response) or ("auth" in lower and "error" in lower)


REMEDIATION = (
    "Validate the session or token on every WebSocket message, not only at connection "
    "time. Reject missing, malformed and expired tokens with an explicit error and "
    "verify JWT signatures with a fixed algorithm.")


class AuthBypassCheck(ActiveChecker):
    id = "active-auth-bypass"
    name = "Authentication Bypass (Active)"
    description = ("Removes, corrupts and re-signs authentication tokens embedded in messages "
                   "and checks whether the server still processes them.")
    category = Category.AUTHORIZATION

    def estimated_duration_ms(self) -> int:
        return 15000

    def is_applicable(self, ctx: ScanContext) -> bool:
        return super().is_applicable(ctx) and any(
            _TOKEN_PARAM.search(t) or _JWT.search(t) for t in self.get_template_messages(ctx))

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        for template in self.get_template_messages(ctx):
            if not (_TOKEN_PARAM.search(template) or _JWT.search(template)):
                continue
            baseline = self.send_and_wait_for_response(ctx, template)
            if baseline is None:
                self.log_debug("No baseline reply, skipping template")
                continue
            findings += self._token_removal(ctx, template, baseline)
            findings += self._invalid_tokens(ctx, template, baseline)
            findings += self._jwt_signature(ctx, template, baseline)
        return findings

    def _token_removal(self, ctx: ScanContext, message: str, baseline: str) -> List[Finding]:
        findings = []
        for m in _TOKEN_PARAM.finditer(message):
            if self.is_cancelled(ctx):
                break
            name, token = m.group(1), m.group(2)
            probe = message[:m.start(2)] + message[m.end(2):]
            response = self.send_and_wait_for_response(ctx, probe)
            if response is None:
                continue
            if (not contains_generic_error(response) and not is_auth_rejection(response)
                    and not response_differs_significantly(baseline, response)):
                findings.append(self.create_finding(f"Authentication Bypass: Missing {name}", ctx)
                                .severity(Severity.CRITICAL)
                                .description(f"With the '{name}' token emptied the server processed "
                                             "the message exactly as before. Messages on this socket "
                                             "do not appear to be authenticated.")
                                .evidence(f"Parameter removed: {name}\nOriginal token length: "
                                          f"{len(token)} chars\n\nServer accepted the request "
                                          "without the authentication token.")
                                .remediation(REMEDIATION)
                                .request(self.truncate_for_display(probe))
                                .response(self.truncate_for_display(response))
                                .build())
            self.sleep(ctx, self.delay_ms)
        return findings

    def _invalid_tokens(self, ctx: ScanContext, message: str, baseline: str) -> List[Finding]:
        findings = []
        for m in _TOKEN_PARAM.finditer(message):
            name = m.group(1)
            for bogus in INVALID_TOKENS:
                if self.is_cancelled(ctx):
                    return findings
                probe = message[:m.start(2)] + bogus + message[m.end(2):]
                response = self.send_and_wait_for_response(ctx, probe)
                if response is None:
                    continue
                if (not is_auth_rejection(response)
                        and not response_differs_significantly(baseline, response)):
                    findings.append(self.create_finding(f"Weak Token Validation: {name}", ctx)
                                    .severity(Severity.HIGH)
                                    .description(f"Replacing '{name}' with '{bogus}' did not get the "
                                                 "message rejected.")
                                    .evidence(f"Parameter: {name}\nInvalid token used: '{bogus}'\n\n"
                                              "Server accepted the invalid token without error.")
                                    .remediation(REMEDIATION)
                                    .request(self.truncate_for_display(probe))
                                    .response(self.truncate_for_display(response))
                                    .build())
                    break
                self.sleep(ctx, self.delay_ms // 2)
        return findings

    def _jwt_signature(self, ctx: ScanContext, message: str, baseline: str) -> List[Finding]:
        m = _JWT.search(message)
        if not m or self.is_cancelled(ctx):
            return []
        jwt = m.group(0)
        head, _, _sig = jwt.rpartition(".")
        probe = message.replace(jwt, f"{head}.invalid_signature")
        response = self.send_and_wait_for_response(ctx, probe)
        if response is None:
            return []
        if is_auth_rejection(response) or response_differs_significantly(baseline, response):
            return []
        return [self.create_finding("JWT Signature Not Validated", ctx)
                .severity(Severity.CRITICAL)
                .description("The server accepted a JWT whose signature was replaced with garbage, "
                             "so anyone can forge tokens with arbitrary claims.")
                .evidence(f"Original JWT length: {len(jwt)} chars\n"
                          "Modified signature portion to 'invalid_signature'\n\n"
                          "Server accepted the tampered JWT.")
                .remediation(REMEDIATION + "\n\nAlways verify signatures with a well-tested JWT "
                             "library and pin the expected 'alg'.")
                .request(self.truncate_for_display(probe))
                .response(self.truncate_for_display(response))
                .build()]
