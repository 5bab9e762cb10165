import re
from typing import List
from urllib.parse import parse_qsl, urlsplit

from wsscanner.checkers.base import PassiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity

HIGH_SENSITIVITY_PARAMS = frozenset((
    "token", "auth", "auth_token", "authtoken", "authentication",
    "session", "sessionid", "session_id", "sid",
    "jwt", "bearer", "access_token", "accesstoken",
    "refresh_token", "refreshtoken", "id_token", "idtoken",
    "password", "pwd", "pass", "passwd", "credential", "credentials",
    "secret", "api_secret", "apisecret", "client_secret",
))

MEDIUM_SENSITIVITY_PARAMS = frozenset((
    "key", "api_key", "apikey", "api-key",
    "private_key", "privatekey", "secret_key", "secretkey",
    "app_key", "appkey", "app_secret", "appsecret",
    "oauth", "oauth_token", "oauthtoken",
))

_JWT = re.compile(r"eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*")
_GENERIC_TOKEN = re.compile(r"^[A-Za-z0-9_-]{32,}$")
_LONG_QUERY_VALUE = re.compile(r"=([A-Za-z0-9_-]{32,})")

REMEDIATION = (
    "Never put tokens, credentials or session identifiers in WebSocket URLs. URLs end "
    "up in browser history, server and proxy logs and Referer headers. Authenticate "
    "with a secure HttpOnly cookie or send the token in the first message after the "
    "connection opens, and keep token lifetimes short.")


def mask_token(token: str) -> str:
    if token is None or len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"


def mask_url(url: str) -> str:
    masked = _JWT.sub("[JWT_REDACTED]", url)
    return _LONG_QUERY_VALUE.sub("=[TOKEN_REDACTED]", masked)


class TokenInURLCheck(PassiveChecker):
    id = "token-in-url"
    name = "Sensitive Token in URL"
    description = ("Detects tokens, credentials and session identifiers exposed in the "
                   "WebSocket URL and its query string.")
    category = Category.MISCONFIGURATION

    def _target(self, ctx: ScanContext) -> str:
        if ctx.url:
            return ctx.url
        if ctx.handshake is not None:
            return ctx.handshake.target
        return ""

    def is_applicable(self, ctx: ScanContext) -> bool:
        return bool(self._target(ctx))

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        url = self._target(ctx)
        if not url:
            return []
        findings = []
        masked = mask_url(url)

        jwt = _JWT.search(url)
        if jwt:
            findings.append(self.create_finding("JWT Token Exposed in URL", ctx)
                            .severity(Severity.HIGH)
                            .description("A JSON Web Token was found in the WebSocket URL. JWTs carry "
                                         "identity and permission claims and remain valid until they "
                                         "expire, so anyone reading logs or history can replay it.")
                            .evidence(f"JWT found: {mask_token(jwt.group(0))}\nFull URL: {masked}")
                            .remediation(REMEDIATION)
                            .build())

        parts = urlsplit(url)
        for name, value in parse_qsl(parts.query, keep_blank_values=True):
            if not value:
                continue
            lname = name.lower()
            evidence = f"Parameter: {name}\nValue: {mask_token(value)}\nURL: {masked}"

            if lname in HIGH_SENSITIVITY_PARAMS:
                findings.append(self.create_finding("Session/Auth Token in URL Parameter", ctx)
                                .severity(Severity.HIGH)
                                .description(f"The query parameter '{name}' appears to hold a session "
                                             "token or credential.")
                                .evidence(evidence)
                                .remediation(REMEDIATION)
                                .build())
                continue

            if lname in MEDIUM_SENSITIVITY_PARAMS:
                findings.append(self.create_finding("API Key in URL Parameter", ctx)
                                .severity(Severity.MEDIUM)
                                .description(f"The query parameter '{name}' appears to hold an API key "
                                             "or secret that will be exposed through URL logging.")
                                .evidence(evidence)
                                .remediation(REMEDIATION)
                                .build())
                continue

            if (_GENERIC_TOKEN.match(value)
                    and any(word in lname for word in ("token", "key", "auth", "secret"))):
                findings.append(self.create_finding("Potential Token in URL Parameter", ctx)
                                .severity(Severity.MEDIUM)
                                .description(f"The parameter '{name}' carries a long token-like value.")
                                .evidence(evidence)
                                .remediation(REMEDIATION)
                                .build())

        if not _JWT.search(parts.path):
            for segment in parts.path.split("/"):
                if len(segment) >= 40 and _GENERIC_TOKEN.match(segment):
                    findings.append(self.create_finding("Potential Token in URL Path", ctx)
                                    .severity(Severity.LOW)
                                    .description("A long token-like value was found in the URL path. It "
                                                 "may be a session token or API key.")
                                    .evidence(f"Path segment: {mask_token(segment)}\nURL: {masked}")
                                    .remediation(REMEDIATION)
                                    .build())

        return findings
