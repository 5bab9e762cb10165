"""Signature matching over responses. Reports evidence, never severity."""

import re
from typing import Optional, Sequence

from wsscanner.core.models import AnalysisResult

_I = re.IGNORECASE

SQL_ERROR_PATTERNS = tuple(re.compile(p, _I) for p in (
    r"SQL\s+syntax",
    r"syntax\s+error.*SQL",
    r"mysql_",
    r"mysqli_",
    r"pg_query",
    r"ORA-\d{5}",
    r"SQLSTATE\[",
    r"sqlite3?_",
    r"mssql_",
    r"sqlsrv_",
    r"You have an error in your SQL syntax",
    r"Query failed",
    r"Unclosed quotation mark",
    r"Incorrect syntax near",
    r"ODBC SQL Server Driver",
    r"PostgreSQL.*ERROR",
    r"PLS-\d+",
    r"quoted string not properly terminated",
    r"unterminated.*string",
    r"sql command not properly ended",
    r"invalid.*column",
    r"Unknown column",
))

NOSQL_ERROR_PATTERNS = tuple(re.compile(p, _I) for p in (
    r"MongoError",
    r"MongoDB.*Error",
    r"\$where.*not allowed",
    r"invalid operator",
    r"\$gt requires",
    r"\$regex.*error",
    r"CouchDB.*error",
    r"RethinkDB.*error",
    r"invalid JSON",
    r"SyntaxError.*JSON",
    r"not a valid.*operator",
    r"BadValue",
))

COMMAND_OUTPUT_PATTERNS = tuple(re.compile(p, _I) for p in (
    # unix
    r"uid=\d+\([^)]+\)\s+gid=\d+",      # id
    r"root:x:0:0",                      # /etc/passwd
    r"Linux.*\d+\.\d+",                 # uname -a
    r"total\s+\d+.*drwx",               # ls -la
    r"/bin/(ba)?sh",
    # windows
    r"\\Users\\[^\\]+",                 # whoami
    r"Volume Serial Number",            # dir
    r"\[fonts\]",                       # win.ini
    r"Windows IP Configuration",        # ipconfig
    r"Host Name:",                      # systeminfo
    r"User accounts for",               # net user
))

LDAP_ERROR_PATTERNS = tuple(re.compile(p, _I) for p in (
    r"LDAP.*error",
    r"Invalid DN syntax",
    r"Bad search filter",
    r"Filter.*invalid",
    r"javax\.naming\..*Exception",
    r"LDAPException",
    r"LDAP://",
    r"object class.*invalid",
    r"attribute.*invalid",
))

XPATH_ERROR_PATTERNS = tuple(re.compile(p, _I) for p in (
    r"XPath.*error",
    r"XPathException",
    r"Invalid XPath",
    r"XPath syntax",
    r"xmlXPath.*error",
    r"SimpleXMLElement::xpath",
    r"javax\.xml\.xpath",
    r"DOMXPath",
    r"Expected.*but found",
    r"XPATH syntax error",
))

XSS_SIGNATURES = (
    "<script>", "javascript:", "onerror=", "onload=", "onmouseover=",
    "<svg", "<img src=x", "alert(", "prompt(", "confirm(",
)

GENERIC_ERROR_TOKENS = ("error", "exception", "failed", "invalid", "syntax")

AUTH_ERROR_TOKENS = (
    "unauthorized", "unauthenticated", "invalid token", "token expired",
    "authentication failed", "forbidden", "access denied", "401", "403",
)

MAX_MATCH_LENGTH = 100
MAX_EVIDENCE_MATCHES = 3


def _analyze(response: Optional[str], patterns: Sequence[re.Pattern], kind: str) -> AnalysisResult:
    if not response:
        return AnalysisResult(False, None, kind)
    matches = []
    for pattern in patterns:
        m = pattern.search(response)
        if m:
            text = m.group(0)
            if len(text) > MAX_MATCH_LENGTH:
                text = text[:MAX_MATCH_LENGTH] + "..."
            matches.append(text)
    if matches:
        return AnalysisResult(True, "\n".join(matches[:MAX_EVIDENCE_MATCHES]), kind)
    return AnalysisResult(False, None, kind)


def analyze_sql_injection(response: Optional[str]) -> AnalysisResult:
    return _analyze(response, SQL_ERROR_PATTERNS, "SQL Injection")


def analyze_nosql_injection(response: Optional[str]) -> AnalysisResult:
    return _analyze(response, NOSQL_ERROR_PATTERNS, "NoSQL Injection")


def analyze_command_injection(response: Optional[str]) -> AnalysisResult:
    return _analyze(response, COMMAND_OUTPUT_PATTERNS, "Command Injection")


def analyze_ldap_injection(response: Optional[str]) -> AnalysisResult:
    return _analyze(response, LDAP_ERROR_PATTERNS, "LDAP Injection")


def analyze_xpath_injection(response: Optional[str]) -> AnalysisResult:
    return _analyze(response, XPATH_ERROR_PATTERNS, "XPath Injection")


def analyze_xss_reflection(response: Optional[str], payload: str) -> AnalysisResult:
    """Direct (case-insensitive) reflection first, then any signature shared by payload and response."""
    kind = "XSS Reflection"
    if not response or not payload:
        return AnalysisResult(False, None, kind)
    resp_l = response.lower()
    payload_l = payload.lower()
    if payload_l in resp_l:
        return AnalysisResult(True, f"Payload reflected: {payload}", kind)
    for sig in XSS_SIGNATURES:
        if sig in payload_l and sig in resp_l:
            return AnalysisResult(True, f"XSS signature reflected: {sig}", kind)
    return AnalysisResult(False, None, kind)


def analyze_timing_difference(baseline_ms: int, response_ms: int, threshold_ms: int) -> bool:
    return response_ms - baseline_ms >= threshold_ms


def contains_generic_error(response: Optional[str]) -> bool:
    if not response:
        return False
    lower = response.lower()
    return any(tok in lower for tok in GENERIC_ERROR_TOKENS)


def contains_auth_error(response: Optional[str], tokens: Sequence[str] = AUTH_ERROR_TOKENS) -> bool:
    if not response:
        return False
    lower = response.lower()
    return any(tok in lower for tok in tokens)


def response_differs_significantly(baseline: Optional[str], response: Optional[str]) -> bool:
    """Length changed by more than 20% of the longer one, or an error token newly appeared."""
    if baseline is None or response is None:
        return baseline is not response
    longest = max(len(baseline), len(response))
    if abs(len(baseline) - len(response)) > longest * 0.2:
        return True
    return not contains_generic_error(baseline) and contains_generic_error(response)
