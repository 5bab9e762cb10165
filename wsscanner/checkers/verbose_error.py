import re
from typing import List

from wsscanner.checkers.base import PassiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity

_I = re.IGNORECASE

REMEDIATION = (
    "Return generic error messages to clients and keep stack traces, queries, file "
    "paths and internal addresses in server-side logs. Disable debug mode in production.")

# (issue key, title, severity, description, patterns)
ISSUES = (
    ("java", "Java Stack Trace Detected", Severity.MEDIUM,
     "A Java stack trace leaks class names, file layout and library versions.",
     (re.compile(r"at\s+[a-zA-Z0-9.$_]+\([A-Za-z0-9_]+\.java:\d+\)"),)),
    ("python", "Python Stack Trace Detected", Severity.MEDIUM,
     "A Python traceback leaks module paths and source line numbers.",
     (re.compile(r'File\s+"[^"]+",\s+line\s+\d+'),)),
    ("nodejs", "Node.js Stack Trace Detected", Severity.MEDIUM,
     "A Node.js stack trace leaks file paths and function names.",
     (re.compile(r"at\s+.+\s+\([^)]+:\d+:\d+\)"),)),
    ("dotnet", ".NET Stack Trace Detected", Severity.MEDIUM,
     "A .NET stack trace leaks assembly names and source paths.",
     (re.compile(r"at\s+[A-Za-z0-9._]+\([^)]*\)\s+in\s+[^:]+:\s*line\s+\d+"),)),
    ("php", "PHP Stack Trace Detected", Severity.MEDIUM,
     "A PHP stack trace leaks script paths and call structure.",
     (re.compile(r"#\d+\s+[^\s]+\(\d+\):\s+"),)),
    ("sql", "SQL Error Message Detected", Severity.MEDIUM,
     "Database error messages reveal the backend and often the query shape, which "
     "makes SQL injection far easier to exploit.",
     (re.compile(r"(SQL\s+syntax|syntax\s+error.*SQL|mysql_|mysqli_|pg_query|ORA-\d{5}|"
                 r"SQLSTATE\[|sqlite3?_|mssql_|sqlsrv_)", _I),
      re.compile(r"(You have an error in your SQL|Query failed|SQL error|"
                 r"Unclosed quotation mark|Incorrect syntax near|"
                 r"ODBC SQL Server Driver|PostgreSQL.*ERROR|ORA-\d+|PLS-\d+)", _I))),
    ("unix-path", "Unix File Path Disclosed", Severity.LOW,
     "Absolute server paths reveal the deployment layout.",
     (re.compile(r"(/var/www/|/home/[a-z]+/|/usr/|/etc/|/opt/|/tmp/|/srv/)[^\s\"'<>]+"),)),
    ("windows-path", "Windows File Path Disclosed", Severity.LOW,
     "Absolute Windows paths reveal the deployment layout.",
     (re.compile(r"([A-Za-z]:\\[^\s\"'<>]+|\\\\[^\s\"'<>]+)"),)),
    ("internal-ip", "Internal IP Address Disclosed", Severity.LOW,
     "Private network addresses help an attacker map internal infrastructure.",
     (re.compile(r"\b(10\.\d{1,3}\.\d{1,3}\.\d{1,3}|"
                 r"172\.(1[6-9]|2[0-9]|3[0-1])\.\d{1,3}\.\d{1,3}|"
                 r"192\.168\.\d{1,3}\.\d{1,3}|"
                 r"127\.\d{1,3}\.\d{1,3}\.\d{1,3})\b"),)),
    ("debug", "Debug Mode Indicator Detected", Severity.INFO,
     "The application appears to run with debugging enabled.",
     (re.compile(r'("debug"\s*:\s*true|DEBUG\s*=\s*true|debug\s+mode|'
                 r"development\s+mode|stack\s*trace|exception\s+details)", _I),)),
    ("version", "Server/Framework Version Disclosed", Severity.INFO,
     "Exact server or framework versions let an attacker look up known vulnerabilities.",
     (re.compile(r"(Apache/[\d.]+|nginx/[\d.]+|PHP/[\d.]+|Python/[\d.]+|"
                 r"Node\.js/v[\d.]+|Express/[\d.]+|Django/[\d.]+|"
                 r"Rails/[\d.]+|ASP\.NET[^\s]*|Tomcat/[\d.]+)", _I),)),
)

MAX_MATCHES_PER_PATTERN = 3
MAX_MATCH_LENGTH = 200


def extract_matches(content: str, patterns) -> str:
    lines = []
    for pattern in patterns:
        for i, m in enumerate(pattern.finditer(content)):
            if i >= MAX_MATCHES_PER_PATTERN:
                break
            text = m.group(0)
            if len(text) > MAX_MATCH_LENGTH:
                text = text[:MAX_MATCH_LENGTH] + "..."
            lines.append(f"Match: {text}")
    return "\n".join(lines) if lines else "Pattern matched in message content"


class VerboseErrorCheck(PassiveChecker):
    id = "verbose-error"
    name = "Verbose Error Detection"
    description = ("Looks for stack traces, database errors, file paths, internal addresses "
                   "and version banners leaked in WebSocket messages.")
    category = Category.MISCONFIGURATION

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings = []
        reported = set()

        for record in self.iter_messages(ctx):
            if self.is_cancelled(ctx) or len(reported) == len(ISSUES):
                break
            content = record.content
            for key, title, severity, description, patterns in ISSUES:
                if key in reported:
                    continue
                if not any(p.search(content) for p in patterns):
                    continue
                reported.add(key)
                findings.append(self.create_finding(title, ctx)
                                .severity(severity)
                                .description(description)
                                .evidence(extract_matches(content, patterns))
                                .remediation(REMEDIATION)
                                .response(self.truncate_for_display(content))
                                .build())
        return findings
