from colorama import init as colorama_init, Fore, Style
from datetime import datetime
import threading

from wsscanner.core.models import Finding, Severity
colorama_init(autoreset=True)

_SEVERITY_COLORS = {
    Severity.CRITICAL: Fore.RED + Style.BRIGHT,
    Severity.HIGH: Fore.RED,
    Severity.MEDIUM: Fore.YELLOW,
    Severity.LOW: Fore.GREEN,
    Severity.INFO: Fore.BLUE,
}


class Log:
    def __init__(self, verbose: int = 1):
        self.verbose = verbose
        self.PAY = Fore.MAGENTA
        # scan and fuzz workers log concurrently
        self._lock = threading.Lock()

    def _time(self):
        return datetime.now().strftime("[%H:%M:%S]")

    def _fmt(self, level: str, color: str):
        return f"{self._time()} {color}[{level}]{Style.RESET_ALL}"

    def _out(self, line: str):
        with self._lock:
            print(line)

    def info(self, msg: str):
        if self.verbose >= 1:
            self._out(f"{self._fmt('INFO', Fore.CYAN)} {msg}")

    def warn(self, msg: str):
        if self.verbose >= 0:
            self._out(f"{self._fmt('WARNING', Fore.YELLOW)} {msg}")

    def ok(self, msg: str):
        self._out(f"{self._fmt('SUCCESS', Fore.GREEN)} {msg}")

    def fail(self, msg: str):
        self._out(f"{self._fmt('FAIL', Fore.RED)} {msg}")

    def debug(self, msg: str):
        if self.verbose >= 2:
            self._out(f"{self._fmt('DEBUG', Fore.MAGENTA)} {msg}")

    def finding(self, finding: Finding):
        col = _SEVERITY_COLORS.get(finding.severity, Fore.WHITE)
        where = f" {Style.DIM}({finding.url}){Style.RESET_ALL}" if finding.url else ""
        self._out(f"{self._fmt(finding.severity.display_name.upper(), col)} "
                  f"{finding.category.display_name} - {finding.title}{where}")
        if finding.evidence and self.verbose >= 2:
            for line in finding.evidence.splitlines()[:5]:
                self._out(f"    {self.PAY}{line}{Style.RESET_ALL}")


class ConsoleReporter:
    """Reporting sink that prints each finding as it arrives."""

    def __init__(self, logger: Log, min_severity: Severity = Severity.INFO):
        self.logger = logger
        self.min_severity = min_severity

    def report(self, finding: Finding):
        if finding.severity.sort_order <= self.min_severity.sort_order:
            self.logger.finding(finding)
