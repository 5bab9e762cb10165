"""Collecting sink: numbers findings in arrival order and exports them."""

import html
import json
import threading
from typing import Dict, List

from wsscanner.core.models import Finding, Severity

# severity / confidence vocabulary used by issue trackers
_ISSUE_SEVERITY = {
    Severity.CRITICAL: "high",
    Severity.HIGH: "high",
    Severity.MEDIUM: "medium",
    Severity.LOW: "low",
    Severity.INFO: "information",
}


class FindingCollector:
    def __init__(self, logger=None):
        self.logger = logger
        self.enabled = True
        self._findings: List[Finding] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def report(self, finding: Finding):
        if not self.enabled:
            return
        with self._lock:
            numbered = finding.with_id(self._next_id)
            self._next_id += 1
            self._findings.append(numbered)
        if self.logger and self.logger.verbose >= 2:
            self.logger.debug(f"Collected finding #{numbered.id}: {numbered}")

    @property
    def findings(self) -> List[Finding]:
        with self._lock:
            return list(self._findings)

    def clear(self):
        with self._lock:
            self._findings.clear()
            self._next_id = 1

    def sorted_by_severity(self) -> List[Finding]:
        return sorted(self.findings, key=lambda f: (f.severity.sort_order, f.id))

    def severity_counts(self) -> Dict[str, int]:
        counts = {s.display_name: 0 for s in Severity}
        for f in self.findings:
            counts[f.severity.display_name] += 1
        return counts

    @staticmethod
    def to_issue(finding: Finding) -> Dict:
        """Flatten a finding into an issue record with an HTML-escaped detail."""
        detail = html.escape(finding.description or "")
        if finding.evidence:
            detail += f"<br><br><b>Evidence:</b><br><pre>{html.escape(finding.evidence)}</pre>"
        return {
            "id": finding.id,
            "name": f"WebSocket: {finding.title}",
            "category": finding.category.display_name,
            "severity": _ISSUE_SEVERITY[finding.severity],
            "confidence": "certain" if finding.evidence else "tentative",
            "url": finding.url,
            "connection_id": finding.connection_id,
            "detail": detail,
            "remediation": html.escape(finding.remediation or ""),
            "request": finding.request,
            "response": finding.response,
            "timestamp": finding.timestamp.isoformat(),
        }

    def export_json(self, filename: str):
        issues = [self.to_issue(f) for f in self.sorted_by_severity()]
        with open(filename, 'w', encoding='utf-8') as f:
            json.dump(issues, f, indent=2)
        if self.logger:
            self.logger.ok(f"Wrote {len(issues)} findings to {filename}")
