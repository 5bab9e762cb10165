import re
from typing import Dict, List, Set

from wsscanner.checkers.base import PassiveChecker
from wsscanner.core.context import ScanContext
from wsscanner.core.models import Category, Finding, Severity
from wsscanner.parsers.message import ID_PARAMETER_NAMES

_JSON_ID = re.compile(r'"([^"]*(?:id|Id|ID)[^"]*)"\s*:\s*(\d+|"[^"]+")')
_UUID = re.compile(r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}')
_MONGO_ID = re.compile(r'\b[0-9a-fA-F]{24}\b')

REMEDIATION = (
    "Enforce authorization on every object reference:\n\n"
    "1. Verify the authenticated user may access the requested resource\n"
    "2. Prefer indirect, per-user references over raw database ids\n"
    "3. Apply access control lists to resources\n"
    "4. Log and monitor access patterns for enumeration attempts\n"
    "5. Use random identifiers instead of sequential ones")


def is_idor_prone(name: str) -> bool:
    lname = name.lower()
    return lname in ID_PARAMETER_NAMES or lname.endswith("id")


def format_id_list(ids: List[int]) -> str:
    if len(ids) <= 5:
        return str(ids)
    return f"[{ids[0]}, {ids[1]}, ... {len(ids) - 4} more ... {ids[-2]}, {ids[-1]}]"


class IDORPatternCheck(PassiveChecker):
    id = "idor-pattern"
    name = "IDOR Pattern Detection"
    description = ("Spots object identifiers in WebSocket messages that could be tampered "
                   "with to reach other users' resources.")
    category = Category.AUTHORIZATION

    def run_check(self, ctx: ScanContext) -> List[Finding]:
        findings: List[Finding] = []
        reported: Set[str] = set()
        numeric_ids: Dict[str, List[int]] = {}
        first_message: Dict[str, str] = {}

        for record in self.iter_messages(ctx):
            if self.is_cancelled(ctx):
                break
            content = record.content
            shown = self.truncate_for_display(content)

            for m in _JSON_ID.finditer(content):
                name, value = m.group(1), m.group(2).replace('"', '')
                lname = name.lower()
                if value.isdigit():
                    numeric_ids.setdefault(lname, []).append(int(value))
                    first_message.setdefault(lname, shown)

                if is_idor_prone(name) and lname not in reported:
                    reported.add(lname)
                    findings.append(self.create_finding(f"Potential IDOR Parameter: {name}", ctx)
                                    .severity(Severity.INFO)
                                    .description(f"Messages carry a '{name}' parameter that looks like a "
                                                 "reference to a specific object. If the server does not "
                                                 "check that the caller owns it, changing the value exposes "
                                                 "other users' data.")
                                    .evidence(f"Parameter: {name}\nExample value: {value}")
                                    .remediation(REMEDIATION)
                                    .response(shown)
                                    .build())

            uuids = list(dict.fromkeys(_UUID.findall(content)))
            if uuids and "uuid" not in reported:
                reported.add("uuid")
                findings.append(self.create_finding("UUID/GUID References Detected", ctx)
                                .severity(Severity.INFO)
                                .description("UUID identifiers appear in messages. They are hard to guess "
                                             "but still need authorization checks once leaked.")
                                .evidence(f"Found {len(uuids)} unique UUID(s)\nExamples: {', '.join(uuids[:3])}")
                                .remediation(REMEDIATION)
                                .response(shown)
                                .build())

            if '"_id"' in content or '"id"' in content:
                mongo_ids = list(dict.fromkeys(_MONGO_ID.findall(content)))
                if len(mongo_ids) >= 2 and "mongodb" not in reported:
                    reported.add("mongodb")
                    findings.append(self.create_finding("MongoDB ObjectId References Detected", ctx)
                                    .severity(Severity.INFO)
                                    .description("MongoDB ObjectIds appear in messages. They embed a "
                                                 "timestamp and counter and are partly predictable.")
                                    .evidence(f"Found {len(mongo_ids)} potential MongoDB ObjectId(s)\n"
                                              f"Examples: {', '.join(mongo_ids[:3])}")
                                    .remediation(REMEDIATION)
                                    .response(shown)
                                    .build())

        for lname, ids in numeric_ids.items():
            if len(ids) < 3:
                continue
            ordered = sorted(ids)
            close = sum(1 for a, b in zip(ordered, ordered[1:]) if 1 <= b - a <= 10)
            if close >= (len(ordered) - 1) // 2:
                findings.append(self.create_finding(f"Sequential ID Pattern: {lname}", ctx)
                                .severity(Severity.INFO)
                                .description(f"Near-sequential numeric ids were observed for '{lname}'. "
                                             "Sequential ids let an attacker enumerate resources by "
                                             "counting up or down.")
                                .evidence(f"Parameter: {lname}\nObserved IDs: {format_id_list(ordered)}\n"
                                          "Pattern: Sequential/enumerable")
                                .remediation(REMEDIATION + "\n\nConsider random UUIDs instead of "
                                             "sequential numeric ids.")
                                .response(first_message.get(lname, ""))
                                .build())

        return findings
