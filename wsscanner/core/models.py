"""Shared data models for the WebSocket scanner."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from wsscanner.core.errors import FindingBuildError


class Severity(Enum):
    CRITICAL = ("Critical", 0)
    HIGH = ("High", 1)
    MEDIUM = ("Medium", 2)
    LOW = ("Low", 3)
    INFO = ("Informational", 4)

    def __init__(self, display_name: str, sort_order: int):
        self.display_name = display_name
        self.sort_order = sort_order

    def __str__(self):
        return self.display_name


class Category(Enum):
    CSWSH = "Cross-Site WebSocket Hijacking"
    AUTHORIZATION = "Authorization/Authentication"
    INJECTION = "Injection Attacks"
    MISCONFIGURATION = "Misconfiguration"
    DOS = "Denial of Service"

    @property
    def display_name(self) -> str:
        return self.value

    def __str__(self):
        return self.value


class Direction(Enum):
    CLIENT_TO_SERVER = "client_to_server"
    SERVER_TO_CLIENT = "server_to_client"


class ScanMode(Enum):
    PASSIVE_ONLY = "passive"
    ACTIVE_ONLY = "active"
    FULL_SCAN = "full"


class ScanState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InjectionKind(Enum):
    JSON_STRING = "json_string"
    JSON_NUMBER = "json_number"
    JSON_BOOLEAN = "json_boolean"
    KEY_VALUE = "key_value"


@dataclass(frozen=True)
class InjectionPoint:
    """A mutable span inside a message. Offsets exclude surrounding quotes."""
    param_name: str
    original_value: str
    start: int
    end: int
    kind: InjectionKind

    def __str__(self):
        return f"{self.param_name}={self.original_value!r} [{self.start}:{self.end}] ({self.kind.value})"


@dataclass(frozen=True)
class InjectedMessage:
    message: str
    point: InjectionPoint
    payload: str


@dataclass(frozen=True)
class MessageRecord:
    """One row of connection history."""
    content: str
    direction: Direction
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class AnalysisResult:
    vulnerable: bool
    evidence: Optional[str]
    type: str

    def __str__(self):
        if self.vulnerable:
            return f"{self.type}: VULNERABLE - {self.evidence}"
        return f"{self.type}: Not detected"


@dataclass(frozen=True)
class PayloadResponse:
    payload: str
    response: Optional[str]
    response_time_ms: int

    @property
    def has_response(self) -> bool:
        return self.response is not None


@dataclass(frozen=True)
class FuzzResult:
    """A message seen during a fuzz run, tagged with the payload in flight."""
    content: str
    direction: Direction
    payload: Optional[str]
    sent: bool
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class Finding:
    """A single vulnerability finding. Immutable once built."""
    title: str
    severity: Severity
    category: Category
    description: str = ""
    evidence: str = ""
    remediation: str = ""
    request: str = ""
    response: str = ""
    connection_id: str = ""
    url: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    id: int = 0

    def with_id(self, finding_id: int) -> "Finding":
        return replace(self, id=finding_id)

    def __str__(self):
        return f"[{self.severity.display_name}] {self.category.display_name} - {self.title}"


class FindingBuilder:
    """Fluent builder; build() refuses findings without title, severity or category."""

    def __init__(self):
        self._fields = {}

    def _set(self, name, value) -> "FindingBuilder":
        self._fields[name] = value
        return self

    def title(self, value: str):
        return self._set("title", value)

    def severity(self, value: Severity):
        return self._set("severity", value)

    def category(self, value: Category):
        return self._set("category", value)

    def description(self, value: str):
        return self._set("description", value or "")

    def evidence(self, value: str):
        return self._set("evidence", value or "")

    def remediation(self, value: str):
        return self._set("remediation", value or "")

    def request(self, value: str):
        return self._set("request", value or "")

    def response(self, value: str):
        return self._set("response", value or "")

    def connection_id(self, value):
        return self._set("connection_id", "" if value is None else str(value))

    def url(self, value: str):
        return self._set("url", value or "")

    def timestamp(self, value: datetime):
        return self._set("timestamp", value)

    def build(self) -> Finding:
        if not self._fields.get("title"):
            raise FindingBuildError("Finding title is required")
        if self._fields.get("severity") is None:
            raise FindingBuildError("Finding severity is required")
        if self._fields.get("category") is None:
            raise FindingBuildError("Finding category is required")
        fields = {k: v for k, v in self._fields.items() if v is not None}
        return Finding(**fields)
