"""Locate injectable values inside WebSocket text messages."""

import re
from typing import List

from wsscanner.core.models import InjectedMessage, InjectionKind, InjectionPoint

# "key": "value"  (escaped quotes allowed on both sides)
_JSON_STRING = re.compile(r'"((?:[^"\\]|\\.)+)"\s*:\s*"((?:[^"\\]|\\.)*)"')
# "key": 12 / 1.5 / -3 / true / false / null
_JSON_SCALAR = re.compile(r'"((?:[^"\\]|\\.)+)"\s*:\s*(-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null)(?![\w.])')
# key=value up to '&' or whitespace
_KEY_VALUE = re.compile(r'([a-zA-Z_][a-zA-Z0-9_]*)=([^&\s]*)')

_UUID = re.compile(r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$')
_MONGO_ID = re.compile(r'^[0-9a-fA-F]{24}$')
_NUMERIC = re.compile(r'^\d+$')

# parameter names that usually reference an object
ID_PARAMETER_NAMES = (
    "id", "uid", "userid", "user_id", "accountid", "account_id",
    "orderid", "order_id", "docid", "doc_id", "documentid", "document_id",
    "fileid", "file_id", "recordid", "record_id", "itemid", "item_id",
    "objectid", "object_id", "messageid", "message_id",
    "transactionid", "transaction_id", "invoiceid", "invoice_id",
    "customerid", "customer_id", "profileid", "profile_id",
    "sessionid", "session_id", "resourceid", "resource_id",
)


def is_json(message: str) -> bool:
    if not message:
        return False
    trimmed = message.strip()
    return ((trimmed.startswith("{") and trimmed.endswith("}")) or
            (trimmed.startswith("[") and trimmed.endswith("]")))


def _json_points(message: str) -> List[InjectionPoint]:
    points = []
    for m in _JSON_STRING.finditer(message):
        points.append(InjectionPoint(m.group(1), m.group(2), m.start(2), m.end(2),
                                     InjectionKind.JSON_STRING))
    for m in _JSON_SCALAR.finditer(message):
        value = m.group(2)
        kind = InjectionKind.JSON_BOOLEAN if value in ("true", "false") else InjectionKind.JSON_NUMBER
        points.append(InjectionPoint(m.group(1), value, m.start(2), m.end(2), kind))
    return points


def _key_value_points(message: str) -> List[InjectionPoint]:
    return [InjectionPoint(m.group(1), m.group(2), m.start(2), m.end(2), InjectionKind.KEY_VALUE)
            for m in _KEY_VALUE.finditer(message)]


def find_injection_points(message: str) -> List[InjectionPoint]:
    """JSON values (when the message looks like JSON) followed by key=value pairs."""
    if not message:
        return []
    points = []
    if message.strip().startswith(("{", "[")):
        points.extend(_json_points(message))
    points.extend(_key_value_points(message))
    return points


def inject_payload(message: str, point: InjectionPoint, payload: str) -> str:
    """Replace the value at *point* with *payload*."""
    if message is None or point is None or payload is None:
        return message
    return message[:point.start] + payload + message[point.end:]


def append_payload(message: str, point: InjectionPoint, payload: str) -> str:
    """Insert *payload* right after the value at *point*."""
    if message is None or point is None or payload is None:
        return message
    return message[:point.end] + payload + message[point.end:]


def create_injected_variants(message: str, payload: str) -> List[InjectedMessage]:
    return [InjectedMessage(inject_payload(message, p, payload), p, payload)
            for p in find_injection_points(message)]


def create_appended_variants(message: str, payload: str) -> List[InjectedMessage]:
    return [InjectedMessage(append_payload(message, p, payload), p, payload)
            for p in find_injection_points(message)]


def is_id_parameter(name: str) -> bool:
    lname = (name or "").lower()
    return any(candidate in lname for candidate in ID_PARAMETER_NAMES)


def find_id_parameters(message: str) -> List[InjectionPoint]:
    return [p for p in find_injection_points(message) if is_id_parameter(p.param_name)]


def is_uuid(value: str) -> bool:
    return bool(value) and bool(_UUID.match(value))


def is_mongo_id(value: str) -> bool:
    return bool(value) and bool(_MONGO_ID.match(value))


def is_numeric_id(value: str) -> bool:
    return bool(value) and bool(_NUMERIC.match(value))
