"""JSON-lines message history for offline passive scans."""

import json
from datetime import datetime
from typing import Iterable

from wsscanner.core.models import Direction, MessageRecord
from wsscanner.core.transport import MessageLog

_DIRECTIONS = {
    "client_to_server": Direction.CLIENT_TO_SERVER,
    "outgoing": Direction.CLIENT_TO_SERVER,
    "out": Direction.CLIENT_TO_SERVER,
    "c2s": Direction.CLIENT_TO_SERVER,
    "server_to_client": Direction.SERVER_TO_CLIENT,
    "incoming": Direction.SERVER_TO_CLIENT,
    "in": Direction.SERVER_TO_CLIENT,
    "s2c": Direction.SERVER_TO_CLIENT,
}


def parse_direction(value: str) -> Direction:
    try:
        return _DIRECTIONS[str(value).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown message direction: {value!r}") from None


def parse_record(line: str) -> MessageRecord:
    """{"direction": "out", "content": "...", "timestamp": "2024-01-01T10:00:00"}"""
    data = json.loads(line)
    if "content" not in data:
        raise ValueError("History record has no 'content'")
    ts = data.get("timestamp")
    return MessageRecord(
        content=str(data["content"]),
        direction=parse_direction(data.get("direction", "in")),
        timestamp=datetime.fromisoformat(ts) if ts else datetime.now(),
    )


def load_history(filename: str, logger=None) -> MessageLog:
    log = MessageLog()
    with open(filename, 'r', encoding='utf-8', errors='ignore') as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                log.append(parse_record(line))
            except ValueError as e:
                if logger:
                    logger.warn(f"{filename}:{lineno}: skipped ({e})")
    if logger:
        logger.info(f"Loaded {log.message_count()} messages from {filename}")
    return log


def dump_history(records: Iterable[MessageRecord], filename: str):
    with open(filename, 'w', encoding='utf-8') as f:
        for r in records:
            f.write(json.dumps({
                "direction": r.direction.value,
                "content": r.content,
                "timestamp": r.timestamp.isoformat(),
            }) + "\n")
