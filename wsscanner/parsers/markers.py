"""§-delimited payload positions in fuzz templates."""

import re
from typing import List

from wsscanner.core.errors import MalformedMarkersError

MARKER = "§"
_POSITION = re.compile(r"§(.*?)§", re.S)


def extract_positions(template: str) -> List[str]:
    """Return the marked substrings in order.

    Raises MalformedMarkersError when a marker is opened but never closed.
    """
    if not template:
        return []
    parts = template.split(MARKER)
    if len(parts) % 2 == 0:
        unclosed = template.rfind(MARKER)
        raise MalformedMarkersError(f"Unclosed payload marker at offset {unclosed}")
    return parts[1::2]


def has_positions(template: str) -> bool:
    return bool(template) and MARKER in template


def replace_placeholders(template: str, payload: str) -> str:
    """Substitute *payload* for every §...§ span."""
    return _POSITION.sub(lambda _m: payload, template)
