"""
Tests for § payload position markers.
"""

import pytest

from wsscanner.core.errors import MalformedMarkersError
from wsscanner.parsers.markers import extract_positions, has_positions, replace_placeholders


class TestExtractPositions:
    """Position discovery"""

    def test_single_position(self):
        """One marked span"""
        assert extract_positions('{"q":"§x§"}') == ["x"]

    def test_multiple_positions_in_order(self):
        """Several spans keep their order"""
        assert extract_positions("§a§ and §b§") == ["a", "b"]

    def test_no_markers(self):
        """Templates without markers have no positions"""
        assert extract_positions("plain") == []
        assert not has_positions("plain")

    def test_unclosed_marker_is_malformed(self):
        """An opening marker without a close is rejected"""
        with pytest.raises(MalformedMarkersError):
            extract_positions("abc§def")

    def test_idempotent(self):
        """Same template, same answer"""
        t = "x=§1§&y=§2§"
        assert extract_positions(t) == extract_positions(t)


class TestReplacePlaceholders:
    """Substitution"""

    def test_replaces_every_span(self):
        """Each §...§ becomes the payload"""
        assert replace_placeholders("§a§-§b§", "P") == "P-P"

    def test_payload_with_regex_metacharacters(self):
        """Payloads are inserted literally"""
        assert replace_placeholders('{"v":"§x§"}', r"$1\g<0>") == '{"v":"$1\\g<0>"}'
