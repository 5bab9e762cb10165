"""
Tests for the payload catalog and payload models.
"""

import pytest

from wsscanner.payloads import catalog
from wsscanner.payloads.models import NumericPayloadModel, StringPayloadModel


class TestCatalog:
    """Static payload lists"""

    def test_list_sizes(self):
        """Catalog lists have their documented sizes"""
        assert len(catalog.sql_error_payloads()) == 19
        assert len(catalog.sql_time_based_payloads()) == 9
        assert len(catalog.mongodb_payloads()) == 16
        assert len(catalog.couchdb_payloads()) == 5
        assert len(catalog.unix_command_payloads()) == 20
        assert len(catalog.windows_command_payloads()) == 14
        assert len(catalog.all_xss_payloads()) == 13 + 8 + 8
        assert len(catalog.ldap_payloads()) == 16
        assert len(catalog.xpath_payloads()) == 18
        assert len(catalog.template_injection_payloads()) == 10

    def test_accessors_return_copies(self):
        """Mutating a returned list does not touch the catalog"""
        first = catalog.sql_error_payloads()
        first.append("mutated")
        assert "mutated" not in catalog.sql_error_payloads()

    def test_combined_lists(self):
        """Aggregates keep category order"""
        assert catalog.all_sql_payloads()[:19] == catalog.sql_error_payloads()
        assert catalog.all_nosql_payloads()[-5:] == catalog.couchdb_payloads()

    def test_quick_test(self):
        """One probe per family"""
        assert catalog.quick_test_payloads() == [
            "'", '{"$gt":""}', "; id", "<script>alert(1)</script>", "*", "' or '1'='1"]

    def test_append_to_value(self):
        """Payloads are appended to the original"""
        assert catalog.append_to_value("bob", ["'", "--"]) == ["bob'", "bob--"]


class TestStringPayloadModel:
    """List-backed model"""

    def test_order_and_size(self):
        """Iteration follows insertion order"""
        m = StringPayloadModel(["a", "b"])
        m.add("c")
        assert list(m) == ["a", "b", "c"]
        assert m.size() == len(m) == 3

    def test_remove_and_dedupe(self):
        """Duplicates collapse to their first occurrence"""
        m = StringPayloadModel(["x", "y", "x", "z", "y"])
        m.remove_duplicates()
        assert list(m) == ["x", "y", "z"]
        m.remove("y")
        assert list(m) == ["x", "z"]

    def test_fresh_iterators(self):
        """Each iteration restarts"""
        m = StringPayloadModel(["1", "2"])
        assert list(m) == list(m) == ["1", "2"]

    def test_from_file(self, tmp_path):
        """Blank lines are skipped"""
        f = tmp_path / "p.txt"
        f.write_text("one\n\ntwo\r\n", encoding="utf-8")
        assert list(StringPayloadModel.from_file(str(f))) == ["one", "two"]


class TestNumericPayloadModel:
    """Range model"""

    def test_range_with_step(self):
        """Inclusive range by step"""
        m = NumericPayloadModel(1, 10, 3)
        assert list(m) == ["1", "4", "7", "10"]
        assert m.size() == 4

    def test_zero_padding(self):
        """Values are padded to min_digits"""
        assert list(NumericPayloadModel(8, 10, 1, 3)) == ["008", "009", "010"]

    def test_empty_ranges(self):
        """Backwards ranges and non-positive steps are empty"""
        for m in (NumericPayloadModel(10, 1, 1), NumericPayloadModel(1, 10, 0), NumericPayloadModel(1, 10, -2)):
            assert m.size() == 0
            assert list(m) == []

    def test_size_matches_iteration(self):
        """size() agrees with the number of produced payloads"""
        for start, stop, step in ((0, 0, 1), (0, 99, 7), (5, 6, 10), (-3, 3, 2)):
            m = NumericPayloadModel(start, stop, step)
            assert m.size() == len(list(m))

    def test_parse(self):
        """FROM:TO:STEP:DIGITS"""
        m = NumericPayloadModel.parse("1:3:1:2")
        assert list(m) == ["01", "02", "03"]
        with pytest.raises(ValueError):
            NumericPayloadModel.parse("5")
