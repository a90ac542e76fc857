"""
Tests for serial number allocation.
"""
import pytest

from core.serials import (
    SerialAllocator,
    build_prefix_table,
    format_serial,
    next_serials_from_existing,
    parse_serial,
    prefix_for,
)


class TestPrefixes:
    """Category -> prefix mapping."""

    def test_builtin(self):
        assert prefix_for("Personal") == "PN"
        assert prefix_for("Company") == "CN"
        assert prefix_for("Director") == "DN"

    def test_unknown_category_uses_default(self):
        assert prefix_for("Trust") == "DN"
        assert prefix_for("") == "DN"

    def test_extra_prefixes(self):
        table = build_prefix_table({"Trust": "tn"})
        assert prefix_for("Trust", table) == "TN"
        assert prefix_for("Personal", table) == "PN"

    def test_format_and_parse(self):
        assert format_serial("PN", 7) == "PN-007"
        assert format_serial("PN", 1234) == "PN-1234"
        assert parse_serial("CN-012") == ("CN", 12)
        assert parse_serial("garbage") is None


class TestSerialAllocator:
    """Batch allocation."""

    def test_consecutive_in_submission_order(self):
        alloc = SerialAllocator({"personal": 5})
        assert [alloc.allocate("Personal") for _ in range(3)] == ["PN-005", "PN-006", "PN-007"]

    def test_counters_are_independent(self):
        alloc = SerialAllocator({"personal": 2, "company": 9})
        assert alloc.allocate("Company") == "CN-009"
        assert alloc.allocate("Personal") == "PN-002"
        assert alloc.allocate("Company") == "CN-010"

    def test_unknown_category_shares_default_counter(self):
        """Unknown categories draw from the DN sequence, never duplicating it."""
        alloc = SerialAllocator({"director": 4})
        assert alloc.allocate("Director") == "DN-004"
        assert alloc.allocate("Mystery") == "DN-005"
        assert alloc.allocate("Director") == "DN-006"

    def test_missing_counter_starts_at_one(self):
        alloc = SerialAllocator({})
        assert alloc.peek("Company") == 1
        assert alloc.allocate("Company") == "CN-001"

    @pytest.mark.parametrize("bad", [{"personal": "x"}, {"personal": None}, {"nonsense": 3}])
    def test_bad_snapshot_values_are_ignored(self, bad):
        alloc = SerialAllocator(bad)
        assert alloc.allocate("Personal") == "PN-001"

    def test_numeric_strings_accepted(self):
        alloc = SerialAllocator({"Personal": "12"})
        assert alloc.allocate("Personal") == "PN-012"


class TestScanFallback:
    """Continuing after the highest issued serial."""

    def test_max_plus_one(self):
        serials = ["PN-001", "PN-010", "CN-003", "junk", "", "PN-002"]
        assert next_serials_from_existing(serials) == {"personal": 11, "company": 4, "director": 1}
