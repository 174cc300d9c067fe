"""Unit tests for reference-number parsing and rendering"""

import pytest

from stockyard.errors import DataIntegrityError
from stockyard.sequencing import (
    next_reference_number, parse_reference_number, render_reference_number,
)


class TestParse:
    @pytest.mark.parametrize("value,expected", [("001", 1), ("042", 42), ("1000", 1000), ("0", 0)])
    def test_digit_strings(self, value, expected):
        assert parse_reference_number(value) == expected

    @pytest.mark.parametrize("value", ["", " 12", "12 ", "12\n", "-1", "+3", "1.0", "12a", "١٢"])
    def test_anything_else_is_a_data_defect(self, value):
        with pytest.raises(DataIntegrityError) as exc_info:
            parse_reference_number(value, "Invoice")
        assert exc_info.value.details["entity_type"] == "Invoice"


class TestRender:
    def test_zero_padded(self):
        assert render_reference_number(7, 3) == "007"

    def test_wider_values_are_never_truncated(self):
        assert render_reference_number(1000, 3) == "1000"

    def test_zero_is_not_a_reference(self):
        with pytest.raises(ValueError):
            render_reference_number(0, 3)


class TestNext:
    def test_empty_partition_starts_at_one(self):
        assert next_reference_number(None, 3) == "001"

    def test_increment(self):
        assert next_reference_number("041", 3) == "042"

    def test_overflow_widens(self):
        assert next_reference_number("999", 3) == "1000"

    def test_custom_width(self):
        assert next_reference_number("00009", 5) == "00010"
