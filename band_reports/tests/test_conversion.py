"""Tests for the default value converter."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path

import pytest

from band_reports.conversion import DefaultValueConverter
from band_reports.exceptions import ValueConversionError


class Color(Enum):
    RED = "r"
    GREEN = "g"


@pytest.fixture
def converter():
    return DefaultValueConverter()


class TestConvertFromString:
    """Test DefaultValueConverter.convert_from_string."""

    @pytest.mark.parametrize(
        "target_type,text,expected",
        [
            (str, " keep spaces ", " keep spaces "),
            (int, " 42 ", 42),
            (float, "2.5", 2.5),
            (Decimal, "10.10", Decimal("10.10")),
            (bool, "Yes", True),
            (bool, "off", False),
            (date, "2024-03-01", date(2024, 3, 1)),
            (datetime, "2024-03-01 12:30", datetime(2024, 3, 1, 12, 30)),
            (Color, "RED", Color.RED),
            (Color, "g", Color.GREEN),
            (list, "[a, b]", ["a", "b"]),
            (dict, "{limit: 3}", {"limit": 3}),
        ],
    )
    def test_supported_types(self, converter, target_type, text, expected):
        """Strings convert to each supported type."""
        assert converter.convert_from_string(target_type, text) == expected

    def test_date_returns_date_not_datetime(self, converter):
        """Conversion to date drops the time part."""
        value = converter.convert_from_string(date, "2024-03-01")
        assert type(value) is date

    def test_other_types_use_constructor(self, converter):
        """Unknown types are constructed from the string."""
        assert converter.convert_from_string(Path, "a/b.txt") == Path("a/b.txt")

    @pytest.mark.parametrize(
        "target_type,text",
        [
            (int, "x"),
            (bool, "maybe"),
            (Decimal, "ten"),
            (date, ""),
            (Color, "BLUE"),
            (list, "{a: 1}"),
        ],
    )
    def test_invalid_values_raise(self, converter, target_type, text):
        """Invalid text raises ValueConversionError."""
        with pytest.raises(ValueConversionError) as exc_info:
            converter.convert_from_string(target_type, text)

        assert exc_info.value.target_type is target_type
        assert exc_info.value.value == text


class TestConvertToString:
    """Test DefaultValueConverter.convert_to_string."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, ""),
            (True, "true"),
            (3, "3"),
            (date(2024, 3, 1), "2024-03-01"),
            (Color.RED, "r"),
            ([1, 2], "[1, 2]"),
            ("text", "text"),
        ],
    )
    def test_to_string(self, converter, value, expected):
        """Values render as text."""
        assert converter.convert_to_string(value) == expected
