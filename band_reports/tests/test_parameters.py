"""Tests for parameter resolution."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from band_reports.exceptions import MissingRequiredParameterError, ValueConversionError
from band_reports.parameters import ParameterResolver
from band_reports.structure import DefaultValueParameter, PlainParameter, Report


@pytest.fixture
def report():
    """Report declaring plain, defaulted and required parameters."""
    return Report(
        name="Statement",
        parameters=[
            PlainParameter(name="Customer", alias="customer", required=True),
            DefaultValueParameter(
                name="Copies", alias="copies", parameter_class=int, default_value="2"
            ),
            DefaultValueParameter(
                name="Since", alias="since", parameter_class="date", default_value="2024-01-31"
            ),
            PlainParameter(name="Note", alias="note"),
        ],
    )


@pytest.fixture
def resolver():
    """Resolver with the default converter."""
    return ParameterResolver()


class TestParameterResolver:
    """Test ParameterResolver.resolve."""

    def test_defaults_are_converted(self, report, resolver):
        """Defaults are converted to the declared parameter class."""
        resolved = resolver.resolve(report, {"customer": "ACME"})

        assert resolved["copies"] == 2
        assert resolved["since"] == date(2024, 1, 31)

    def test_every_alias_present(self, report, resolver):
        """The result has an entry for every declared alias."""
        resolved = resolver.resolve(report, {"customer": "ACME"})

        assert set(resolved) == {"customer", "copies", "since", "note"}
        assert resolved["note"] is None

    def test_undeclared_entries_dropped(self, report, resolver):
        """The key set equals the declared aliases even with extra caller entries."""
        params = {"customer": "ACME", "extra": [1, 2]}
        resolved = resolver.resolve(report, params)

        assert set(resolved) == {parameter.alias for parameter in report.parameters}
        assert "extra" not in resolved
        assert params == {"customer": "ACME", "extra": [1, 2]}

    def test_single_declaration_with_extra_key(self, resolver):
        """Only the declared alias survives resolution."""
        report = Report(name="R", parameters=[PlainParameter(name="a")])
        assert resolver.resolve(report, {"a": 1, "extra": 2}) == {"a": 1}

    def test_caller_values_win_over_defaults(self, report, resolver):
        """Explicit values are not replaced by defaults."""
        resolved = resolver.resolve(report, {"customer": "ACME", "copies": 5})
        assert resolved["copies"] == 5

    def test_none_value_gets_default(self, report, resolver):
        """An explicit None is treated as absent."""
        resolved = resolver.resolve(report, {"customer": "ACME", "copies": None})
        assert resolved["copies"] == 2

    def test_required_missing_raises(self, report, resolver):
        """A required parameter without value or default raises."""
        with pytest.raises(MissingRequiredParameterError) as exc_info:
            resolver.resolve(report, {})

        assert exc_info.value.alias == "customer"
        assert str(exc_info.value) == 'Required report parameter "customer" not found'

    def test_required_satisfied_by_default(self, resolver):
        """A required parameter is satisfied by its default."""
        report = Report(
            name="R",
            parameters=[
                DefaultValueParameter(name="Year", parameter_class=int, required=True, default_value="2024")
            ],
        )
        assert resolver.resolve(report, {}) == {"Year": 2024}

    def test_caller_mapping_not_modified(self, report, resolver):
        """The input mapping is left untouched."""
        params = {"customer": "ACME"}
        resolver.resolve(report, params)
        assert params == {"customer": "ACME"}

    def test_resolution_is_idempotent(self, report, resolver):
        """Resolving an already resolved map changes nothing."""
        once = resolver.resolve(report, {"customer": "ACME"})
        assert resolver.resolve(report, once) == once

    def test_bad_default_raises_conversion_error(self, resolver):
        """Defaults that cannot be converted raise ValueConversionError."""
        report = Report(
            name="R",
            parameters=[DefaultValueParameter(name="n", parameter_class=int, default_value="many")],
        )
        with pytest.raises(ValueConversionError, match=r"Cannot convert value \[many\]"):
            resolver.resolve(report, {})

    def test_custom_converter_used(self, report):
        """The injected converter converts defaults."""
        converter = MagicMock()
        converter.convert_from_string.return_value = "converted"

        resolved = ParameterResolver(converter).resolve(report, {"customer": "ACME"})

        assert resolved["copies"] == "converted"
        converter.convert_from_string.assert_any_call(int, "2")

    def test_no_declarations(self, resolver):
        """Reports without parameters resolve to an empty map."""
        params = {"a": 1}
        assert resolver.resolve(Report(name="Empty"), params) == {}
        assert params == {"a": 1}
