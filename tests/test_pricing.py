from decimal import Decimal

import pytest

from catalog_service.application.pricing import (
    format_decimal,
    parse_decimal,
    parse_optional_decimal,
)
from catalog_service.core.exceptions import InvalidPriceError


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.250,00", "1250.00"),
        ("1,250.00", "1250.00"),
        ("1.250", "1250.00"),
        ("1,250", "1250.00"),
        ("1.250.000", "1250000.00"),
        ("19,9", "19.90"),
        ("19.99", "19.99"),
        ("0,5", "0.50"),
        (" 42 ", "42.00"),
        ("10.005", "10005.00"),
        ("3.14159,2", "314159.20"),
    ],
)
def test_parse_decimal(raw, expected):
    assert parse_decimal(raw) == Decimal(expected)


def test_rounds_half_up_to_two_places():
    assert parse_decimal("2,345") == Decimal("2345.00")
    assert parse_decimal("2,3456") == Decimal("2.35")


@pytest.mark.parametrize("raw", ["", "abc", "-5", "1e3", "12abc", ",", "1.2.3,4,5"])
def test_invalid_values(raw):
    with pytest.raises(InvalidPriceError):
        parse_decimal(raw)


def test_optional_values():
    assert parse_optional_decimal(None) is None
    assert parse_optional_decimal("  ") is None
    assert parse_optional_decimal("7,5") == Decimal("7.50")


def test_format_decimal():
    assert format_decimal(Decimal("1250")) == "1250.00"
    assert format_decimal(Decimal("0.5")) == "0.50"
    assert format_decimal(None) is None


def test_largest_storable_value():
    assert parse_decimal("99.999.999,99") == Decimal("99999999.99")


@pytest.mark.parametrize(
    "raw",
    ["1.000.000.000", "100000000", "99999999,9999", "1" * 40],
    ids=["grouped-billion", "ten-to-the-eighth", "rounds-up-to-bound", "forty-digits"],
)
def test_values_beyond_the_column_range(raw):
    with pytest.raises(InvalidPriceError):
        parse_decimal(raw)
