"""Tests for amount parsing."""

import pytest

from ledgerlink.utils.amount_parser import parse_amount, format_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", 12345),
        ("-123.45", -12345),
        ("123.45-", -12345),
        ("(123.45)", -12345),
        ("1,234.56", 123456),
        ("₪99", 9900),
        ("$ 12.5", 1250),
        ("0.005", 1),
        ("ILS 10", 1000),
    ],
)
def test_parse_amount(text, expected):
    """Amounts become signed integer minor units."""
    assert parse_amount(text) == expected


def test_parse_amount_invalid():
    """Garbage raises ValueError."""
    with pytest.raises(ValueError):
        parse_amount("abc")
    with pytest.raises(ValueError):
        parse_amount("")


def test_format_amount():
    """Minor units render with two decimals."""
    assert format_amount(123456) == "1,234.56"
    assert format_amount(-9900) == "-99.00"
    assert format_amount(5) == "0.05"
