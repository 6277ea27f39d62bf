"""
Money helpers.
"""

from decimal import Decimal

import pytest

from common.exceptions import ValidationError
from common.helpers import to_decimal, round_money, format_amount


def test_to_decimal_accepts_numbers():
    assert to_decimal(None) == Decimal("0")
    assert to_decimal(5) == Decimal("5")
    assert to_decimal("499.50") == Decimal("499.50")
    assert to_decimal(0.1) == Decimal("0.1")


@pytest.mark.parametrize("bad", ["abc", "", "NaN", "Infinity", Decimal("NaN"), True, [1]])
def test_to_decimal_rejects_non_numbers(bad):
    with pytest.raises(ValidationError):
        to_decimal(bad)


def test_round_money_half_up():
    assert round_money("99.995") == Decimal("100.00")
    assert round_money("0.005") == Decimal("0.01")


def test_format_amount():
    assert format_amount(500) == "₹500"
    assert format_amount("499.5") == "₹499.50"
