"""
Money conversion tests.

Verifies:
- Inputs are quantized to cents, half-up
- Non-numeric, non-finite and oversized amounts are rejected
"""

from decimal import Decimal

import pytest

from marketledger.money import MAX_AMOUNT, to_money


class TestToMoney:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("10", Decimal("10.00")),
            ("0.005", Decimal("0.01")),
            (19.99, Decimal("19.99")),
            (" 250 ", Decimal("250.00")),
            ("999999999999.99", Decimal("999999999999.99")),
            ("-999999999999.99", Decimal("-999999999999.99")),
        ],
    )
    def test_accepts(self, value, expected):
        assert to_money(value) == expected

    @pytest.mark.parametrize("value", [None, True, "", "abc", "NaN", "Infinity", {"amount": 1}])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            to_money(value)

    @pytest.mark.parametrize("value", ["1e30", "1e13", str(10 ** 12), "-1e13", 10 ** 15])
    def test_rejects_amounts_too_large_for_column(self, value):
        with pytest.raises(ValueError, match="too large"):
            to_money(value)

    def test_rounding_up_to_limit_rejected(self):
        assert Decimal("999999999999.995") < MAX_AMOUNT
        with pytest.raises(ValueError, match="too large"):
            to_money("999999999999.995")
        assert to_money("999999999999.994") == Decimal("999999999999.99")

    def test_field_name_in_message(self):
        with pytest.raises(ValueError, match="sale_amount must be a number"):
            to_money("ten", field="sale_amount")
