"""Tests for invoice totals computation."""

from decimal import Decimal

import pytest

from core.models import LineItemInput
from core.money import compute_totals, line_amount, minor_unit, round_money


def _item(quantity, unit_price, description="Work"):
    return LineItemInput(
        description=description,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
    )


class TestComputeTotals:

    def test_two_items_with_tax_and_discount(self):
        totals = compute_totals(
            [_item("1", "30000"), _item("2", "10000")],
            tax_rate=Decimal("5"),
            discount=Decimal("5000"),
        )

        assert totals.subtotal == Decimal("50000")
        assert totals.tax_amount == Decimal("2250")
        assert totals.total == Decimal("47250")

    def test_no_tax_no_discount(self):
        totals = compute_totals([_item("3", "1500")], Decimal("0"), Decimal("0"))

        assert totals.subtotal == Decimal("4500")
        assert totals.tax_amount == Decimal("0")
        assert totals.total == Decimal("4500")

    def test_discount_equal_to_subtotal_gives_zero_total(self):
        totals = compute_totals([_item("1", "1000")], Decimal("5"), Decimal("1000"))

        assert totals.tax_amount == Decimal("0")
        assert totals.total == Decimal("0")

    def test_discount_larger_than_subtotal_clamps_at_zero(self):
        totals = compute_totals([_item("1", "1000")], Decimal("5"), Decimal("2500"))

        assert totals.subtotal == Decimal("1000")
        assert totals.tax_amount == Decimal("0")
        assert totals.total == Decimal("0")
        assert totals.taxable_base == Decimal("0")

    def test_tax_rounds_half_up_for_whole_unit_currency(self):
        # 10 * 5% = 0.5 -> 1
        totals = compute_totals([_item("1", "10")], Decimal("5"), Decimal("0"), "TWD")

        assert totals.tax_amount == Decimal("1")
        assert totals.total == Decimal("11")

    def test_tax_rounds_half_up_to_cents(self):
        # 10.10 * 5% = 0.505 -> 0.51
        totals = compute_totals([_item("1", "10.10")], Decimal("5"), Decimal("0"), "USD")

        assert totals.tax_amount == Decimal("0.51")
        assert totals.total == Decimal("10.61")

    def test_fractional_quantity(self):
        totals = compute_totals([_item("1.5", "2000")], Decimal("0"), Decimal("0"))

        assert totals.subtotal == Decimal("3000")

    def test_zero_priced_item(self):
        totals = compute_totals([_item("4", "0")], Decimal("5"), Decimal("0"))

        assert totals.total == Decimal("0")

    def test_total_is_subtotal_minus_discount_plus_tax(self):
        totals = compute_totals(
            [_item("2.25", "333.33"), _item("1", "99.99")],
            Decimal("8.25"),
            Decimal("12.34"),
            "USD",
        )

        assert totals.total == totals.subtotal - Decimal("12.34") + totals.tax_amount

    def test_empty_items_give_zero(self):
        totals = compute_totals([], Decimal("5"), Decimal("0"))

        assert totals.subtotal == Decimal("0")
        assert totals.total == Decimal("0")


class TestRounding:

    @pytest.mark.parametrize("currency,expected", [
        ("TWD", Decimal("1")),
        ("jpy", Decimal("1")),
        ("USD", Decimal("0.01")),
        ("EUR", Decimal("0.01")),
    ])
    def test_minor_unit(self, currency, expected):
        assert minor_unit(currency) == expected

    def test_round_money_whole_units(self):
        assert round_money(Decimal("2.5"), "TWD") == Decimal("3")
        assert round_money(Decimal("2.49"), "TWD") == Decimal("2")

    def test_round_money_cents(self):
        assert round_money(Decimal("1.005"), "USD") == Decimal("1.01")

    def test_line_amount_rounds_each_line(self):
        assert line_amount(Decimal("0.33"), Decimal("10"), "TWD") == Decimal("3")
        assert line_amount(Decimal("0.333"), Decimal("10"), "USD") == Decimal("3.33")
