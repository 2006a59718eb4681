"""Invoice totals.

All arithmetic uses Decimal. Amounts are rounded half-up to the currency's
minor unit: whole units for zero-decimal currencies (TWD, JPY, KRW), cents
for everything else.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Protocol

ZERO = Decimal("0")
HUNDRED = Decimal("100")

ZERO_DECIMAL_CURRENCIES = frozenset({"TWD", "JPY", "KRW", "VND", "CLP", "ISK"})


class Billable(Protocol):
    quantity: Decimal
    unit_price: Decimal


@dataclass(frozen=True)
class Totals:
    """Computed monetary fields of an invoice."""

    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal

    @property
    def taxable_base(self) -> Decimal:
        return self.total - self.tax_amount


def minor_unit(currency: str) -> Decimal:
    """Smallest representable amount for a currency (1 or 0.01)."""
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return Decimal("1")
    return Decimal("0.01")


def round_money(amount: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return Decimal(amount).quantize(minor_unit(currency), rounding=ROUND_HALF_UP)


def line_amount(quantity: Decimal, unit_price: Decimal, currency: str) -> Decimal:
    """Amount of one line item: quantity x unit price, rounded."""
    return round_money(Decimal(quantity) * Decimal(unit_price), currency)


def compute_totals(
    items: Iterable[Billable],
    tax_rate: Decimal,
    discount: Decimal,
    currency: str = "TWD",
) -> Totals:
    """
    Compute subtotal, tax and total for a set of line items.

    A discount larger than the subtotal clamps the taxable base at zero, so
    tax and total never go negative.

    Example:
        items 1 x 30000 and 2 x 10000, tax 5%, discount 5000
        -> subtotal 50000, tax 2250, total 47250
    """
    subtotal = sum(
        (line_amount(item.quantity, item.unit_price, currency) for item in items),
        ZERO,
    )
    taxable_base = max(subtotal - Decimal(discount), ZERO)
    tax_amount = round_money(taxable_base * Decimal(tax_rate) / HUNDRED, currency)
    return Totals(
        subtotal=round_money(subtotal, currency),
        tax_amount=tax_amount,
        total=round_money(taxable_base + tax_amount, currency),
    )
