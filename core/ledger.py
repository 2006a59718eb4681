"""
Payment application rules.

Pure functions: given an invoice and a payment amount, decide whether the
payment is acceptable and what the invoice looks like afterwards. The
payment service runs these inside the transaction that holds the invoice
row lock, so the decision and the write see the same state.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from core.exceptions import ValidationError
from core.invoice_status import (
    InvoiceStatus,
    ensure_accepts_payment,
    ensure_transition,
    status_after_payment,
)
from core.money import minor_unit, round_money


@dataclass(frozen=True)
class PaymentApplication:
    """Invoice payment fields after a payment is applied."""

    amount_paid: Decimal
    status: InvoiceStatus
    paid_at: datetime | None

    @property
    def is_paid_in_full(self) -> bool:
        return self.status == InvoiceStatus.PAID


def apply_payment(invoice, amount: Decimal, now: datetime) -> PaymentApplication:
    """
    Validate a payment against an invoice and compute the result.

    Checks, in order: the invoice accepts payments, the amount is positive
    and a whole number of the currency's minor unit, the amount does not
    exceed the balance.

    Raises:
        InvalidStateError: Invoice is draft, cancelled or refunded
        ValidationError: Non-positive or sub-unit amount, or amount above the balance
    """
    ensure_accepts_payment(invoice.status)

    if amount <= 0:
        raise ValidationError.for_field("amount", "Payment amount must be greater than 0")

    if amount != round_money(amount, invoice.currency):
        raise ValidationError.for_field(
            "amount",
            f"Payment amount {amount} is finer than the {invoice.currency} minor unit {minor_unit(invoice.currency)}",
        )

    balance = invoice.total - invoice.amount_paid
    if amount > balance:
        shown = round_money(balance, invoice.currency)
        raise ValidationError.for_field(
            "amount",
            f"Payment amount {amount} exceeds the outstanding balance {shown}",
        )

    new_amount_paid = invoice.amount_paid + amount
    new_status = status_after_payment(new_amount_paid, invoice.total)
    if new_status != invoice.status:
        ensure_transition(invoice.status, new_status)

    return PaymentApplication(
        amount_paid=new_amount_paid,
        status=new_status,
        paid_at=now if new_status == InvoiceStatus.PAID else invoice.paid_at,
    )
