"""
Invoice lifecycle status and its legal transitions.

    DRAFT    -> SENT, CANCELLED
    SENT     -> VIEWED, PARTIAL, PAID, OVERDUE, CANCELLED
    VIEWED   -> PARTIAL, PAID, OVERDUE, CANCELLED
    PARTIAL  -> PAID, OVERDUE, CANCELLED
    OVERDUE  -> PARTIAL, PAID, CANCELLED
    PAID     -> REFUNDED
    CANCELLED, REFUNDED: terminal

OVERDUE is derived at read time from the due date (see is_overdue) and is
never written by this service. The stored value is still accepted so rows
written by older code keep a legal path to PARTIAL, PAID and CANCELLED.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from core.exceptions import ForbiddenTransitionError, InvalidStateError
from utils.timezone import days_until, now_utc


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({
        InvoiceStatus.VIEWED, InvoiceStatus.PARTIAL, InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.VIEWED: frozenset({
        InvoiceStatus.PARTIAL, InvoiceStatus.PAID,
        InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.PARTIAL: frozenset({
        InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.OVERDUE: frozenset({
        InvoiceStatus.PARTIAL, InvoiceStatus.PAID, InvoiceStatus.CANCELLED,
    }),
    InvoiceStatus.PAID: frozenset({InvoiceStatus.REFUNDED}),
    InvoiceStatus.CANCELLED: frozenset(),
    InvoiceStatus.REFUNDED: frozenset(),
}

EDITABLE_STATUSES = frozenset({InvoiceStatus.DRAFT})
DELETABLE_STATUSES = frozenset({InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED})
NON_PAYABLE_STATUSES = frozenset({
    InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED, InvoiceStatus.REFUNDED,
})
OVERDUE_ELIGIBLE_STATUSES = frozenset({InvoiceStatus.SENT, InvoiceStatus.VIEWED})
OUTSTANDING_STATUSES = frozenset({
    InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PARTIAL, InvoiceStatus.OVERDUE,
})


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    """Whether moving from current to target is legal."""
    return target in TRANSITIONS[current]


def ensure_transition(current: InvoiceStatus, target: InvoiceStatus) -> None:
    """Raise ForbiddenTransitionError unless current -> target is legal."""
    if not can_transition(current, target):
        raise ForbiddenTransitionError(
            f"Cannot move invoice from {current.value} to {target.value}",
            current_status=current,
        )


def ensure_editable(current: InvoiceStatus) -> None:
    if current not in EDITABLE_STATUSES:
        raise ForbiddenTransitionError(
            f"Only draft invoices can be edited (status is {current.value})",
            current_status=current,
        )


def ensure_deletable(current: InvoiceStatus) -> None:
    if current not in DELETABLE_STATUSES:
        raise ForbiddenTransitionError(
            f"Only draft or cancelled invoices can be deleted (status is {current.value})",
            current_status=current,
        )


def ensure_accepts_payment(current: InvoiceStatus) -> None:
    if current in NON_PAYABLE_STATUSES:
        raise InvalidStateError(
            f"Cannot record a payment on a {current.value} invoice",
            current_status=current,
        )


def status_after_payment(amount_paid: Decimal, total: Decimal) -> InvoiceStatus:
    """Status implied by the cumulative amount paid."""
    if amount_paid >= total:
        return InvoiceStatus.PAID
    return InvoiceStatus.PARTIAL


def overdue_cutoff(now: datetime | None = None) -> datetime:
    """
    Due dates at or before this instant are overdue.

    Same boundary as days_until(due_date) < 0, usable in SQL filters so
    list views and detail views agree.
    """
    return (now or now_utc()) - timedelta(days=1)


def is_overdue(status: InvoiceStatus, due_date: datetime, now: datetime | None = None) -> bool:
    """Sent or viewed, and the due date is at least a day behind."""
    return status in OVERDUE_ELIGIBLE_STATUSES and days_until(due_date, now) < 0


def effective_status(status: InvoiceStatus, due_date: datetime, now: datetime | None = None) -> InvoiceStatus:
    """Status to show: OVERDUE when overdue, otherwise the stored status."""
    if is_overdue(status, due_date, now):
        return InvoiceStatus.OVERDUE
    return status
