"""
Domain events for invoicing.

Immutable records of state changes. A service publishes what happened and
subscribers (notification delivery, receipts, reporting) react without the
service knowing who is listening.

Events carry the full domain object so handlers never re-fetch state that
may not be visible to them yet.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class BillingEvent:
    """Base class for all billing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class InvoiceEvent(BillingEvent):
    """Events related to invoice lifecycle."""
    invoice: Any = None  # Invoice; Any avoids a models import cycle


@dataclass(frozen=True)
class InvoiceCreated(InvoiceEvent):
    """A draft invoice was created."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceCreated":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceSent(InvoiceEvent):
    """
    Invoice left DRAFT. Delivery subscribers use the recipient details.

    Delivery happens outside the send; a failed delivery never rolls it back.
    """
    recipient: Any = None  # SendInvoiceRequest

    @classmethod
    def create(cls, invoice: Any, recipient: Any) -> "InvoiceSent":
        return cls(invoice=invoice, recipient=recipient)


@dataclass(frozen=True)
class InvoiceViewed(InvoiceEvent):
    """Recipient opened the invoice for the first time."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceViewed":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class PaymentRecorded(InvoiceEvent):
    """A payment was appended to the ledger."""
    payment: Any = None

    @classmethod
    def create(cls, invoice: Any, payment: Any) -> "PaymentRecorded":
        return cls(invoice=invoice, payment=payment)


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """Invoice was paid in full."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoicePaid":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceCancelled(InvoiceEvent):
    """Invoice was cancelled."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceCancelled":
        return cls(invoice=invoice)
