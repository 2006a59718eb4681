"""Invoice domain models.

Monetary values are Decimal and stored as NUMERIC. Tax rate is a percentage
(5 = 5%). Derived read-time fields (balance, days_until_due, is_overdue,
display_status) are computed fields so they appear in API payloads.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, computed_field, field_validator

from core.invoice_status import InvoiceStatus, effective_status, is_overdue
from core.models.line_item import LineItem, LineItemInput
from core.models.payment import Payment
from utils.timezone import days_until


def _as_utc(value: datetime | None) -> datetime | None:
    """Date-only and naive inputs are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InvoiceCreate(BaseModel):
    """Data required to create an invoice.

    tax_rate, due_date and the text fields fall back to account settings
    when omitted.
    """

    client_id: UUID
    project_id: UUID | None = None
    due_date: datetime | None = None
    tax_rate: Decimal | None = Field(None, ge=0, le=100, decimal_places=2)
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    notes: str | None = Field(None, max_length=2000)
    terms: str | None = Field(None, max_length=2000)
    footer: str | None = Field(None, max_length=1000)
    items: list[LineItemInput] = Field(..., min_length=1)

    normalize_due_date = field_validator("due_date")(_as_utc)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str | None) -> str | None:
        return value.upper() if value else value


class InvoiceUpdate(BaseModel):
    """Editable fields of a draft invoice. All optional; items replace the whole list."""

    project_id: UUID | None = None
    due_date: datetime | None = None
    tax_rate: Decimal | None = Field(None, ge=0, le=100, decimal_places=2)
    discount: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    notes: str | None = Field(None, max_length=2000)
    terms: str | None = Field(None, max_length=2000)
    footer: str | None = Field(None, max_length=1000)
    items: list[LineItemInput] | None = Field(None, min_length=1)

    normalize_due_date = field_validator("due_date")(_as_utc)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str | None) -> str | None:
        return value.upper() if value else value


class SendInvoiceRequest(BaseModel):
    """Delivery details passed along when an invoice is sent."""

    to: EmailStr
    cc: list[EmailStr] = Field(default_factory=list)
    subject: str | None = Field(None, max_length=200)
    message: str | None = Field(None, max_length=5000)


class Invoice(BaseModel):
    """Full invoice entity as stored, with its line items."""

    id: UUID
    account_id: UUID
    client_id: UUID
    project_id: UUID | None
    invoice_number: str
    status: InvoiceStatus
    currency: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal
    amount_paid: Decimal
    issue_date: datetime
    due_date: datetime
    sent_at: datetime | None
    viewed_at: datetime | None
    paid_at: datetime | None
    cancelled_at: datetime | None
    notes: str | None
    terms: str | None
    footer: str | None
    created_at: datetime
    updated_at: datetime
    line_items: list[LineItem] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def balance(self) -> Decimal:
        """Amount still owed."""
        return self.total - self.amount_paid

    @computed_field
    @property
    def days_until_due(self) -> int:
        return days_until(self.due_date)

    @computed_field
    @property
    def is_overdue(self) -> bool:
        return is_overdue(self.status, self.due_date)

    @computed_field
    @property
    def display_status(self) -> InvoiceStatus:
        return effective_status(self.status, self.due_date)


class InvoiceDetail(Invoice):
    """Invoice with its payment ledger, newest payment first."""

    payments: list[Payment] = Field(default_factory=list)


class InvoiceFilters(BaseModel):
    """Query parameters for listing invoices."""

    status: InvoiceStatus | None = None
    client_id: UUID | None = None
    project_id: UUID | None = None
    overdue: bool = False
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class InvoicePage(BaseModel):
    """One page of invoices plus paging metadata."""

    items: list[Invoice]
    total: int
    page: int
    limit: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)


class InvoiceSummary(BaseModel):
    """Dashboard figures for the current account."""

    draft_count: int
    sent_count: int
    overdue_count: int
    total_outstanding: Decimal
    revenue_this_month: Decimal
    revenue_last_month: Decimal
    revenue_this_year: Decimal
    growth_percent: Decimal
