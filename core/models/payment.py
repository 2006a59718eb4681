"""Payment ledger models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from utils.timezone import to_utc


class PaymentMethod(str, Enum):
    """How a payment was made."""

    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    CASH = "cash"
    CHECK = "check"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    OTHER = "other"


class PaymentCreate(BaseModel):
    """Data required to record a payment."""

    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: str | None = Field(None, max_length=100)
    paid_at: datetime | None = None  # Defaults to now when recorded
    notes: str | None = Field(None, max_length=500)

    @field_validator("paid_at")
    @classmethod
    def require_timezone(cls, value: datetime | None) -> datetime | None:
        return to_utc(value) if value is not None else None


class Payment(BaseModel):
    """Payment as stored. Never updated or deleted."""

    id: UUID
    invoice_id: UUID
    amount: Decimal
    currency: str
    method: PaymentMethod
    reference: str | None
    notes: str | None
    paid_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentResult(BaseModel):
    """Outcome of recording a payment: the new ledger entry and the invoice after it."""

    payment: Payment
    invoice: Any  # Invoice, kept loose to avoid a models import cycle
