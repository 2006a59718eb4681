"""Per-account invoicing settings."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class AccountSettings(BaseModel):
    """Settings row for one account, including the invoice number counter."""

    account_id: UUID
    invoice_prefix: str
    invoice_next_number: int
    default_payment_terms: int
    default_tax_rate: Decimal
    invoice_notes: str | None
    invoice_terms: str | None
    invoice_footer: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AccountSettingsUpdate(BaseModel):
    """Editable settings. The number counter is deliberately absent."""

    invoice_prefix: str | None = Field(None, min_length=1, max_length=10, pattern=r"^[A-Za-z0-9_]+$")
    default_payment_terms: int | None = Field(None, ge=0, le=365)
    default_tax_rate: Decimal | None = Field(None, ge=0, le=100, decimal_places=2)
    invoice_notes: str | None = Field(None, max_length=2000)
    invoice_terms: str | None = Field(None, max_length=2000)
    invoice_footer: str | None = Field(None, max_length=1000)
