"""Billing configuration.

Defaults applied when an account's settings row is first created, plus the
service-wide currency. Values can be overridden from the environment.
"""

import os
from decimal import Decimal

from pydantic import BaseModel, Field


class BillingConfig(BaseModel):
    """Service-wide invoicing defaults."""

    default_currency: str = Field(
        default="TWD",
        description="Currency for new invoices when neither caller nor settings give one",
        min_length=3,
        max_length=3,
    )
    default_invoice_prefix: str = Field(
        default="INV",
        description="Invoice number prefix for new accounts",
        min_length=1,
        max_length=10,
    )
    default_payment_terms: int = Field(
        default=30,
        description="Days from issue to due date for new accounts",
        ge=0,
        le=365,
    )
    default_tax_rate: Decimal = Field(
        default=Decimal("0"),
        description="Tax percentage for new accounts",
        ge=0,
        le=100,
        decimal_places=2,
    )

    @classmethod
    def from_env(cls) -> "BillingConfig":
        """Build from BILLING_* environment variables, falling back to defaults."""
        overrides = {
            "default_currency": os.getenv("BILLING_DEFAULT_CURRENCY"),
            "default_invoice_prefix": os.getenv("BILLING_DEFAULT_INVOICE_PREFIX"),
            "default_payment_terms": os.getenv("BILLING_DEFAULT_PAYMENT_TERMS"),
            "default_tax_rate": os.getenv("BILLING_DEFAULT_TAX_RATE"),
        }
        return cls(**{k: v for k, v in overrides.items() if v is not None})
