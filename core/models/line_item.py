"""Invoice line item models.

Quantities and prices are Decimal. A line's amount is quantity * unit_price
rounded to the invoice currency's minor unit.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class LineItemInput(BaseModel):
    """One billable entry as submitted on create or edit."""

    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(..., ge=Decimal("0.01"), max_digits=12, decimal_places=2)
    unit_price: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)


class LineItem(BaseModel):
    """Line item as stored."""

    id: UUID
    invoice_id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    sort_order: int
    created_at: datetime

    model_config = {"from_attributes": True}
