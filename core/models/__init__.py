"""Core domain models."""

from core.invoice_status import InvoiceStatus
from core.models.line_item import LineItem, LineItemInput
from core.models.payment import Payment, PaymentCreate, PaymentMethod, PaymentResult
from core.models.invoice import (
    Invoice, InvoiceCreate, InvoiceUpdate, InvoiceDetail,
    InvoiceFilters, InvoicePage, InvoiceSummary, SendInvoiceRequest,
)
from core.models.settings import AccountSettings, AccountSettingsUpdate

__all__ = [
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceDetail", "InvoiceStatus",
    "InvoiceFilters", "InvoicePage", "InvoiceSummary", "SendInvoiceRequest",
    # LineItem
    "LineItem", "LineItemInput",
    # Payment
    "Payment", "PaymentCreate", "PaymentMethod", "PaymentResult",
    # Settings
    "AccountSettings", "AccountSettingsUpdate",
]
