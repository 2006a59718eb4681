"""Service test fixtures: services wired to mocked database and collaborators."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from core.activity import ActivityLogger
from core.config import BillingConfig
from core.event_bus import EventBus
from core.models import AccountSettings
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.settings_service import SettingsService
from utils.timezone import now_utc

INVOICE_INSERT_COLUMNS = [
    "id", "account_id", "client_id", "project_id",
    "invoice_number", "status", "currency",
    "subtotal", "tax_rate", "tax_amount", "discount", "total", "amount_paid",
    "issue_date", "due_date",
    "notes", "terms", "footer",
    "created_at", "updated_at",
]

LINE_ITEM_INSERT_COLUMNS = [
    "id", "invoice_id", "description", "quantity", "unit_price",
    "amount", "sort_order", "created_at",
]

PAYMENT_INSERT_COLUMNS = [
    "id", "invoice_id", "amount", "currency", "method",
    "reference", "notes", "paid_at", "created_at",
]


def by_query(routes: dict):
    """
    Side effect that answers each statement by the first matching fragment.

    routes maps a SQL fragment to either a value or a callable taking the
    statement's params. Unmatched statements return None.
    """
    def respond(query, params=None):
        for fragment, answer in routes.items():
            if fragment in query:
                return answer(params) if callable(answer) else answer
        return None
    return respond


@pytest.fixture
def activity():
    return Mock(spec=ActivityLogger)


@pytest.fixture
def event_bus():
    return Mock(spec=EventBus)


@pytest.fixture
def config():
    return BillingConfig()


@pytest.fixture
def account_settings(test_account_id):
    now = now_utc()
    return AccountSettings(
        account_id=test_account_id,
        invoice_prefix="INV",
        invoice_next_number=2,
        default_payment_terms=30,
        default_tax_rate=Decimal("5"),
        invoice_notes="Thank you for your business",
        invoice_terms="Net 30",
        invoice_footer=None,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def settings_service(account_settings):
    service = Mock(spec=SettingsService)
    service.get.return_value = account_settings
    service.allocate_invoice_number.return_value = "INV-0001"
    return service


@pytest.fixture
def invoice_service(postgres, activity, event_bus, settings_service, config):
    return InvoiceService(postgres, activity, event_bus, settings_service, config)


@pytest.fixture
def payment_service(postgres, activity, event_bus):
    invoices = Mock(spec=InvoiceService)
    return PaymentService(postgres, activity, event_bus, invoices)


@pytest.fixture
def sql():
    """Statement routing helper and INSERT column orders for building fake rows."""
    return SimpleNamespace(
        by_query=by_query,
        invoice_columns=INVOICE_INSERT_COLUMNS,
        line_item_columns=LINE_ITEM_INSERT_COLUMNS,
        payment_columns=PAYMENT_INSERT_COLUMNS,
    )
