"""Shared test fixtures for the billing test suite."""

from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, Mock
from uuid import UUID, uuid4

import pytest
from dotenv import load_dotenv

# Load .env before anything reads Vault settings
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

from clients.postgres_client import PostgresClient, Transaction
from clients.vault_client import reset_vault_cache
from core.invoice_status import InvoiceStatus
from core.models import Invoice
from utils.account_context import account_context, clear_current_account_id
from utils.timezone import add_days, now_utc

reset_vault_cache()


# =============================================================================
# TEST ACCOUNT CONSTANTS
# =============================================================================

# Primary test account - use for single-account tests
TEST_ACCOUNT_ID = UUID("00000000-0000-0000-0000-000000000001")

# Secondary test account - use for isolation tests
TEST_ACCOUNT_B_ID = UUID("00000000-0000-0000-0000-000000000002")


# =============================================================================
# ACCOUNT CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_account_context():
    """Ensure clean account context before and after each test."""
    clear_current_account_id()
    yield
    clear_current_account_id()


@pytest.fixture
def test_account_id() -> UUID:
    return TEST_ACCOUNT_ID


@pytest.fixture
def test_account_b_id() -> UUID:
    return TEST_ACCOUNT_B_ID


@pytest.fixture
def as_test_account(test_account_id):
    """Run the test as the primary test account."""
    with account_context(test_account_id):
        yield test_account_id


@pytest.fixture
def as_test_account_b(test_account_b_id):
    """Run the test as the secondary test account."""
    with account_context(test_account_b_id):
        yield test_account_b_id


# =============================================================================
# MOCK DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def tx():
    """Transaction double; set execute/execute_single side effects per test."""
    return Mock(spec=Transaction)


@pytest.fixture
def postgres(tx):
    """
    PostgresClient double whose transaction() yields the tx fixture.

    Commit/rollback is not simulated: a raise inside the with-block simply
    propagates, as it does with the real client.
    """
    client = Mock(spec=PostgresClient)
    ctx = MagicMock()
    ctx.__enter__.return_value = tx
    ctx.__exit__.return_value = False
    client.transaction.return_value = ctx
    return client


# =============================================================================
# ROW BUILDERS
# =============================================================================


def invoice_row(**overrides) -> dict:
    """A stored invoice row as RealDictCursor would return it."""
    now = now_utc()
    row = {
        "id": uuid4(),
        "account_id": TEST_ACCOUNT_ID,
        "client_id": uuid4(),
        "project_id": None,
        "invoice_number": "INV-0001",
        "status": InvoiceStatus.DRAFT.value,
        "currency": "TWD",
        "subtotal": Decimal("50000"),
        "tax_rate": Decimal("5"),
        "tax_amount": Decimal("2500"),
        "discount": Decimal("0"),
        "total": Decimal("52500"),
        "amount_paid": Decimal("0"),
        "issue_date": now,
        "due_date": add_days(now, 30),
        "sent_at": None,
        "viewed_at": None,
        "paid_at": None,
        "cancelled_at": None,
        "notes": None,
        "terms": None,
        "footer": None,
        "created_at": now,
        "updated_at": now,
    }
    row.update(overrides)
    return row


def line_item_row(invoice_id, **overrides) -> dict:
    row = {
        "id": uuid4(),
        "invoice_id": invoice_id,
        "description": "Design",
        "quantity": Decimal("1"),
        "unit_price": Decimal("50000"),
        "amount": Decimal("50000"),
        "sort_order": 0,
        "created_at": now_utc(),
    }
    row.update(overrides)
    return row


def make_invoice(**overrides) -> Invoice:
    """An Invoice model built from invoice_row()."""
    return Invoice.model_validate(invoice_row(**overrides))


@pytest.fixture
def rows():
    """Row and model builders for invoice test data."""
    return {"invoice": invoice_row, "line_item": line_item_row, "model": make_invoice}
