"""Tests for SettingsService and the invoice number counter."""

from decimal import Decimal

import pytest

from core.activity import ActivityAction
from core.config import BillingConfig
from core.models import AccountSettingsUpdate
from core.services.settings_service import SettingsService
from utils.timezone import now_utc


@pytest.fixture
def service(postgres, activity, config):
    return SettingsService(postgres, activity, config)


@pytest.fixture
def settings_row(test_account_id):
    now = now_utc()
    return {
        "account_id": test_account_id,
        "invoice_prefix": "INV",
        "invoice_next_number": 1,
        "default_payment_terms": 30,
        "default_tax_rate": Decimal("0"),
        "invoice_notes": None,
        "invoice_terms": None,
        "invoice_footer": None,
        "created_at": now,
        "updated_at": now,
    }


class TestGet:

    def test_returns_existing_row(self, service, postgres, settings_row, as_test_account):
        postgres.execute_single.return_value = settings_row

        settings = service.get()

        assert settings.invoice_prefix == "INV"
        postgres.execute.assert_not_called()

    def test_creates_defaults_on_first_access(self, service, postgres, settings_row, as_test_account):
        postgres.execute_single.side_effect = [None, settings_row]

        settings = service.get()

        assert settings.account_id == as_test_account
        insert_query, params = postgres.execute.call_args.args
        assert "ON CONFLICT (account_id) DO NOTHING" in insert_query
        assert params[1:5] == ("INV", 1, 30, Decimal("0"))

    def test_defaults_follow_config(self, postgres, activity, settings_row, as_test_account):
        service = SettingsService(
            postgres, activity, BillingConfig(default_invoice_prefix="PO", default_payment_terms=14)
        )
        postgres.execute_single.side_effect = [None, settings_row]

        service.get()

        params = postgres.execute.call_args.args[1]
        assert params[1] == "PO"
        assert params[3] == 14


class TestUpdate:

    def test_updates_fields_and_logs_changes(self, service, postgres, activity, settings_row, as_test_account):
        postgres.execute_single.return_value = settings_row
        postgres.execute_returning.return_value = [{**settings_row, "invoice_prefix": "PO"}]

        updated = service.update(AccountSettingsUpdate(invoice_prefix="PO"))

        assert updated.invoice_prefix == "PO"
        query = postgres.execute_returning.call_args.args[0]
        assert "invoice_prefix = %s" in query
        assert "invoice_next_number" not in query

        kwargs = activity.log.call_args.kwargs
        assert kwargs["entity_type"] == "settings"
        assert kwargs["action"] == ActivityAction.UPDATED
        assert kwargs["metadata"]["invoice_prefix"] == {"old": "INV", "new": "PO"}

    def test_empty_update_is_a_no_op(self, service, postgres, activity, settings_row, as_test_account):
        postgres.execute_single.return_value = settings_row

        settings = service.update(AccountSettingsUpdate())

        assert settings.invoice_prefix == "INV"
        postgres.execute_returning.assert_not_called()
        activity.log.assert_not_called()


class TestAllocateInvoiceNumber:

    def test_formats_allocated_value(self, service, postgres, as_test_account):
        postgres.execute_returning.return_value = [{"invoice_prefix": "INV", "allocated": 1}]

        assert service.allocate_invoice_number() == "INV-0001"

    def test_uses_single_atomic_increment(self, service, postgres, as_test_account):
        postgres.execute_returning.return_value = [{"invoice_prefix": "PO", "allocated": 123}]

        number = service.allocate_invoice_number()

        query, params = postgres.execute_returning.call_args.args
        assert "invoice_next_number = invoice_next_number + 1" in query
        assert "RETURNING" in query
        assert params[1] == as_test_account
        assert number == "PO-0123"

    def test_ensures_settings_row_first(self, service, postgres, as_test_account):
        postgres.execute_returning.return_value = [{"invoice_prefix": "INV", "allocated": 7}]

        service.allocate_invoice_number()

        assert "ON CONFLICT" in postgres.execute.call_args.args[0]

    def test_consecutive_calls_give_increasing_numbers(self, service, postgres, as_test_account):
        allocated = [1, 2, 3, 9999, 10000]
        postgres.execute_returning.side_effect = [
            [{"invoice_prefix": "INV", "allocated": value}] for value in allocated
        ]

        numbers = [service.allocate_invoice_number() for _ in allocated]

        assert numbers == ["INV-0001", "INV-0002", "INV-0003", "INV-9999", "INV-10000"]
        assert len(set(numbers)) == len(numbers)
        sequence = [int(number.split("-")[1]) for number in numbers]
        assert all(a < b for a, b in zip(sequence, sequence[1:]))
        assert postgres.execute_returning.call_count == len(allocated)

    def test_requires_account_context(self, service):
        with pytest.raises(RuntimeError):
            service.allocate_invoice_number()
