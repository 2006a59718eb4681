"""Tests for the application factory wired to mocked clients."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import Mock

import psycopg2
import pytest
import redis
from starlette.testclient import TestClient

from auth.config import AuthConfig
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from core.config import BillingConfig
from core.services.invoice_service import InvoiceService
from core.events import InvoiceSent
from core.models import SendInvoiceRequest
from main import _log_pending_delivery, build_services, create_app
from utils.timezone import now_utc


@pytest.fixture
def postgres():
    return Mock(spec=PostgresClient)


@pytest.fixture
def valkey(test_account_id):
    mock = Mock(spec=ValkeyClient)
    now = now_utc()
    mock.get_json.return_value = {
        "account_id": str(test_account_id),
        "created_at": now.isoformat(),
        "expires_at": (now + timedelta(days=30)).isoformat(),
        "last_activity_at": now.isoformat(),
    }
    return mock


@pytest.fixture
def client(postgres, valkey):
    app = create_app(
        postgres=postgres,
        valkey=valkey,
        billing_config=BillingConfig(),
        auth_config=AuthConfig(),
    )
    return TestClient(app, raise_server_exceptions=False)


class TestBuildServices:

    def test_wires_every_domain(self, postgres):
        services = build_services(postgres, BillingConfig(), Mock())

        assert set(services) == {"activity", "settings", "invoice", "payment"}
        assert isinstance(services["invoice"], InvoiceService)
        assert services["payment"].invoices is services["invoice"]
        assert services["invoice"].settings is services["settings"]


class TestHealth:

    def test_ok(self, client, postgres, valkey):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "ok"}
        postgres.execute_scalar.assert_called_once_with("SELECT 1")
        valkey.ping.assert_called_once()

    def test_valkey_down(self, client, valkey):
        valkey.ping.side_effect = redis.ConnectionError("refused")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    def test_postgres_down(self, client, postgres):
        postgres.execute_scalar.side_effect = psycopg2.OperationalError("no route")

        assert client.get("/health").status_code == 503


class TestWiring:

    def test_requires_session(self, client):
        assert client.get("/api/data", params={"type": "settings"}).status_code == 401

    @pytest.mark.parametrize("path", ["/docs", "/redoc", "/openapi.json"])
    def test_docs_not_served(self, client, path):
        assert client.get(path).status_code == 401

        client.cookies.set("session_token", "abc")
        assert client.get(path).status_code == 404

    def test_session_reaches_services(self, client, postgres, test_account_id):
        now = now_utc()
        postgres.execute_single.return_value = {
            "account_id": test_account_id,
            "invoice_prefix": "INV",
            "invoice_next_number": 12,
            "default_payment_terms": 30,
            "default_tax_rate": Decimal("5"),
            "invoice_notes": None,
            "invoice_terms": None,
            "invoice_footer": None,
            "created_at": now,
            "updated_at": now,
        }
        client.cookies.set("session_token", "abc")

        response = client.get("/api/data", params={"type": "settings"})

        assert response.status_code == 200
        assert response.json()["data"]["invoice_next_number"] == 12
        query, params = postgres.execute_single.call_args.args
        assert "account_settings" in query
        assert params == (test_account_id,)


class TestDeliveryLog:

    def test_logs_recipient(self, caplog, rows):
        event = InvoiceSent.create(rows["model"](status="sent"), SendInvoiceRequest(to="client@example.com"))

        with caplog.at_level("INFO", logger="main"):
            _log_pending_delivery(event)

        assert "INV-0001" in caplog.text
        assert "client@example.com" in caplog.text
