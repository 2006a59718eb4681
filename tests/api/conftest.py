"""
API fixtures.

Routes run through the production middleware stack (request IDs, session
check, error envelopes) with every service replaced by a spec'd Mock, so
tests assert on the HTTP contract and on what reached the service layer.
"""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from auth.session import SessionManager
from auth.types import Session
from core.activity import ActivityLogger
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.settings_service import SettingsService
from main import build_app
from utils.timezone import now_utc


@pytest.fixture
def services():
    """Mocked service set keyed the way the routers look them up."""
    return {
        "invoice": Mock(spec=InvoiceService),
        "payment": Mock(spec=PaymentService),
        "settings": Mock(spec=SettingsService),
        "activity": Mock(spec=ActivityLogger),
    }


@pytest.fixture
def sessions(test_account_id):
    """Session store that accepts any token for the test account."""
    issued = now_utc()
    manager = Mock(spec=SessionManager)
    manager.validate_session.side_effect = lambda token: Session(
        token=token,
        account_id=test_account_id,
        created_at=issued,
        expires_at=issued + timedelta(days=1),
        last_activity_at=issued,
    )
    return manager


@pytest.fixture
def app(services, sessions):
    return build_app(services, sessions)


@pytest.fixture
def client(app):
    # 500 responses come back as envelopes instead of re-raised errors
    signed_in = TestClient(app, raise_server_exceptions=False)
    signed_in.cookies.set("session_token", "token-for-tests")
    return signed_in


@pytest.fixture
def unauthed_client(app):
    return TestClient(app, raise_server_exceptions=False)
