"""
Billing service entry point.

Run with:
    uvicorn main:create_app --factory

Secrets come from Vault (VAULT_ADDR, VAULT_ROLE_ID, VAULT_SECRET_ID);
non-secret knobs from BILLING_* / AUTH_* environment variables. A .env file
in the working directory is loaded first.
"""

import logging
import os

import psycopg2
import redis
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from api import (
    ErrorCodes,
    RequestIDMiddleware,
    create_actions_router,
    create_data_router,
    error_response,
    register_error_handlers,
    success_response,
)
from auth import AuthConfig, AuthMiddleware, SessionManager
from clients import PostgresClient, ValkeyClient, get_database_url, get_valkey_url
from core.activity import ActivityLogger
from core.config import BillingConfig
from core.event_bus import EventBus
from core.events import InvoiceSent
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService
from core.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def build_services(postgres: PostgresClient, config: BillingConfig, event_bus: EventBus) -> dict:
    """Wire services the routers expect, keyed by domain."""
    activity = ActivityLogger(postgres)
    settings = SettingsService(postgres, activity, config)
    invoices = InvoiceService(postgres, activity, event_bus, settings, config)
    payments = PaymentService(postgres, activity, event_bus, invoices)

    return {
        "activity": activity,
        "settings": settings,
        "invoice": invoices,
        "payment": payments,
    }


def build_app(services: dict, session_manager: SessionManager, cookie_name: str = "session_token") -> FastAPI:
    """Routers, middleware and error handlers around an already-built service set."""
    app = FastAPI(title="Billing", docs_url=None, redoc_url=None, openapi_url=None)
    # Last added runs first: request IDs exist before auth rejects anything
    app.add_middleware(AuthMiddleware, session_manager=session_manager, cookie_name=cookie_name)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")
    return app


def _log_pending_delivery(event: InvoiceSent) -> None:
    # Delivery lives in a separate notification worker
    logger.info(
        f"Invoice {event.invoice.invoice_number} queued for delivery to {event.recipient.to}"
    )


def create_app(
    postgres: PostgresClient | None = None,
    valkey: ValkeyClient | None = None,
    billing_config: BillingConfig | None = None,
    auth_config: AuthConfig | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Clients not passed in are created from Vault secrets.
    """
    load_dotenv()
    _configure_logging()

    billing_config = billing_config or BillingConfig.from_env()
    auth_config = auth_config or AuthConfig.from_env()
    postgres = postgres or PostgresClient(get_database_url())
    valkey = valkey or ValkeyClient(get_valkey_url())

    event_bus = EventBus()
    event_bus.subscribe("InvoiceSent", _log_pending_delivery)

    services = build_services(postgres, billing_config, event_bus)
    session_manager = SessionManager(valkey, auth_config)

    app = build_app(services, session_manager, auth_config.session_cookie_name)

    @app.get("/health")
    async def health(request: Request):
        request_id = getattr(request.state, "request_id", None)
        try:
            postgres.execute_scalar("SELECT 1")
            valkey.ping()
        except (psycopg2.Error, redis.RedisError) as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content=error_response(
                    ErrorCodes.SERVICE_UNAVAILABLE, "Dependency unavailable", request_id=request_id
                ).model_dump(mode="json"),
            )
        return success_response({"status": "ok"}, request_id).model_dump(mode="json")

    logger.info("Billing API ready")
    return app


def _configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

