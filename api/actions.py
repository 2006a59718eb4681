"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import (
    AccountSettingsUpdate,
    InvoiceCreate,
    InvoiceUpdate,
    PaymentCreate,
    SendInvoiceRequest,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "invoice": InvoiceHandler(services["invoice"], services["payment"]),
        "settings": SettingsHandler(services["settings"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        return success_response(
            result, getattr(request.state, "request_id", None)
        ).model_dump(mode="json")

    return router


def _require_id(data: dict, key: str = "id") -> UUID:
    value = data.pop(key, None)
    if value is None:
        raise ValueError(f"'{key}' is required")
    return UUID(str(value))


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class InvoiceHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete", "send", "view", "cancel", "record_payment"}

    def __init__(self, service, payments):
        self.service = service
        self.payments = payments

    def _handle_create(self, data: dict):
        invoice = self.service.create(InvoiceCreate(**data))
        return invoice.model_dump(mode="json")

    def _handle_update(self, data: dict):
        invoice_id = _require_id(data)
        invoice = self.service.update(invoice_id, InvoiceUpdate(**data))
        return invoice.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        self.service.delete(_require_id(data))
        return {"deleted": True}

    def _handle_send(self, data: dict):
        invoice_id = _require_id(data)
        invoice = self.service.send(invoice_id, SendInvoiceRequest(**data))
        return invoice.model_dump(mode="json")

    def _handle_view(self, data: dict):
        invoice = self.service.mark_viewed(_require_id(data))
        return invoice.model_dump(mode="json")

    def _handle_cancel(self, data: dict):
        invoice = self.service.cancel(_require_id(data))
        return invoice.model_dump(mode="json")

    def _handle_record_payment(self, data: dict):
        invoice_id = _require_id(data)
        result = self.payments.record_payment(invoice_id, PaymentCreate(**data))
        return result.model_dump(mode="json")


class SettingsHandler:
    ALLOWED_ACTIONS = {"update"}

    def __init__(self, service):
        self.service = service

    def _handle_update(self, data: dict):
        settings = self.service.update(AccountSettingsUpdate(**data))
        return settings.model_dump(mode="json")
