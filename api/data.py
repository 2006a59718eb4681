"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.exceptions import NotFoundError
from core.invoice_status import InvoiceStatus
from core.models import InvoiceFilters


VALID_TYPES = {"invoices", "payments", "settings", "activity"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    invoice_svc = services["invoice"]
    payment_svc = services["payment"]
    settings_svc = services["settings"]
    activity = services["activity"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/invoices/summary")
    async def invoices_summary(request: Request):
        summary = invoice_svc.summary()
        return success_response(
            summary.model_dump(mode="json"), getattr(request.state, "request_id", None)
        ).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: UUID | None = Query(None),
        status: InvoiceStatus | None = Query(None),
        client_id: UUID | None = Query(None),
        project_id: UUID | None = Query(None),
        overdue: bool = Query(False),
        include: str | None = Query(None),
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        includes = set(include.split(",")) if include else set()

        if type == "invoices":
            data = _handle_invoices(
                invoice_svc, id, status, client_id, project_id, overdue, includes, page, limit
            )
        elif type == "payments":
            data = _handle_payments(payment_svc, id)
        elif type == "settings":
            data = settings_svc.get().model_dump(mode="json")
        else:
            data = _handle_activity(activity, id, limit)

        return success_response(
            data, getattr(request.state, "request_id", None)
        ).model_dump(mode="json")

    return router


def _handle_invoices(invoice_svc, id, status, client_id, project_id, overdue, includes, page, limit):
    if id:
        if "payments" in includes:
            return invoice_svc.get_detail(id).model_dump(mode="json")

        invoice = invoice_svc.get_by_id(id)
        if invoice is None:
            raise NotFoundError("invoice", id)
        return invoice.model_dump(mode="json")

    result = invoice_svc.list(InvoiceFilters(
        status=status,
        client_id=client_id,
        project_id=project_id,
        overdue=overdue,
        page=page,
        limit=limit,
    ))
    return result.model_dump(mode="json")


def _handle_payments(payment_svc, id):
    if id is None:
        raise ValueError("'payments' type requires 'id' parameter (the invoice id)")

    payments = payment_svc.list_for_invoice(id)
    return [p.model_dump(mode="json") for p in payments]


def _handle_activity(activity, id, limit):
    if id:
        entries = activity.get_entity_history("invoice", id)
    else:
        entries = activity.get_recent(limit)
    return [a.model_dump(mode="json") for a in entries]
