"""
Invoice service: creation, draft edits, lifecycle transitions and queries.

Invoices are created in DRAFT with totals computed from their line items.
Only drafts can be edited. Payments are recorded by PaymentService; this
service never sets PARTIAL or PAID itself. OVERDUE is derived at read time
and never written.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction, to_decimal
from core.activity import ActivityAction, ActivityLogger, compute_changes
from core.config import BillingConfig
from core.event_bus import EventBus
from core.events import InvoiceCancelled, InvoiceCreated, InvoiceSent, InvoiceViewed
from core.exceptions import ForbiddenTransitionError, NotFoundError
from core.invoice_status import (
    InvoiceStatus,
    OUTSTANDING_STATUSES,
    OVERDUE_ELIGIBLE_STATUSES,
    ensure_deletable,
    ensure_editable,
    ensure_transition,
    overdue_cutoff,
)
from core.models import (
    Invoice,
    InvoiceCreate,
    InvoiceDetail,
    InvoiceFilters,
    InvoicePage,
    InvoiceSummary,
    InvoiceUpdate,
    LineItemInput,
    Payment,
    SendInvoiceRequest,
)
from core.money import compute_totals, line_amount
from core.services.settings_service import SettingsService
from utils.account_context import get_current_account_id
from utils.timezone import add_days, month_start, now_utc, year_start

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {
    "project_id", "due_date", "tax_rate", "discount", "currency",
    "notes", "terms", "footer",
}

_TOTALS_INPUTS = {"tax_rate", "discount", "currency"}

# NOT NULL columns; an explicit null on these is ignored rather than written
_REQUIRED_COLUMNS = {"due_date", "tax_rate", "discount", "currency"}


def _status_values(statuses: Iterable[InvoiceStatus]) -> List[str]:
    return sorted(s.value for s in statuses)


class InvoiceService:
    """Service for invoice operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        activity: ActivityLogger,
        event_bus: EventBus,
        settings: SettingsService,
        config: BillingConfig,
    ):
        self.postgres = postgres
        self.activity = activity
        self.event_bus = event_bus
        self.settings = settings
        self.config = config

    # -------------------------------------------------------------------------
    # Row helpers
    # -------------------------------------------------------------------------

    def _insert_line_items(
        self,
        tx: Transaction,
        invoice_id: UUID,
        items: List[LineItemInput],
        currency: str,
    ) -> List[Dict[str, Any]]:
        """Insert items in submitted order; sort_order is the list position."""
        now = now_utc()
        rows = []
        for index, item in enumerate(items):
            rows.append(tx.execute_single(
                """
                INSERT INTO invoice_line_items (
                    id, invoice_id, description, quantity, unit_price,
                    amount, sort_order, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    uuid4(), invoice_id, item.description, item.quantity, item.unit_price,
                    line_amount(item.quantity, item.unit_price, currency), index, now
                )
            ))
        return rows

    def _load_line_items(self, invoice_ids: List[UUID]) -> Dict[UUID, List[Dict[str, Any]]]:
        """Line item rows grouped by invoice, in sort order."""
        if not invoice_ids:
            return {}

        rows = self.postgres.execute(
            """
            SELECT * FROM invoice_line_items
            WHERE invoice_id = ANY(%s::uuid[])
            ORDER BY invoice_id, sort_order ASC
            """,
            (list(invoice_ids),)
        )

        grouped: Dict[UUID, List[Dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(UUID(str(row["invoice_id"])), []).append(row)
        return grouped

    def _to_invoice(self, row: Dict[str, Any], item_rows: List[Dict[str, Any]]) -> Invoice:
        return Invoice.model_validate({**row, "line_items": item_rows})

    def _require(self, invoice_id: UUID) -> Invoice:
        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("invoice", invoice_id)
        return invoice

    # -------------------------------------------------------------------------
    # Create / read
    # -------------------------------------------------------------------------

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Create a DRAFT invoice with computed totals.

        Missing tax rate, due date and text fields come from the account's
        settings. The invoice number is allocated before the insert and is
        not reused if the insert fails.

        Args:
            data: Invoice creation data (at least one line item)

        Returns:
            Created invoice in DRAFT status
        """
        account_id = get_current_account_id()
        settings = self.settings.get()

        tax_rate = data.tax_rate if data.tax_rate is not None else settings.default_tax_rate
        currency = data.currency or self.config.default_currency
        issue_date = now_utc()
        due_date = data.due_date or add_days(issue_date, settings.default_payment_terms)
        totals = compute_totals(data.items, tax_rate, data.discount, currency)

        invoice_number = self.settings.allocate_invoice_number()
        invoice_id = uuid4()

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                """
                INSERT INTO invoices (
                    id, account_id, client_id, project_id,
                    invoice_number, status, currency,
                    subtotal, tax_rate, tax_amount, discount, total, amount_paid,
                    issue_date, due_date,
                    notes, terms, footer,
                    created_at, updated_at
                ) VALUES (
                    %s, %s, %s, %s,
                    %s, %s, %s,
                    %s, %s, %s, %s, %s, %s,
                    %s, %s,
                    %s, %s, %s,
                    %s, %s
                )
                RETURNING *
                """,
                (
                    invoice_id, account_id, data.client_id, data.project_id,
                    invoice_number, InvoiceStatus.DRAFT.value, currency,
                    totals.subtotal, tax_rate, totals.tax_amount, data.discount, totals.total, Decimal("0"),
                    issue_date, due_date,
                    data.notes if data.notes is not None else settings.invoice_notes,
                    data.terms if data.terms is not None else settings.invoice_terms,
                    data.footer if data.footer is not None else settings.invoice_footer,
                    issue_date, issue_date
                )
            )
            item_rows = self._insert_line_items(tx, invoice_id, data.items, currency)

        invoice = self._to_invoice(row, item_rows)
        logger.info(f"Created invoice {invoice.invoice_number} ({invoice.id})")

        self.activity.log(
            entity_type="invoice",
            entity_id=invoice.id,
            action=ActivityAction.CREATED,
            entity_name=invoice.invoice_number,
            metadata={
                "client_id": str(invoice.client_id),
                "total": str(invoice.total),
                "currency": invoice.currency,
            }
        )

        self.event_bus.publish(InvoiceCreated.create(invoice=invoice))

        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID, with line items.

        Returns:
            Invoice if it exists in the current account, None otherwise.
        """
        row = self.postgres.execute_single(
            "SELECT * FROM invoices WHERE id = %s AND account_id = %s",
            (invoice_id, get_current_account_id())
        )

        if row is None:
            return None

        items = self._load_line_items([invoice_id]).get(invoice_id, [])
        return self._to_invoice(row, items)

    def get_detail(self, invoice_id: UUID) -> InvoiceDetail:
        """
        Invoice with line items and payments (newest first).

        Raises:
            NotFoundError: If the invoice is not in the current account
        """
        invoice = self._require(invoice_id)

        rows = self.postgres.execute(
            """
            SELECT * FROM payments
            WHERE invoice_id = %s
            ORDER BY paid_at DESC, created_at DESC
            """,
            (invoice_id,)
        )

        return InvoiceDetail.model_validate({
            **invoice.model_dump(exclude={"balance", "days_until_due", "is_overdue", "display_status"}),
            "payments": [Payment.model_validate(row) for row in rows],
        })

    def list(self, filters: InvoiceFilters) -> InvoicePage:
        """
        List invoices, newest first.

        filters.overdue restricts to sent/viewed invoices past the overdue
        cutoff and takes precedence over filters.status.
        """
        conditions = ["account_id = %s"]
        params: List[Any] = [get_current_account_id()]

        if filters.overdue:
            conditions.append("status = ANY(%s)")
            params.append(_status_values(OVERDUE_ELIGIBLE_STATUSES))
            conditions.append("due_date <= %s")
            params.append(overdue_cutoff())
        elif filters.status is not None:
            conditions.append("status = %s")
            params.append(filters.status.value)

        if filters.client_id is not None:
            conditions.append("client_id = %s")
            params.append(filters.client_id)

        if filters.project_id is not None:
            conditions.append("project_id = %s")
            params.append(filters.project_id)

        where = " AND ".join(conditions)

        total = self.postgres.execute_scalar(
            f"SELECT COUNT(*) FROM invoices WHERE {where}",
            tuple(params)
        ) or 0

        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params) + (filters.limit, (filters.page - 1) * filters.limit)
        )

        items_by_invoice = self._load_line_items([UUID(str(row["id"])) for row in rows])
        invoices = [
            self._to_invoice(row, items_by_invoice.get(UUID(str(row["id"])), []))
            for row in rows
        ]

        return InvoicePage(items=invoices, total=total, page=filters.page, limit=filters.limit)

    # -------------------------------------------------------------------------
    # Draft edits
    # -------------------------------------------------------------------------

    def update(self, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Edit a DRAFT invoice.

        Submitted items replace the existing ones wholesale. Totals are
        recomputed whenever items, tax rate, discount or currency change,
        and a currency change re-rounds the stored line amounts. Only
        fields present in the request are touched; an explicit null clears
        project, notes, terms or footer.

        Raises:
            NotFoundError: If invoice not in the current account
            ForbiddenTransitionError: If invoice is not a draft
        """
        account_id = get_current_account_id()

        updates = data.model_dump(exclude_unset=True, exclude={"items"})
        for field in updates:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning(f"Attempted to update unknown field '{field}' on invoice {invoice_id}")
        updates = {
            k: v for k, v in updates.items()
            if k in _UPDATABLE_COLUMNS and not (v is None and k in _REQUIRED_COLUMNS)
        }

        if not updates and data.items is None:
            return self._require(invoice_id)

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                "SELECT * FROM invoices WHERE id = %s AND account_id = %s FOR UPDATE",
                (invoice_id, account_id)
            )
            if row is None:
                raise NotFoundError("invoice", invoice_id)

            current = Invoice.model_validate(row)
            ensure_editable(current.status)

            currency = updates.get("currency", current.currency)

            items = data.items
            if items is None:
                item_rows = tx.execute(
                    "SELECT * FROM invoice_line_items WHERE invoice_id = %s ORDER BY sort_order ASC",
                    (invoice_id,)
                )
                stored_items = [
                    LineItemInput(
                        description=r["description"],
                        quantity=r["quantity"],
                        unit_price=r["unit_price"],
                    )
                    for r in item_rows
                ]
                # Stored line amounts are rounded to the old currency
                if currency != current.currency:
                    items = stored_items

            if items is not None:
                tx.execute("DELETE FROM invoice_line_items WHERE invoice_id = %s", (invoice_id,))
                item_rows = self._insert_line_items(tx, invoice_id, items, currency)

            if items is not None or _TOTALS_INPUTS & updates.keys():
                totals = compute_totals(
                    items if items is not None else stored_items,
                    updates.get("tax_rate", current.tax_rate),
                    updates.get("discount", current.discount),
                    currency,
                )
                updates.update(
                    subtotal=totals.subtotal,
                    tax_amount=totals.tax_amount,
                    total=totals.total,
                )

            set_parts = [f"{field} = %s" for field in updates]
            params = list(updates.values())
            set_parts.append("updated_at = %s")
            params.extend([now_utc(), invoice_id])

            updated_row = tx.execute_single(
                f"""
                UPDATE invoices
                SET {', '.join(set_parts)}
                WHERE id = %s
                RETURNING *
                """,
                tuple(params)
            )

        updated = self._to_invoice(updated_row, item_rows)

        changes = compute_changes(
            current.model_dump(mode="json", exclude={"line_items", "days_until_due", "is_overdue", "display_status"}),
            updated.model_dump(mode="json", exclude={"line_items", "days_until_due", "is_overdue", "display_status"}),
        )
        if data.items is not None:
            changes["line_items"] = {"old": None, "new": len(data.items)}
        if changes:
            self.activity.log(
                entity_type="invoice",
                entity_id=invoice_id,
                action=ActivityAction.UPDATED,
                entity_name=updated.invoice_number,
                metadata=changes
            )

        return updated

    def delete(self, invoice_id: UUID) -> None:
        """
        Hard-delete a DRAFT or CANCELLED invoice and its line items.

        Raises:
            NotFoundError: If invoice not in the current account
            ForbiddenTransitionError: If status forbids deletion or payments exist
        """
        current = self._require(invoice_id)
        ensure_deletable(current.status)

        if current.amount_paid > 0:
            raise ForbiddenTransitionError(
                f"Invoice {current.invoice_number} has recorded payments and cannot be deleted",
                current_status=current.status,
            )

        deleted = self.postgres.execute_returning(
            """
            DELETE FROM invoices
            WHERE id = %s AND account_id = %s AND status = ANY(%s)
              AND NOT EXISTS (SELECT 1 FROM payments WHERE payments.invoice_id = invoices.id)
            RETURNING id
            """,
            (invoice_id, current.account_id, [current.status.value])
        )
        if not deleted:
            raise ForbiddenTransitionError(
                f"Invoice {current.invoice_number} changed while being deleted",
                current_status=current.status,
            )

        logger.info(f"Deleted invoice {current.invoice_number} ({invoice_id})")

        self.activity.log(
            entity_type="invoice",
            entity_id=invoice_id,
            action=ActivityAction.DELETED,
            entity_name=current.invoice_number,
            metadata={"status": current.status.value}
        )

    # -------------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------------

    def _guarded_status_update(
        self,
        current: Invoice,
        target: InvoiceStatus,
        timestamp_column: str,
    ) -> Invoice:
        """
        Move current -> target only if nobody changed the status meanwhile.

        Raises:
            ForbiddenTransitionError: If the row's status moved under us
        """
        now = now_utc()
        row = self.postgres.execute_single(
            f"""
            UPDATE invoices
            SET status = %s, {timestamp_column} = %s, updated_at = %s
            WHERE id = %s AND account_id = %s AND status = %s
            RETURNING *
            """,
            (target.value, now, now, current.id, current.account_id, current.status.value)
        )
        if row is None:
            raise ForbiddenTransitionError(
                f"Invoice {current.invoice_number} changed status concurrently",
                current_status=current.status,
            )
        return self._to_invoice(row, [li.model_dump() for li in current.line_items])

    def send(self, invoice_id: UUID, request: SendInvoiceRequest) -> Invoice:
        """
        Send a DRAFT invoice.

        Only flips status and sent_at. Delivery is left to InvoiceSent
        subscribers and cannot fail the send.

        Raises:
            NotFoundError: If invoice not in the current account
            ForbiddenTransitionError: If invoice is not a draft
        """
        current = self._require(invoice_id)

        if current.status != InvoiceStatus.DRAFT:
            raise ForbiddenTransitionError(
                f"Only draft invoices can be sent; {current.invoice_number} is {current.status.value}",
                current_status=current.status,
            )

        updated = self._guarded_status_update(current, InvoiceStatus.SENT, "sent_at")
        logger.info(f"Sent invoice {updated.invoice_number} to {request.to}")

        self.activity.log(
            entity_type="invoice",
            entity_id=invoice_id,
            action=ActivityAction.SENT,
            entity_name=updated.invoice_number,
            metadata={"to": request.to}
        )

        self.event_bus.publish(InvoiceSent.create(invoice=updated, recipient=request))

        return updated

    def mark_viewed(self, invoice_id: UUID) -> Invoice:
        """
        Record that the recipient opened the invoice.

        Only the first view counts: it sets viewed_at and moves SENT to
        VIEWED. Other sent-or-later statuses keep their status. Later views
        return the invoice unchanged.

        Raises:
            NotFoundError: If invoice not in the current account
            ForbiddenTransitionError: If invoice is still a draft
        """
        current = self._require(invoice_id)

        if current.status == InvoiceStatus.DRAFT:
            raise ForbiddenTransitionError(
                f"Invoice {current.invoice_number} has not been sent yet",
                current_status=current.status,
            )

        if current.viewed_at is not None:
            return current

        target = InvoiceStatus.VIEWED if current.status == InvoiceStatus.SENT else current.status
        now = now_utc()
        row = self.postgres.execute_single(
            """
            UPDATE invoices
            SET status = %s, viewed_at = %s, updated_at = %s
            WHERE id = %s AND account_id = %s AND status = %s AND viewed_at IS NULL
            RETURNING *
            """,
            (target.value, now, now, invoice_id, current.account_id, current.status.value)
        )
        if row is None:
            # Another request recorded the first view or changed the status
            return self._require(invoice_id)

        updated = self._to_invoice(row, [li.model_dump() for li in current.line_items])

        self.activity.log(
            entity_type="invoice",
            entity_id=invoice_id,
            action=ActivityAction.VIEWED,
            entity_name=updated.invoice_number,
        )

        self.event_bus.publish(InvoiceViewed.create(invoice=updated))

        return updated

    def cancel(self, invoice_id: UUID) -> Invoice:
        """
        Cancel an invoice that has not been paid in full.

        Raises:
            NotFoundError: If invoice not in the current account
            ForbiddenTransitionError: If invoice is paid, refunded or already cancelled
        """
        current = self._require(invoice_id)
        ensure_transition(current.status, InvoiceStatus.CANCELLED)

        updated = self._guarded_status_update(current, InvoiceStatus.CANCELLED, "cancelled_at")
        logger.info(f"Cancelled invoice {updated.invoice_number}")

        self.activity.log(
            entity_type="invoice",
            entity_id=invoice_id,
            action=ActivityAction.CANCELLED,
            entity_name=updated.invoice_number,
            metadata={"previous_status": current.status.value}
        )

        self.event_bus.publish(InvoiceCancelled.create(invoice=updated))

        return updated

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def summary(self) -> InvoiceSummary:
        """Counts, outstanding balance and revenue for the current account."""
        now = now_utc()
        this_month = month_start(now)

        row = self.postgres.execute_single(
            """
            SELECT
                COUNT(*) FILTER (WHERE status = %(draft)s) AS draft_count,
                COUNT(*) FILTER (WHERE status = ANY(%(sent)s)) AS sent_count,
                COUNT(*) FILTER (
                    WHERE status = ANY(%(sent)s) AND due_date <= %(cutoff)s
                ) AS overdue_count,
                SUM(total - amount_paid) FILTER (
                    WHERE status = ANY(%(outstanding)s)
                ) AS total_outstanding,
                SUM(amount_paid) FILTER (
                    WHERE status = %(paid)s AND paid_at >= %(this_month)s
                ) AS revenue_this_month,
                SUM(amount_paid) FILTER (
                    WHERE status = %(paid)s AND paid_at >= %(last_month)s AND paid_at < %(this_month)s
                ) AS revenue_last_month,
                SUM(amount_paid) FILTER (
                    WHERE status = %(paid)s AND paid_at >= %(this_year)s
                ) AS revenue_this_year
            FROM invoices
            WHERE account_id = %(account_id)s
            """,
            {
                "account_id": get_current_account_id(),
                "draft": InvoiceStatus.DRAFT.value,
                "sent": _status_values(OVERDUE_ELIGIBLE_STATUSES),
                "outstanding": _status_values(OUTSTANDING_STATUSES),
                "paid": InvoiceStatus.PAID.value,
                "cutoff": overdue_cutoff(now),
                "this_month": this_month,
                "last_month": month_start(now, months_back=1),
                "this_year": year_start(now),
            }
        ) or {}

        this_month_revenue = to_decimal(row.get("revenue_this_month"))
        last_month_revenue = to_decimal(row.get("revenue_last_month"))

        return InvoiceSummary(
            draft_count=row.get("draft_count") or 0,
            sent_count=row.get("sent_count") or 0,
            overdue_count=row.get("overdue_count") or 0,
            total_outstanding=to_decimal(row.get("total_outstanding")),
            revenue_this_month=this_month_revenue,
            revenue_last_month=last_month_revenue,
            revenue_this_year=to_decimal(row.get("revenue_this_year")),
            growth_percent=growth_percent(this_month_revenue, last_month_revenue),
        )


def growth_percent(current: Decimal, previous: Decimal) -> Decimal:
    """
    Month-over-month change in percent, one decimal place.

    From nothing to something counts as 100%.
    """
    if previous > 0:
        change = (current - previous) / previous * 100
    elif current > 0:
        change = Decimal("100")
    else:
        change = Decimal("0")
    return change.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
