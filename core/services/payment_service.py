"""
Payment ledger service.

Payments are append-only. Recording one locks the invoice row, validates the
amount against the remaining balance, inserts the payment and updates the
invoice's amount_paid, status and paid_at, all in one transaction. Two
concurrent payments on the same invoice are serialized by the row lock, so
together they can never exceed the total.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.activity import ActivityAction, ActivityLogger
from core.event_bus import EventBus
from core.events import InvoicePaid, PaymentRecorded
from core.exceptions import NotFoundError
from core.ledger import apply_payment
from core.models import Invoice, Payment, PaymentCreate, PaymentResult
from core.services.invoice_service import InvoiceService
from utils.account_context import get_current_account_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for recording and listing payments."""

    def __init__(
        self,
        postgres: PostgresClient,
        activity: ActivityLogger,
        event_bus: EventBus,
        invoices: InvoiceService,
    ):
        self.postgres = postgres
        self.activity = activity
        self.event_bus = event_bus
        self.invoices = invoices

    def record_payment(self, invoice_id: UUID, data: PaymentCreate) -> PaymentResult:
        """
        Record a payment against an invoice.

        Args:
            invoice_id: Invoice being paid
            data: Amount, method and optional reference/paid_at/notes

        Returns:
            The new payment and the invoice after it was applied

        Raises:
            NotFoundError: If invoice not in the current account
            InvalidStateError: If invoice is draft, cancelled or refunded
            ValidationError: If amount is not positive or exceeds the balance
        """
        account_id = get_current_account_id()
        now = now_utc()

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                "SELECT * FROM invoices WHERE id = %s AND account_id = %s FOR UPDATE",
                (invoice_id, account_id)
            )
            if row is None:
                raise NotFoundError("invoice", invoice_id)

            current = Invoice.model_validate(row)
            applied = apply_payment(current, data.amount, now)

            payment_row = tx.execute_single(
                """
                INSERT INTO payments (
                    id, invoice_id, amount, currency, method,
                    reference, notes, paid_at, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    uuid4(), invoice_id, data.amount, current.currency, data.method.value,
                    data.reference, data.notes, data.paid_at or now, now
                )
            )

            invoice_row = tx.execute_single(
                """
                UPDATE invoices
                SET amount_paid = %s, status = %s, paid_at = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (applied.amount_paid, applied.status.value, applied.paid_at, now, invoice_id)
            )

            item_rows = tx.execute(
                "SELECT * FROM invoice_line_items WHERE invoice_id = %s ORDER BY sort_order ASC",
                (invoice_id,)
            )

        payment = Payment.model_validate(payment_row)
        invoice = Invoice.model_validate({**invoice_row, "line_items": item_rows})

        logger.info(
            f"Recorded payment {payment.amount} {payment.currency} on invoice "
            f"{invoice.invoice_number}, status {current.status.value} -> {invoice.status.value}"
        )

        self.activity.log(
            entity_type="invoice",
            entity_id=invoice_id,
            action=ActivityAction.PAID,
            entity_name=invoice.invoice_number,
            metadata={
                "payment_id": str(payment.id),
                "amount": str(payment.amount),
                "method": payment.method.value,
                "status": invoice.status.value,
            }
        )

        self.event_bus.publish(PaymentRecorded.create(invoice=invoice, payment=payment))
        if applied.is_paid_in_full:
            self.event_bus.publish(InvoicePaid.create(invoice=invoice))

        return PaymentResult(payment=payment, invoice=invoice)

    def list_for_invoice(self, invoice_id: UUID) -> list[Payment]:
        """
        Payments on an invoice, newest first.

        Raises:
            NotFoundError: If invoice not in the current account
        """
        return self.invoices.get_detail(invoice_id).payments
