"""
Per-account invoicing settings and the invoice number counter.

The counter is only ever touched through allocate_invoice_number(), a single
UPDATE ... RETURNING statement, so concurrent invoice creation for one
account never reads the same value twice.
"""

import logging
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.activity import ActivityAction, ActivityLogger, compute_changes
from core.config import BillingConfig
from core.models import AccountSettings, AccountSettingsUpdate
from core.numbering import format_invoice_number
from utils.account_context import get_current_account_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {
    "invoice_prefix", "default_payment_terms", "default_tax_rate",
    "invoice_notes", "invoice_terms", "invoice_footer",
}


class SettingsService:
    """Service for account settings."""

    def __init__(self, postgres: PostgresClient, activity: ActivityLogger, config: BillingConfig):
        self.postgres = postgres
        self.activity = activity
        self.config = config

    def _ensure_row(self, account_id: UUID) -> None:
        """Insert default settings for the account if none exist yet."""
        now = now_utc()
        self.postgres.execute(
            """
            INSERT INTO account_settings (
                account_id, invoice_prefix, invoice_next_number,
                default_payment_terms, default_tax_rate,
                created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (account_id) DO NOTHING
            """,
            (
                account_id, self.config.default_invoice_prefix, 1,
                self.config.default_payment_terms, self.config.default_tax_rate,
                now, now
            )
        )

    def get(self) -> AccountSettings:
        """
        Current account's settings, created with defaults on first access.

        Returns:
            AccountSettings for the account in context
        """
        account_id = get_current_account_id()

        row = self.postgres.execute_single(
            "SELECT * FROM account_settings WHERE account_id = %s",
            (account_id,)
        )
        if row is None:
            self._ensure_row(account_id)
            row = self.postgres.execute_single(
                "SELECT * FROM account_settings WHERE account_id = %s",
                (account_id,)
            )
            logger.info(f"Created default settings for account {account_id}")

        return AccountSettings.model_validate(row)

    def update(self, data: AccountSettingsUpdate) -> AccountSettings:
        """
        Update editable settings.

        Args:
            data: Fields to change (None = leave as is)

        Returns:
            Updated settings
        """
        current = self.get()

        updates = {
            k: v for k, v in data.model_dump(exclude_none=True).items()
            if k in _UPDATABLE_COLUMNS
        }
        if not updates:
            return current

        set_parts = [f"{field} = %s" for field in updates]
        params = list(updates.values())
        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.append(current.account_id)

        row = self.postgres.execute_returning(
            f"""
            UPDATE account_settings
            SET {', '.join(set_parts)}
            WHERE account_id = %s
            RETURNING *
            """,
            tuple(params)
        )[0]

        updated = AccountSettings.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.activity.log(
                entity_type="settings",
                entity_id=updated.account_id,
                action=ActivityAction.UPDATED,
                metadata=changes
            )

        return updated

    def allocate_invoice_number(self) -> str:
        """
        Reserve the next invoice number for the current account.

        The increment commits on its own. If the invoice insert that follows
        fails, the number is skipped rather than handed out again.

        Returns:
            Formatted number, e.g. "INV-0042"
        """
        account_id = get_current_account_id()
        self._ensure_row(account_id)

        row = self.postgres.execute_returning(
            """
            UPDATE account_settings
            SET invoice_next_number = invoice_next_number + 1, updated_at = %s
            WHERE account_id = %s
            RETURNING invoice_prefix, invoice_next_number - 1 AS allocated
            """,
            (now_utc(), account_id)
        )[0]

        return format_invoice_number(row["invoice_prefix"], row["allocated"])
