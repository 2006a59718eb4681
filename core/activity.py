"""
Account activity log.

One entry per invoice creation, edit, deletion, status change and payment,
plus settings changes. The log is:
- Append-only (entries are never modified or deleted)
- Account-attributed (who the change was made for)
- Named (carries the invoice number so entries survive hard deletes)

Entries are written after the primary write has committed.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json
from pydantic import BaseModel

from clients.postgres_client import PostgresClient
from utils.account_context import get_current_account_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class ActivityAction(str, Enum):
    """What happened to the entity."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SENT = "sent"
    VIEWED = "viewed"
    PAID = "paid"
    CANCELLED = "cancelled"


class Activity(BaseModel):
    """Activity log entry as stored."""

    id: UUID
    account_id: UUID
    entity_type: str
    entity_id: UUID
    entity_name: str | None
    action: ActivityAction
    metadata: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level differences between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        {field: {"old": old_val, "new": new_val}} for changed fields.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in set(old) | set(new):
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class ActivityLogger:
    """
    Writes and reads the activity log.

    Pass metadata through model_dump(mode="json") or plain JSON types so
    Decimals, UUIDs and datetimes serialize.

    Usage:
        activity = ActivityLogger(postgres)

        activity.log(
            entity_type="invoice",
            entity_id=invoice.id,
            action=ActivityAction.PAID,
            entity_name=invoice.invoice_number,
            metadata={"amount": "30000", "method": "cash"},
        )

        history = activity.get_entity_history("invoice", invoice.id)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log(
        self,
        entity_type: str,
        entity_id: UUID,
        action: ActivityAction,
        entity_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        account_id: UUID | None = None
    ) -> None:
        """
        Append an activity entry.

        Args:
            entity_type: "invoice" or "settings"
            entity_id: ID of the entity
            action: What happened
            entity_name: Human-facing name (invoice number)
            metadata: Optional JSON-compatible details
            account_id: Acting account (defaults to current context)
        """
        if account_id is None:
            account_id = get_current_account_id()

        self.postgres.execute(
            """
            INSERT INTO activities (
                id, account_id, entity_type, entity_id, entity_name,
                action, metadata, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                account_id,
                entity_type,
                entity_id,
                entity_name,
                action.value,
                Json(metadata) if metadata is not None else None,
                now_utc()
            )
        )
        logger.debug(f"Activity {action.value} on {entity_type} {entity_id}")

    def get_entity_history(self, entity_type: str, entity_id: UUID) -> list[Activity]:
        """All entries for one entity, newest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM activities
            WHERE entity_type = %s AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id)
        )
        return [Activity.model_validate(row) for row in rows]

    def get_recent(self, limit: int = 50) -> list[Activity]:
        """Most recent entries for the current account, newest first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM activities
            WHERE account_id = %s
            ORDER BY created_at DESC
            LIMIT %s
            """,
            (get_current_account_id(), limit)
        )
        return [Activity.model_validate(row) for row in rows]
