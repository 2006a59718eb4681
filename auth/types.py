"""Pydantic models for the session domain."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class Session(BaseModel):
    """An active session for a freelancer account."""

    token: str = Field(..., description="Session token (opaque string)")
    account_id: UUID
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime

    def to_record(self) -> dict:
        """JSON form stored in Valkey (token is the key, not part of the value)."""
        return {
            "account_id": str(self.account_id),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "last_activity_at": self.last_activity_at.isoformat(),
        }
