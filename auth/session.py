"""Session token validation.

Sessions live in Valkey under session:{token} with a TTL matching their
expiry. Tokens are cryptographically random (secrets.token_urlsafe). The
login flow that issues them is outside this service; create_session exists
for that flow and for tests.
"""

import logging
import secrets
from datetime import timedelta
from uuid import UUID

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.types import Session
from auth.exceptions import InvalidSessionError, SessionExpiredError
from utils.timezone import now_utc, parse_iso

logger = logging.getLogger(__name__)


class SessionManager:
    """Session token lifecycle management.

    Supports sliding expiry: a session used within the extension threshold
    of its expiry is pushed out by a full lifetime.
    """

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    def _store(self, session: Session) -> None:
        self._valkey.set_json(
            self._key(session.token),
            session.to_record(),
            expire_seconds=self._config.session_expiry_hours * 3600,
        )

    def create_session(self, account_id: UUID) -> Session:
        """Create and store a new session for an account."""
        now = now_utc()
        session = Session(
            token=secrets.token_urlsafe(32),
            account_id=account_id,
            created_at=now,
            expires_at=now + timedelta(hours=self._config.session_expiry_hours),
            last_activity_at=now,
        )
        self._store(session)
        return session

    def validate_session(self, token: str) -> Session:
        """Validate session token and return session.

        Raises:
            SessionExpiredError: Token unknown or past its expiry
            InvalidSessionError: Stored record is malformed
        """
        try:
            data = self._valkey.get_json(self._key(token))
        except ValueError as e:
            logger.warning(f"Discarding unreadable session record: {e}")
            self._valkey.delete(self._key(token))
            raise InvalidSessionError("Session record is unreadable") from e

        if data is None:
            raise SessionExpiredError("Session not found or expired")

        try:
            session = Session(
                token=token,
                account_id=UUID(data["account_id"]),
                created_at=parse_iso(data["created_at"]),
                expires_at=parse_iso(data["expires_at"]),
                last_activity_at=parse_iso(data["last_activity_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed session record: {e}")
            self._valkey.delete(self._key(token))
            raise InvalidSessionError("Session record is malformed") from e

        now = now_utc()

        # Valkey TTL normally evicts first
        if now > session.expires_at:
            self._valkey.delete(self._key(token))
            raise SessionExpiredError("Session expired")

        if self._should_extend(session):
            session = self._extend_session(session)

        return session

    def _should_extend(self, session: Session) -> bool:
        if not self._config.session_extend_on_activity:
            return False
        remaining = session.expires_at - now_utc()
        return remaining < timedelta(hours=self._config.session_extend_threshold_hours)

    def _extend_session(self, session: Session) -> Session:
        """Push expiry out by a full lifetime and record the activity."""
        now = now_utc()
        updated = session.model_copy(update={
            "expires_at": now + timedelta(hours=self._config.session_expiry_hours),
            "last_activity_at": now,
        })
        self._store(updated)
        return updated

    def revoke_session(self, token: str) -> None:
        """Revoke session. Safe to call with nonexistent token."""
        self._valkey.delete(self._key(token))
