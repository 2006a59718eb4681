"""Session validation configuration."""

import os

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Session settings.

    Sessions are issued elsewhere; this service only validates and extends
    them. Durations are in hours.
    """

    session_expiry_hours: int = Field(
        default=2160,  # 90 days
        description="Session lifetime in hours",
        ge=1,
        le=2160,
    )
    session_extend_on_activity: bool = Field(
        default=True,
        description="Whether to extend session expiry on activity",
    )
    session_extend_threshold_hours: int = Field(
        default=24,
        description="Extend session if less than this many hours remaining",
        ge=1,
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie carrying the session token",
        min_length=1,
    )

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """Defaults overridden by AUTH_* environment variables when set."""
        overrides = {
            "session_expiry_hours": os.getenv("AUTH_SESSION_EXPIRY_HOURS"),
            "session_extend_on_activity": os.getenv("AUTH_SESSION_EXTEND_ON_ACTIVITY"),
            "session_extend_threshold_hours": os.getenv("AUTH_SESSION_EXTEND_THRESHOLD_HOURS"),
            "session_cookie_name": os.getenv("AUTH_SESSION_COOKIE_NAME"),
        }
        return cls(**{k: v for k, v in overrides.items() if v is not None})
