"""Typed exceptions for session failures."""


class AuthError(Exception):
    """Base class for authentication errors."""


class SessionExpiredError(AuthError):
    """Session is unknown or has expired; the caller must sign in again."""


class InvalidSessionError(AuthError):
    """Stored session data is unreadable or missing the account."""
