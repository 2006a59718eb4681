"""Session validation for the billing API."""

from auth.exceptions import (
    AuthError,
    SessionExpiredError,
    InvalidSessionError,
)
from auth.types import Session
from auth.config import AuthConfig
from auth.session import SessionManager
from auth.security_middleware import AuthMiddleware
