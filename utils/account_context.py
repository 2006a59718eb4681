"""Carry the acting account through the call stack using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import UUID

_current_account_id: ContextVar[UUID | None] = ContextVar("current_account_id", default=None)


def get_current_account_id() -> UUID:
    """
    Get the account the current request acts for.

    Raises RuntimeError if no account context is set. Account-scoped code
    running without one is a bug, not an empty result.
    """
    account_id = _current_account_id.get()
    if account_id is None:
        raise RuntimeError(
            "No account context set. Account-scoped code was called "
            "outside of an authenticated request."
        )
    return account_id


def set_current_account_id(account_id: UUID) -> None:
    """Set the acting account. Prefer account_context(), which restores the previous one."""
    _current_account_id.set(account_id)


def clear_current_account_id() -> None:
    """Clear the acting account. Must run in a finally block."""
    _current_account_id.set(None)


@contextmanager
def account_context(account_id: UUID):
    """
    Temporarily act as an account, restoring the previous one afterwards.

    Example:
        with account_context(account_id):
            invoices = invoice_service.list(InvoiceFilters())
    """
    previous = _current_account_id.get()
    set_current_account_id(account_id)
    try:
        yield
    finally:
        if previous is None:
            clear_current_account_id()
        else:
            set_current_account_id(previous)
