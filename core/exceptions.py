"""Typed exceptions for billing operations.

Services raise these; api/errors.py turns each one into an error envelope.
"""

from typing import Any


class BillingError(Exception):
    """Base class for invoice, payment and settings errors."""


class ValidationError(BillingError):
    """
    Input is malformed or violates a business rule.

    details lists every violated field as {"field": ..., "message": ...}.
    """

    def __init__(self, message: str, details: list[dict[str, Any]] | None = None):
        self.details = details or []
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details=[{"field": field, "message": message}])


class NotFoundError(BillingError):
    """
    Entity missing or owned by another account.

    The two cases are deliberately indistinguishable to the caller.
    """

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} {entity_id} not found")


class ForbiddenTransitionError(BillingError):
    """Operation is not legal for the invoice's current status."""

    def __init__(self, message: str, current_status: Any = None):
        self.current_status = current_status
        super().__init__(message)


class InvalidStateError(BillingError):
    """Payment attempted against an invoice that cannot accept payments."""

    def __init__(self, message: str, current_status: Any = None):
        self.current_status = current_status
        super().__init__(message)
