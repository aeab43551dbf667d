"""Domain errors raised by the billing services.

The HTTP layer maps each class to its status code and renders the standard
error envelope; services never build HTTP responses themselves.
"""

from typing import Optional


class BillingError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = 400
    code: str = "BILLING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(BillingError):
    """Unknown invoice, student, enrollment or course"""

    status_code = 404
    code = "RESOURCE_NOT_FOUND"


class ValidationError(BillingError):
    """Malformed period or monetary amount"""

    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(BillingError):
    """Request clashes with the current state of the invoice"""

    status_code = 409
    code = "CONFLICT"
