"""Response envelopes shared by every endpoint"""

from typing import Generic, TypeVar, Optional
from pydantic import BaseModel


T = TypeVar('T')


class SuccessResponse(BaseModel, Generic[T]):
    """
    Wraps a payload:

        {"success": true, "data": {...}, "message": "3 invoices generated"}
    """
    success: bool = True
    data: Optional[T] = None
    message: str = "Operation successful"


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """
    Rendered by the exception handlers in main.py:

        {"success": false, "error": {"code": "INVOICE_ALREADY_PAID", "message": "..."}}
    """
    success: bool = False
    error: ErrorDetail

    @classmethod
    def of(cls, code: str, message: str) -> "ErrorResponse":
        return cls(error=ErrorDetail(code=code, message=message))
