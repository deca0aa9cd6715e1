"""Shared API auth dependencies and error translation."""
from fastapi import HTTPException, status

from laundrylocator.core.exceptions import (
    AppError,
    CSVImportError,
    IntegrationError,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from laundrylocator.core.security import get_current_user, get_optional_user, require_admin

__all__ = ["get_current_user", "get_optional_user", "require_admin", "http_error"]

_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (CSVImportError, status.HTTP_400_BAD_REQUEST),
    (PaymentError, status.HTTP_402_PAYMENT_REQUIRED),
    (IntegrationError, status.HTTP_502_BAD_GATEWAY),
)


def http_error(exc: AppError) -> HTTPException:
    """Map a domain exception onto the HTTPException a route should raise."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
