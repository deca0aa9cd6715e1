"""Custom exception types for domain and API layers."""


class AppError(Exception):
    """Base app exception."""


class ValidationError(AppError):
    """Validation failure for user input or imported data."""


class NotFoundError(AppError):
    """Requested record does not exist."""


class IntegrationError(AppError):
    """External integration call failure."""


class PaymentError(IntegrationError):
    """Stripe payment or webhook failure."""


class CSVImportError(AppError):
    """A CSV file could not be read or imported."""
