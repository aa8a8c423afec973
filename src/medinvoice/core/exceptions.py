"""Exception hierarchy for MedInvoice."""

from typing import Any

from medinvoice.core.constants import ERROR_BAD_REQUEST


class MedInvoiceError(Exception):
    """Base class for all MedInvoice errors."""


class ConfigurationError(MedInvoiceError):
    """Invalid or unreadable configuration / reference data."""


class StorageError(MedInvoiceError):
    """Database operation failed."""


class InvoiceValidationError(MedInvoiceError):
    """Client submitted an invoice the server refuses to record."""

    def __init__(self, message: str, code: str = ERROR_BAD_REQUEST, errors: list[Any] | None = None):
        super().__init__(message)
        self.code = code
        self.errors = errors or []


class ResourceNotFoundError(MedInvoiceError):
    """Requested record does not exist."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"Could not find {resource} with identifier {identifier}")
        self.resource = resource
        self.identifier = identifier


class JournalBalanceError(MedInvoiceError):
    """Posting journal lines for a transaction do not balance."""
