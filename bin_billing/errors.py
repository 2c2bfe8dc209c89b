"""
Exception types raised by the billing engine.

None of these are retried inside the engine. A failed operation leaves the
stored invoice exactly as it was before the call.
"""
from __future__ import annotations
from typing import Iterable


class BillingError(Exception):
    """Base class for all billing engine errors."""
    pass


class ValidationError(BillingError):
    """Raised when required input is missing or malformed on creation."""

    def __init__(self, fields: Iterable[str], message: str | None = None):
        self.fields = list(fields)
        if message is None:
            message = f"Invalid or missing fields: {', '.join(self.fields)}"
        super().__init__(message)


class MissingRequiredField(ValidationError):
    """Raised when a mandatory manual document number is blank."""

    def __init__(self, field_name: str):
        super().__init__([field_name], f"{field_name} is required in manual mode")


class InvalidAmount(BillingError):
    """Raised for non-positive amounts or amounts above the open balance."""
    pass


class DuplicateDocumentNumber(BillingError):
    """Raised when a manual document number was already issued."""

    def __init__(self, doc_type: str, number: str):
        self.doc_type = doc_type
        self.number = number
        super().__init__(f"{doc_type} number already issued: {number}")


class ConfigurationError(BillingError):
    """Reference data is missing. Not a user error."""
    pass


class UnknownCurrency(ConfigurationError):
    """Raised when a currency code is absent from the rate table."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unknown currency: {code}")


class UnknownRegion(ConfigurationError):
    """Raised when a tax region is absent from the tax table."""

    def __init__(self, region: str):
        self.region = region
        super().__init__(f"Unknown tax region: {region}")


class InvalidState(BillingError):
    """Raised when an operation is not allowed in the invoice's current status."""
    pass


class InvoiceNotFound(BillingError):
    """Raised when an invoice id is not in the repository."""

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class InvariantViolation(BillingError):
    """Raised when a computed invoice state breaks a balance invariant."""
    pass
