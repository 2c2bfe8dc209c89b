"""
Billing and invoice lifecycle engine for waste-bin rental and collection.

Key Features:
- Invoice, delivery-order, DO-book and bin-serial numbering (auto or manual)
- Tax by region and multi-currency conversion against a base currency
- Payments, credit notes and debit notes with balance invariants enforced
- Draft / sent / paid / overdue / cancelled state machine
- Payment reminder scheduling handed off to an external notifier

Usage:
    from bin_billing import InvoiceEngine, ServiceOrder, InMemoryOrderSource

    orders = InMemoryOrderSource([ServiceOrder(order_id="DO-2026-0001", ...)])
    engine = InvoiceEngine(orders=orders)
    invoice = engine.create_invoice(order_ids=["DO-2026-0001"])
"""

__version__ = "1.0.0"

from .config import BillingConfig
from .currency import CurrencyConverter
from .engine import InvoiceEngine, check_invariants
from .errors import (
    BillingError,
    ConfigurationError,
    DuplicateDocumentNumber,
    InvalidAmount,
    InvalidState,
    InvoiceNotFound,
    MissingRequiredField,
    UnknownCurrency,
    UnknownRegion,
    ValidationError,
)
from .models import (
    CustomerType,
    Invoice,
    InvoiceStatus,
    ManualInvoiceInput,
    NumberingMode,
    PaymentMethod,
    ServiceOrder,
)
from .notifier import LoggingNotifier, OutboxNotifier
from .numbering import DocumentNumberGenerator
from .orders import InMemoryOrderSource
from .reminders import ReminderScheduler
from .tax import TaxCalculator

__all__ = [
    "BillingConfig",
    "CurrencyConverter",
    "InvoiceEngine",
    "check_invariants",
    "BillingError",
    "ConfigurationError",
    "DuplicateDocumentNumber",
    "InvalidAmount",
    "InvalidState",
    "InvoiceNotFound",
    "MissingRequiredField",
    "UnknownCurrency",
    "UnknownRegion",
    "ValidationError",
    "CustomerType",
    "Invoice",
    "InvoiceStatus",
    "ManualInvoiceInput",
    "NumberingMode",
    "PaymentMethod",
    "ServiceOrder",
    "LoggingNotifier",
    "OutboxNotifier",
    "DocumentNumberGenerator",
    "InMemoryOrderSource",
    "ReminderScheduler",
    "TaxCalculator",
    "__version__",
]
