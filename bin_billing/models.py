from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from pydantic import BaseModel, Field

CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize an amount to 2 dp (half-up), the precision invoices store."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class CustomerType(str, Enum):
    CORPORATE = "Corporate"
    INDIVIDUAL = "Individual"
    GOVERNMENT = "Government"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class NumberingMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class PaymentMethod(str, Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    ONLINE_BANKING = "online_banking"
    CDM = "cdm"
    GRABPAY = "grabpay"
    TOUCHNGO = "touchngo"
    BOOST = "boost"
    FAVE = "fave"
    BIGPAY = "bigpay"


class ReminderStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"


class AmountSet(BaseModel):
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


class ConvertedAmounts(AmountSet):
    exchange_rate: Decimal | None = None     # only set when currencies differ
    original_currency: str | None = None


class ServiceOrder(BaseModel):
    """A completed booking / delivery order as supplied by the order source."""
    order_id: str
    customer_name: str
    customer_type: CustomerType = CustomerType.CORPORATE
    service_amount: Decimal
    description: str = "Waste Collection Service"
    category: str = "waste_collection"


class ManualInvoiceInput(BaseModel):
    customer_name: str = ""
    customer_type: CustomerType | None = None
    subtotal: Decimal | None = None
    description: str | None = None


class CreditNote(BaseModel):
    id: str
    reason: str
    amount: Decimal
    description: str | None = None
    created_at: datetime


class DebitNote(BaseModel):
    id: str
    reason: str
    amount: Decimal
    description: str | None = None
    created_at: datetime


class Payment(BaseModel):
    id: str
    amount: Decimal
    date: date
    method: PaymentMethod = PaymentMethod.CASH
    reference: str | None = None


class ScheduledReminder(BaseModel):
    id: str
    invoice_id: str
    level: int
    date: date
    type: str
    escalated: bool = False
    status: ReminderStatus = ReminderStatus.PENDING


class Invoice(BaseModel):
    id: str
    invoice_number: str
    customer_name: str
    customer_type: CustomerType
    order_ids: list[str] = Field(default_factory=list)
    template: str
    currency: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal = Decimal("0.00")
    balance_amount: Decimal
    exchange_rate: Decimal | None = None
    original_currency: str | None = None
    tax_region: str
    tax_type: str
    tax_rate: Decimal
    status: InvoiceStatus = InvoiceStatus.DRAFT
    issue_date: date
    due_date: date
    payment_terms: str
    email_sent: bool = False
    read_receipt: bool = False
    reminders_sent: int = 0
    last_reminder_date: date | None = None
    credit_notes: list[CreditNote] = Field(default_factory=list)
    debit_notes: list[DebitNote] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    reminder_schedule: list[ScheduledReminder] = Field(default_factory=list)


class Notification(BaseModel):
    """What the engine hands to the external notifier."""
    invoice_id: str
    invoice_number: str
    channel: str = "email"
    recipient: str
    subject: str
    body: str
    schedule_entry: ScheduledReminder | None = None


class CurrencyTotals(BaseModel):
    revenue: Decimal = Decimal("0.00")
    outstanding: Decimal = Decimal("0.00")


class InvoiceSummary(BaseModel):
    total_invoices: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_currency: dict[str, CurrencyTotals] = Field(default_factory=dict)
