"""
Invoice lifecycle engine.

Owns every balance-affecting operation on an invoice. Each operation edits
a working copy under the invoice's lock, restores and checks the balance
invariants, then commits; anything raised before the commit leaves the
stored invoice untouched.

Usage:
    engine = InvoiceEngine(orders=InMemoryOrderSource(orders))

    inv = engine.create_invoice(order_ids=["DO-2026-0001"], tax_region="MY")
    engine.send(inv.id)
    engine.record_payment(inv.id, inv.balance_amount)
"""
from __future__ import annotations
import re
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional
from loguru import logger

from .catalog import get_template, template_for_customer
from .config import BillingConfig
from .currency import CurrencyConverter
from .errors import (
    BillingError,
    InvalidAmount,
    InvalidState,
    InvariantViolation,
    ValidationError,
)
from .models import (
    AmountSet,
    CreditNote,
    CurrencyTotals,
    CustomerType,
    DebitNote,
    Invoice,
    InvoiceStatus,
    InvoiceSummary,
    ManualInvoiceInput,
    Notification,
    NumberingMode,
    Payment,
    PaymentMethod,
    ReminderStatus,
    ScheduledReminder,
    money,
)
from .notifier import LoggingNotifier, Notifier, invoice_notification, reminder_notification
from .numbering import INVOICE, DocumentNumberGenerator
from .orders import InMemoryOrderSource, OrderSource
from .reminders import ReminderScheduler
from .repository import InvoiceRepository
from .tax import TaxCalculator

ZERO = Decimal("0.00")

# Statuses that accept payments and notes
OPEN_STATUSES = {InvoiceStatus.SENT, InvoiceStatus.OVERDUE}
NOTE_STATUSES = {InvoiceStatus.SENT, InvoiceStatus.OVERDUE, InvoiceStatus.PAID}
CANCELLABLE_STATUSES = {InvoiceStatus.DRAFT, InvoiceStatus.SENT, InvoiceStatus.OVERDUE}

_TERMS_RE = re.compile(r"^\s*(?:net\s*)?(\d+)\s*(?:days?)?\s*$", re.IGNORECASE)
_IMMEDIATE_TERMS = {"due on receipt", "immediate", "cod"}


def parse_payment_terms(terms: int | str) -> int:
    """
    Turn payment terms into a day count.

    Accepts 30, "30", "30 days", "Net 30" and "Due on receipt".

    Raises:
        ValueError: If the terms cannot be read as a day count
    """
    if isinstance(terms, int):
        if terms < 0:
            raise ValueError(f"Payment terms must not be negative: {terms}")
        return terms
    text = str(terms).strip()
    if text.lower() in _IMMEDIATE_TERMS:
        return 0
    match = _TERMS_RE.match(text)
    if not match:
        raise ValueError(f"Unreadable payment terms: {terms!r}")
    return int(match.group(1))


def _to_amount(value) -> Decimal:
    """
    Read a payment or note amount.

    Raises:
        InvalidAmount: Not a finite number, or finer than a cent
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmount(f"Not a number: {value!r}") from e
    if not amount.is_finite():
        raise InvalidAmount(f"Not a finite amount: {value!r}")
    if amount != money(amount):
        raise InvalidAmount(f"Amount has more than 2 decimal places: {value!r}")
    return money(amount)


def check_invariants(invoice: Invoice) -> None:
    """
    Verify the balance and status invariants of an invoice.

    Raises:
        InvariantViolation: Naming the first invariant that does not hold
    """
    debits = sum((n.amount for n in invoice.debit_notes), ZERO)
    credits = sum((n.amount for n in invoice.credit_notes), ZERO)
    expected_total = invoice.subtotal + invoice.tax_amount + debits - credits

    if invoice.total_amount != expected_total:
        raise InvariantViolation(
            f"{invoice.invoice_number}: total {invoice.total_amount} != "
            f"subtotal + tax + debits - credits ({expected_total})"
        )
    if invoice.balance_amount != invoice.total_amount - invoice.paid_amount:
        raise InvariantViolation(
            f"{invoice.invoice_number}: balance {invoice.balance_amount} != "
            f"total - paid ({invoice.total_amount - invoice.paid_amount})"
        )
    if invoice.paid_amount < 0:
        raise InvariantViolation(f"{invoice.invoice_number}: negative paid amount")
    if invoice.balance_amount < 0:
        raise InvariantViolation(f"{invoice.invoice_number}: negative balance")

    settled = invoice.balance_amount <= 0 and invoice.status != InvoiceStatus.CANCELLED
    if settled != (invoice.status == InvoiceStatus.PAID):
        raise InvariantViolation(
            f"{invoice.invoice_number}: status {invoice.status.value} "
            f"inconsistent with balance {invoice.balance_amount}"
        )


class InvoiceEngine:
    """
    Creates invoices and drives them through their lifecycle.

    All collaborators are optional; defaults are built from BillingConfig.
    """

    def __init__(
        self,
        config: Optional[BillingConfig] = None,
        converter: Optional[CurrencyConverter] = None,
        tax_calculator: Optional[TaxCalculator] = None,
        numbers: Optional[DocumentNumberGenerator] = None,
        scheduler: Optional[ReminderScheduler] = None,
        notifier: Optional[Notifier] = None,
        orders: Optional[OrderSource] = None,
        repository: Optional[InvoiceRepository] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.config = config or BillingConfig.from_env()
        self.today = today or date.today
        self.converter = converter or CurrencyConverter.from_config(self.config)
        self.tax_calculator = tax_calculator or TaxCalculator()
        self.numbers = numbers or DocumentNumberGenerator(today=self.today)
        self.scheduler = scheduler or ReminderScheduler.from_config(self.config)
        self.notifier = notifier or LoggingNotifier()
        self.orders = orders or InMemoryOrderSource()
        self.repository = repository or InvoiceRepository()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_invoice(
        self,
        order_ids: Optional[Iterable[str]] = None,
        manual: Optional[ManualInvoiceInput] = None,
        template: Optional[str] = None,
        currency: Optional[str] = None,
        tax_region: Optional[str] = None,
        payment_terms: int | str | None = None,
        auto_reminders: bool = False,
        numbering: NumberingMode = NumberingMode.AUTO,
        invoice_number: Optional[str] = None,
        service_category: Optional[str] = None,
        issue_date: Optional[date] = None,
    ) -> Invoice:
        """
        Create a draft invoice from delivery orders or manual input.

        Amounts from orders and manual input are in the base currency; tax is
        computed there and the result converted to ``currency``.

        Args:
            order_ids: Delivery orders to bill (auto-generate mode)
            manual: Operator-entered customer and subtotal (manual mode)
            template: Invoice template id; defaults from the customer type
            currency: Invoice currency (default from config)
            tax_region: Tax region (default from config)
            payment_terms: Day count or text such as "30 days"
            auto_reminders: Store a reminder schedule on the invoice
            numbering: AUTO draws the next number, MANUAL uses invoice_number
            invoice_number: Operator-supplied number for MANUAL numbering
            service_category: Passed to the tax calculator
            issue_date: Defaults to today

        Returns:
            Snapshot of the stored draft invoice

        Raises:
            ValidationError: Missing or invalid fields (all listed at once)
            InvalidAmount: Subtotal not positive
            UnknownCurrency / UnknownRegion: Reference data missing
            DuplicateDocumentNumber: Manual invoice number already used
        """
        currency = (currency or self.config.default_currency).upper()
        tax_region = tax_region or self.config.tax_region
        service_category = service_category or self.config.service_category
        issue_date = issue_date or self.today()
        if payment_terms is None:
            payment_terms = self.config.payment_terms_days

        errors: list[str] = []
        order_id_list = list(order_ids) if order_ids is not None else []

        if order_id_list and manual is not None:
            errors.extend(["order_ids", "manual"])
        elif not order_id_list and manual is None:
            errors.append("order_ids")

        customer_name = ""
        customer_type: CustomerType | None = None
        subtotal: Decimal | None = None

        if order_id_list and manual is None:
            orders = list(self.orders.fetch_orders(order_id_list))
            found = {o.order_id for o in orders}
            errors.extend(f"order_ids[{oid}]" for oid in order_id_list if oid not in found)
            if orders:
                customers = {o.customer_name for o in orders}
                if len(customers) > 1:
                    errors.append("order_ids")
                customer_name = orders[0].customer_name
                customer_type = orders[0].customer_type
                subtotal = sum((o.service_amount for o in orders), Decimal("0"))
        elif manual is not None and not order_id_list:
            customer_name = (manual.customer_name or "").strip()
            customer_type = manual.customer_type
            subtotal = manual.subtotal
            if not customer_name:
                errors.append("customer_name")
            if subtotal is None:
                errors.append("subtotal")

        selected = None
        if template:
            selected = get_template(template)
            if selected is None:
                errors.append("template")
        if customer_type is None:
            if selected is not None:
                customer_type = selected.customer_type
            elif manual is not None and not order_id_list:
                errors.append("customer_type")
        if selected is None and customer_type is not None and not template:
            selected = template_for_customer(customer_type)

        terms_days = None
        try:
            terms_days = parse_payment_terms(payment_terms)
        except ValueError:
            errors.append("payment_terms")

        if errors:
            logger.warning(f"Invoice creation rejected, invalid fields: {errors}")
            raise ValidationError(list(dict.fromkeys(errors)))

        subtotal = money(subtotal)
        if subtotal <= 0:
            logger.warning(f"Invoice creation rejected for {customer_name}: subtotal {subtotal}")
            raise InvalidAmount(f"Subtotal must be positive, got {subtotal}")

        rule = self.tax_calculator.rule(tax_region)
        tax = self.tax_calculator.calculate_tax(subtotal, service_category, tax_region)
        converted = self.converter.convert(
            AmountSet(subtotal=subtotal, tax_amount=tax, total_amount=subtotal + tax),
            self.config.base_currency,
            currency,
        )
        inv_subtotal = money(converted.subtotal)
        inv_tax = money(converted.tax_amount)
        inv_total = inv_subtotal + inv_tax
        if inv_subtotal <= 0:
            logger.warning(
                f"Invoice creation rejected for {customer_name}: "
                f"subtotal {subtotal} {self.config.base_currency} rounds to {inv_subtotal} {currency}"
            )
            raise InvalidAmount(f"Subtotal rounds to {inv_subtotal} in {currency}")

        if isinstance(payment_terms, int):
            terms_text = f"{terms_days} days"
        else:
            terms_text = str(payment_terms).strip()

        number = self.numbers.invoice_number(numbering, invoice_number)
        invoice_id = f"inv_{uuid.uuid4().hex[:12]}"
        due_date = issue_date + timedelta(days=terms_days)

        invoice = Invoice(
            id=invoice_id,
            invoice_number=number,
            customer_name=customer_name,
            customer_type=customer_type,
            order_ids=order_id_list,
            template=selected.id,
            currency=currency,
            subtotal=inv_subtotal,
            tax_amount=inv_tax,
            total_amount=inv_total,
            paid_amount=ZERO,
            balance_amount=inv_total,
            exchange_rate=converted.exchange_rate,
            original_currency=converted.original_currency,
            tax_region=rule.region,
            tax_type=rule.type,
            tax_rate=rule.rate,
            status=InvoiceStatus.DRAFT,
            issue_date=issue_date,
            due_date=due_date,
            payment_terms=terms_text,
        )
        if auto_reminders:
            invoice.reminder_schedule = self.scheduler.schedule_payment_reminders(
                invoice_id, due_date, issue_date=issue_date
            )

        try:
            check_invariants(invoice)
            self.repository.add(invoice)
        except BillingError:
            self.numbers.release(INVOICE, number)
            raise

        logger.info(
            f"Created invoice {number} for {customer_name}: "
            f"{currency} {inv_total} due {due_date}"
        )
        return invoice.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _classify_overdue(self, invoice: Invoice, as_of: date) -> bool:
        """Move a sent invoice past its due date with money owing to overdue."""
        if (
            invoice.status == InvoiceStatus.SENT
            and invoice.due_date < as_of
            and invoice.balance_amount > 0
        ):
            invoice.status = InvoiceStatus.OVERDUE
            logger.info(f"Invoice {invoice.invoice_number} is overdue (due {invoice.due_date})")
            return True
        return False

    def get_invoice(self, invoice_id: str) -> Invoice:
        """Return the current invoice, applying overdue classification."""
        with self.repository.editing(invoice_id) as invoice:
            self._classify_overdue(invoice, self.today())
            return invoice.model_copy(deep=True)

    def get_invoice_snapshot(self, invoice_id: str) -> Invoice:
        """Read-only copy for exporters (PDF / CSV rendering happens elsewhere)."""
        return self.get_invoice(invoice_id)

    def list_invoices(
        self,
        status: Optional[InvoiceStatus] = None,
        customer_name: Optional[str] = None,
    ) -> list[Invoice]:
        result = []
        needle = customer_name.lower() if customer_name else None
        for invoice_id in self.repository.ids():
            invoice = self.get_invoice(invoice_id)
            if status is not None and invoice.status != status:
                continue
            if needle and needle not in invoice.customer_name.lower():
                continue
            result.append(invoice)
        return sorted(result, key=lambda i: (i.issue_date, i.invoice_number))

    def refresh_overdue(self, as_of: Optional[date] = None) -> list[str]:
        """Classify every invoice as of a date; returns ids that became overdue."""
        as_of = as_of or self.today()
        changed = []
        for invoice_id in self.repository.ids():
            with self.repository.editing(invoice_id) as invoice:
                if self._classify_overdue(invoice, as_of):
                    changed.append(invoice_id)
        return changed

    def summarize(self) -> InvoiceSummary:
        """Counts by status plus collected and outstanding totals per currency."""
        summary = InvoiceSummary()
        for invoice in self.list_invoices():
            summary.total_invoices += 1
            key = invoice.status.value
            summary.by_status[key] = summary.by_status.get(key, 0) + 1
            totals = summary.by_currency.setdefault(invoice.currency, CurrencyTotals())
            totals.revenue += invoice.paid_amount
            if invoice.status != InvoiceStatus.CANCELLED:
                totals.outstanding += invoice.balance_amount
        return summary

    def due_reminders(self, as_of: Optional[date] = None) -> list[ScheduledReminder]:
        """Pending scheduled reminders whose date has arrived, oldest first."""
        as_of = as_of or self.today()
        due = []
        for invoice in self.list_invoices():
            if invoice.status not in OPEN_STATUSES:
                continue
            due.extend(
                r for r in invoice.reminder_schedule
                if r.status == ReminderStatus.PENDING and r.date <= as_of
            )
        return sorted(due, key=lambda r: (r.date, r.invoice_id, r.level))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _hand_off(self, notification: Notification) -> None:
        # Fire-and-forget: the invoice state is already committed
        try:
            self.notifier.notify(notification)
        except Exception as e:
            logger.error(f"Notifier failed for {notification.invoice_number}: {e}")

    def _reject(self, invoice: Invoice, error: BillingError) -> BillingError:
        logger.warning(f"Rejected operation on {invoice.invoice_number}: {error}")
        return error

    @staticmethod
    def _settle_status(invoice: Invoice) -> None:
        if invoice.balance_amount <= 0:
            invoice.status = InvoiceStatus.PAID
        elif invoice.status == InvoiceStatus.PAID:
            # A debit note on a settled invoice reopens it
            invoice.status = InvoiceStatus.SENT

    def send(self, invoice_id: str, channel: str = "email") -> Invoice:
        """
        Send (or re-send) an invoice to the customer.

        A draft becomes sent; other statuses are left alone. Cancelled
        invoices cannot be sent.
        """
        with self.repository.editing(invoice_id) as invoice:
            if invoice.status == InvoiceStatus.CANCELLED:
                raise self._reject(invoice, InvalidState("Cannot send a cancelled invoice"))
            first_send = invoice.status == InvoiceStatus.DRAFT
            if first_send:
                invoice.status = InvoiceStatus.SENT
            invoice.email_sent = True
            self._classify_overdue(invoice, self.today())
            check_invariants(invoice)
            snapshot = invoice.model_copy(deep=True)

        if first_send:
            logger.info(f"Invoice {snapshot.invoice_number} sent to {snapshot.customer_name}")
        else:
            logger.info(f"Invoice {snapshot.invoice_number} re-sent ({snapshot.status.value})")
        self._hand_off(invoice_notification(snapshot, channel=channel))
        return snapshot

    def mark_read(self, invoice_id: str) -> Invoice:
        """Record a read receipt for a sent invoice."""
        with self.repository.editing(invoice_id) as invoice:
            if not invoice.email_sent:
                raise self._reject(invoice, InvalidState("Invoice has not been sent"))
            invoice.read_receipt = True
            return invoice.model_copy(deep=True)

    def record_payment(
        self,
        invoice_id: str,
        amount,
        payment_date: Optional[date] = None,
        method: PaymentMethod = PaymentMethod.CASH,
        reference: Optional[str] = None,
    ) -> Invoice:
        """
        Apply a payment against the open balance.

        Raises:
            InvalidState: Invoice is draft or cancelled
            InvalidAmount: amount <= 0 or above the balance (never clamped)
            ValidationError: Non-cash payment without a reference
        """
        amount = _to_amount(amount)
        payment_date = payment_date or self.today()

        with self.repository.editing(invoice_id) as invoice:
            self._classify_overdue(invoice, self.today())
            if invoice.status == InvoiceStatus.CANCELLED:
                raise self._reject(invoice, InvalidState("Invoice is cancelled"))
            if invoice.status == InvoiceStatus.DRAFT:
                raise self._reject(invoice, InvalidState("Invoice has not been sent"))
            if amount <= 0:
                raise self._reject(invoice, InvalidAmount(f"Payment must be positive, got {amount}"))
            if amount > invoice.balance_amount:
                raise self._reject(
                    invoice,
                    InvalidAmount(f"Payment {amount} exceeds balance {invoice.balance_amount}"),
                )
            if method != PaymentMethod.CASH and not (reference or "").strip():
                raise self._reject(invoice, ValidationError(["reference"]))

            invoice.payments.append(
                Payment(
                    id=f"{invoice.invoice_number}-P{len(invoice.payments) + 1}",
                    amount=amount,
                    date=payment_date,
                    method=method,
                    reference=reference,
                )
            )
            invoice.paid_amount += amount
            invoice.balance_amount = invoice.total_amount - invoice.paid_amount
            self._settle_status(invoice)
            check_invariants(invoice)
            snapshot = invoice.model_copy(deep=True)

        logger.info(
            f"Payment {amount} {snapshot.currency} recorded on {snapshot.invoice_number}; "
            f"balance {snapshot.balance_amount} ({snapshot.status.value})"
        )
        return snapshot

    def create_credit_note(
        self,
        invoice_id: str,
        reason: str,
        amount,
        description: Optional[str] = None,
    ) -> Invoice:
        """
        Reduce what the customer owes.

        Raises:
            InvalidState: Invoice is draft or cancelled
            InvalidAmount: amount <= 0 or above the balance
        """
        amount = _to_amount(amount)

        with self.repository.editing(invoice_id) as invoice:
            self._classify_overdue(invoice, self.today())
            if invoice.status not in NOTE_STATUSES:
                raise self._reject(
                    invoice, InvalidState(f"No credit notes on {invoice.status.value} invoices")
                )
            if amount <= 0:
                raise self._reject(invoice, InvalidAmount(f"Credit must be positive, got {amount}"))
            if amount > invoice.balance_amount:
                raise self._reject(
                    invoice,
                    InvalidAmount(f"Credit {amount} exceeds balance {invoice.balance_amount}"),
                )

            invoice.credit_notes.append(
                CreditNote(
                    id=self.numbers.next_credit_note_number(),
                    reason=reason,
                    amount=amount,
                    description=description,
                    created_at=datetime.now(),
                )
            )
            invoice.total_amount -= amount
            invoice.balance_amount = invoice.total_amount - invoice.paid_amount
            self._settle_status(invoice)
            check_invariants(invoice)
            snapshot = invoice.model_copy(deep=True)

        logger.info(
            f"Credit note {snapshot.credit_notes[-1].id} for {amount} on "
            f"{snapshot.invoice_number}: {reason}"
        )
        return snapshot

    def create_debit_note(
        self,
        invoice_id: str,
        reason: str,
        amount,
        description: Optional[str] = None,
    ) -> Invoice:
        """
        Add a charge to an issued invoice; a paid invoice reopens as sent.

        Raises:
            InvalidState: Invoice is draft or cancelled
            InvalidAmount: amount <= 0
        """
        amount = _to_amount(amount)

        with self.repository.editing(invoice_id) as invoice:
            self._classify_overdue(invoice, self.today())
            if invoice.status not in NOTE_STATUSES:
                raise self._reject(
                    invoice, InvalidState(f"No debit notes on {invoice.status.value} invoices")
                )
            if amount <= 0:
                raise self._reject(invoice, InvalidAmount(f"Debit must be positive, got {amount}"))

            invoice.debit_notes.append(
                DebitNote(
                    id=self.numbers.next_debit_note_number(),
                    reason=reason,
                    amount=amount,
                    description=description,
                    created_at=datetime.now(),
                )
            )
            invoice.total_amount += amount
            invoice.balance_amount = invoice.total_amount - invoice.paid_amount
            self._settle_status(invoice)
            check_invariants(invoice)
            snapshot = invoice.model_copy(deep=True)

        logger.info(
            f"Debit note {snapshot.debit_notes[-1].id} for {amount} on "
            f"{snapshot.invoice_number}: {reason}"
        )
        return snapshot

    def send_reminder(
        self,
        invoice_id: str,
        reminder_type: str = "gentle",
        message: Optional[str] = None,
        channel: str = "email",
        entry_id: Optional[str] = None,
    ) -> Invoice:
        """
        Hand a payment reminder to the notifier.

        Does not change the status. When entry_id names a scheduled
        reminder, that entry is marked sent.

        Raises:
            InvalidState: Invoice is paid or cancelled
            ValidationError: entry_id is not in the invoice's schedule
        """
        with self.repository.editing(invoice_id) as invoice:
            self._classify_overdue(invoice, self.today())
            if invoice.status in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
                raise self._reject(
                    invoice, InvalidState(f"No reminders on {invoice.status.value} invoices")
                )
            entry = None
            if entry_id is not None:
                entry = next((r for r in invoice.reminder_schedule if r.id == entry_id), None)
                if entry is None:
                    raise self._reject(invoice, ValidationError(["entry_id"]))
                entry.status = ReminderStatus.SENT

            invoice.reminders_sent += 1
            invoice.last_reminder_date = self.today()
            check_invariants(invoice)
            snapshot = invoice.model_copy(deep=True)

        logger.info(
            f"Reminder '{reminder_type}' #{snapshot.reminders_sent} for {snapshot.invoice_number}"
        )
        self._hand_off(
            reminder_notification(
                snapshot,
                reminder_type,
                message=message,
                channel=channel,
                schedule_entry=entry.model_copy() if entry else None,
            )
        )
        return snapshot

    def cancel(self, invoice_id: str) -> Invoice:
        """
        Cancel an unpaid invoice. Cancelled is terminal.

        Raises:
            InvalidState: Invoice is paid or already cancelled
        """
        with self.repository.editing(invoice_id) as invoice:
            self._classify_overdue(invoice, self.today())
            if invoice.status not in CANCELLABLE_STATUSES:
                raise self._reject(
                    invoice, InvalidState(f"Cannot cancel a {invoice.status.value} invoice")
                )
            invoice.status = InvoiceStatus.CANCELLED
            check_invariants(invoice)
            snapshot = invoice.model_copy(deep=True)

        logger.info(f"Invoice {snapshot.invoice_number} cancelled")
        return snapshot
