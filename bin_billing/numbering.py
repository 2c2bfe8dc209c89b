"""
Document number generation for invoices, delivery orders and bins.

Automatic numbers come from per-type counters; manual numbers are checked
against everything already issued for the same type. Both paths run under
one lock, so concurrent callers can never receive the same number.
"""
from __future__ import annotations
import threading
from datetime import date
from typing import Callable, NamedTuple, Optional
from loguru import logger

from .errors import DuplicateDocumentNumber, MissingRequiredField
from .models import NumberingMode

INVOICE = "invoice"
DELIVERY_ORDER = "delivery_order"
DO_BOOK = "do_book"
BIN_SERIAL = "bin_serial"
CREDIT_NOTE = "credit_note"
DEBIT_NOTE = "debit_note"

# doc type -> (format, whether the current year is part of the number)
FORMATS = {
    INVOICE: ("INV-{year}-{seq:03d}", True),
    DELIVERY_ORDER: ("DO-{year}-{seq:04d}", True),
    DO_BOOK: ("DOBOOK-{seq:04d}", False),
    BIN_SERIAL: ("BIN-SN-{seq:03d}", False),
    CREDIT_NOTE: ("CN-{year}-{seq:03d}", True),
    DEBIT_NOTE: ("DN-{year}-{seq:03d}", True),
}


class DeliveryOrderNumbers(NamedTuple):
    do_number: str
    do_book_number: str
    bin_serial: str


class DocumentNumberGenerator:
    """
    Issues unique document numbers.

    Usage:
        numbers = DocumentNumberGenerator()
        numbers.next_invoice_number()            # INV-2026-001
        numbers.register(INVOICE, "INV-OLD-77")  # manual, checked for collisions
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self._today = today or date.today
        self._lock = threading.Lock()
        self._counters: dict[tuple[str, int | None], int] = {}
        self._issued: dict[str, set[str]] = {doc_type: set() for doc_type in FORMATS}

    def next_number(self, doc_type: str) -> str:
        """Atomically advance the counter for doc_type and return a fresh number."""
        if doc_type not in FORMATS:
            raise ValueError(f"Unknown document type: {doc_type}. Valid: {list(FORMATS)}")
        pattern, yearly = FORMATS[doc_type]
        year = self._today().year if yearly else None

        with self._lock:
            seq = self._counters.get((doc_type, year), 0)
            while True:
                seq += 1
                number = pattern.format(year=year, seq=seq)
                # Skip values an operator already used manually
                if number not in self._issued[doc_type]:
                    break
            self._counters[(doc_type, year)] = seq
            self._issued[doc_type].add(number)

        logger.debug(f"Issued {doc_type} number {number}")
        return number

    def register(self, doc_type: str, number: str) -> str:
        """
        Record an operator-supplied number.

        Raises:
            DuplicateDocumentNumber: If the number was already issued for doc_type
        """
        if doc_type not in FORMATS:
            raise ValueError(f"Unknown document type: {doc_type}. Valid: {list(FORMATS)}")
        number = number.strip()
        with self._lock:
            if number in self._issued[doc_type]:
                logger.warning(f"Rejected duplicate {doc_type} number {number}")
                raise DuplicateDocumentNumber(doc_type, number)
            self._issued[doc_type].add(number)
        logger.debug(f"Registered manual {doc_type} number {number}")
        return number

    def release(self, doc_type: str, number: str) -> None:
        """Forget a number that was reserved for a creation that failed later."""
        with self._lock:
            self._issued[doc_type].discard(number)

    def is_issued(self, doc_type: str, number: str) -> bool:
        with self._lock:
            return number.strip() in self._issued.get(doc_type, set())

    def next_invoice_number(self) -> str:
        return self.next_number(INVOICE)

    def next_do_number(self) -> str:
        return self.next_number(DELIVERY_ORDER)

    def next_do_book_number(self) -> str:
        return self.next_number(DO_BOOK)

    def next_bin_serial(self) -> str:
        return self.next_number(BIN_SERIAL)

    def next_credit_note_number(self) -> str:
        return self.next_number(CREDIT_NOTE)

    def next_debit_note_number(self) -> str:
        return self.next_number(DEBIT_NOTE)

    def invoice_number(self, mode: NumberingMode, manual_number: str | None = None) -> str:
        """Resolve the invoice number for a creation request."""
        if mode == NumberingMode.MANUAL:
            if not manual_number or not manual_number.strip():
                raise MissingRequiredField("invoice_number")
            return self.register(INVOICE, manual_number)
        return self.next_invoice_number()

    def issue_delivery_order(
        self,
        mode: NumberingMode = NumberingMode.AUTO,
        do_number: str | None = None,
        do_book_number: str | None = None,
        bin_serial: str | None = None,
    ) -> DeliveryOrderNumbers:
        """
        Assign the identifiers printed on a delivery order.

        In manual mode the DO number is mandatory; a blank DO book number or
        bin serial falls back to automatic generation.
        """
        if mode == NumberingMode.MANUAL:
            if not do_number or not do_number.strip():
                raise MissingRequiredField("do_number")
            do = self.register(DELIVERY_ORDER, do_number)
            try:
                book = (
                    self.register(DO_BOOK, do_book_number)
                    if do_book_number and do_book_number.strip()
                    else self.next_do_book_number()
                )
            except DuplicateDocumentNumber:
                self.release(DELIVERY_ORDER, do)
                raise
            try:
                serial = (
                    self.register(BIN_SERIAL, bin_serial)
                    if bin_serial and bin_serial.strip()
                    else self.next_bin_serial()
                )
            except DuplicateDocumentNumber:
                self.release(DELIVERY_ORDER, do)
                self.release(DO_BOOK, book)
                raise
            return DeliveryOrderNumbers(do, book, serial)

        return DeliveryOrderNumbers(
            self.next_do_number(),
            self.next_do_book_number(),
            self.next_bin_serial(),
        )
