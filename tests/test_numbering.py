"""
Tests for document number generation.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import date
import pytest

from bin_billing.errors import DuplicateDocumentNumber, MissingRequiredField, ValidationError
from bin_billing.models import NumberingMode
from bin_billing.numbering import (
    BIN_SERIAL,
    DELIVERY_ORDER,
    DO_BOOK,
    INVOICE,
    DocumentNumberGenerator,
)


@pytest.fixture
def numbers(clock):
    return DocumentNumberGenerator(today=clock)


class TestAutomaticNumbers:
    """Tests for counter-based numbering."""

    def test_formats(self, numbers):
        assert numbers.next_invoice_number() == "INV-2026-001"
        assert numbers.next_do_number() == "DO-2026-0001"
        assert numbers.next_bin_serial() == "BIN-SN-001"
        assert numbers.next_do_book_number() == "DOBOOK-0001"
        assert numbers.next_credit_note_number() == "CN-2026-001"
        assert numbers.next_debit_note_number() == "DN-2026-001"

    def test_counters_are_per_type(self, numbers):
        numbers.next_invoice_number()
        numbers.next_invoice_number()
        assert numbers.next_do_number() == "DO-2026-0001"
        assert numbers.next_invoice_number() == "INV-2026-003"

    def test_sequence_grows_past_three_digits(self, numbers):
        for _ in range(999):
            numbers.next_invoice_number()
        assert numbers.next_invoice_number() == "INV-2026-1000"

    def test_year_rollover_starts_new_sequence(self, numbers, clock):
        numbers.next_invoice_number()
        clock.current = date(2027, 1, 1)
        assert numbers.next_invoice_number() == "INV-2027-001"

    def test_skips_numbers_taken_manually(self, numbers):
        numbers.register(INVOICE, "INV-2026-001")
        assert numbers.next_invoice_number() == "INV-2026-002"

    def test_unknown_type(self, numbers):
        with pytest.raises(ValueError):
            numbers.next_number("receipt")

    def test_concurrent_numbers_are_unique(self, numbers):
        with ThreadPoolExecutor(max_workers=16) as pool:
            issued = list(pool.map(lambda _: numbers.next_invoice_number(), range(1000)))
        assert len(set(issued)) == 1000


class TestManualNumbers:
    """Tests for operator-supplied numbers."""

    def test_duplicate_rejected(self, numbers):
        numbers.register(INVOICE, "DO-0001")
        with pytest.raises(DuplicateDocumentNumber):
            numbers.register(INVOICE, "DO-0001")

    def test_duplicate_check_is_per_type(self, numbers):
        numbers.register(INVOICE, "X-1")
        assert numbers.register(DELIVERY_ORDER, "X-1") == "X-1"

    def test_whitespace_is_ignored(self, numbers):
        numbers.register(INVOICE, "INV-7")
        with pytest.raises(DuplicateDocumentNumber):
            numbers.register(INVOICE, "  INV-7 ")

    def test_blank_manual_invoice_number(self, numbers):
        with pytest.raises(MissingRequiredField) as exc:
            numbers.invoice_number(NumberingMode.MANUAL, "   ")
        assert isinstance(exc.value, ValidationError)
        assert exc.value.fields == ["invoice_number"]

    def test_concurrent_manual_registration_admits_one(self, numbers):
        def attempt(_):
            try:
                numbers.register(INVOICE, "INV-RACE")
                return True
            except DuplicateDocumentNumber:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(50)))
        assert results.count(True) == 1


class TestDeliveryOrders:
    """Tests for issuing delivery-order identifiers."""

    def test_auto(self, numbers):
        do = numbers.issue_delivery_order()
        assert do.do_number == "DO-2026-0001"
        assert do.do_book_number == "DOBOOK-0001"
        assert do.bin_serial == "BIN-SN-001"

    def test_manual_requires_do_number(self, numbers):
        with pytest.raises(MissingRequiredField):
            numbers.issue_delivery_order(NumberingMode.MANUAL, do_number="")

    def test_manual_blank_book_and_serial_fall_back(self, numbers):
        do = numbers.issue_delivery_order(
            NumberingMode.MANUAL, do_number="DO-0001", do_book_number="", bin_serial=None
        )
        assert do.do_number == "DO-0001"
        assert do.do_book_number == "DOBOOK-0001"
        assert do.bin_serial == "BIN-SN-001"

    def test_manual_all_fields(self, numbers):
        do = numbers.issue_delivery_order(
            NumberingMode.MANUAL,
            do_number="DO-0009",
            do_book_number="DOBOOK-0042",
            bin_serial="BIN-SN-077",
        )
        assert do == ("DO-0009", "DOBOOK-0042", "BIN-SN-077")
        assert numbers.is_issued(BIN_SERIAL, "BIN-SN-077")

    def test_duplicate_serial_releases_do_number(self, numbers):
        numbers.register(BIN_SERIAL, "BIN-SN-001")
        with pytest.raises(DuplicateDocumentNumber):
            numbers.issue_delivery_order(
                NumberingMode.MANUAL, do_number="DO-0005", bin_serial="BIN-SN-001"
            )
        assert not numbers.is_issued(DELIVERY_ORDER, "DO-0005")
        assert not numbers.is_issued(DO_BOOK, "DOBOOK-0001")
