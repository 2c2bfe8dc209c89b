"""
In-memory invoice repository with per-invoice locking.

Writers take the invoice's lock, work on a copy and commit the copy back,
so a failed operation never leaves a half-applied invoice behind.
"""
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Generator, Iterator

from .errors import InvoiceNotFound
from .models import Invoice


class InvoiceRepository:
    def __init__(self):
        self._invoices: dict[str, Invoice] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._table_lock = threading.Lock()

    def __len__(self) -> int:
        with self._table_lock:
            return len(self._invoices)

    def __contains__(self, invoice_id: str) -> bool:
        with self._table_lock:
            return invoice_id in self._invoices

    def _lock_for(self, invoice_id: str) -> threading.RLock:
        with self._table_lock:
            if invoice_id not in self._invoices:
                raise InvoiceNotFound(invoice_id)
            return self._locks[invoice_id]

    def add(self, invoice: Invoice) -> None:
        with self._table_lock:
            if invoice.id in self._invoices:
                raise ValueError(f"Invoice id already stored: {invoice.id}")
            self._invoices[invoice.id] = invoice.model_copy(deep=True)
            self._locks[invoice.id] = threading.RLock()

    def get(self, invoice_id: str) -> Invoice:
        """Return a detached copy of the stored invoice."""
        with self._lock_for(invoice_id):
            return self._invoices[invoice_id].model_copy(deep=True)

    @contextmanager
    def editing(self, invoice_id: str) -> Generator[Invoice, None, None]:
        """
        Hold the invoice's lock while the caller edits a working copy.

        The copy is committed when the block exits normally; an exception
        discards it.
        """
        with self._lock_for(invoice_id):
            working = self._invoices[invoice_id].model_copy(deep=True)
            yield working
            self._invoices[invoice_id] = working

    def ids(self) -> list[str]:
        with self._table_lock:
            return list(self._invoices)

    def __iter__(self) -> Iterator[Invoice]:
        for invoice_id in self.ids():
            yield self.get(invoice_id)
