"""
Order source seam.

Bookings and delivery orders live in the surrounding application; the
engine only reads them by id when generating an invoice.
"""
from __future__ import annotations
from typing import Iterable, Protocol

from .models import ServiceOrder


class OrderSource(Protocol):
    def fetch_orders(self, order_ids: Iterable[str]) -> Iterable[ServiceOrder]: ...


class InMemoryOrderSource:
    """Order source backed by a dict, for embedding and tests."""

    def __init__(self, orders: Iterable[ServiceOrder] = ()):
        self._orders = {o.order_id: o for o in orders}

    def add(self, order: ServiceOrder) -> None:
        self._orders[order.order_id] = order

    def fetch_orders(self, order_ids: Iterable[str]) -> list[ServiceOrder]:
        """Return the known orders in request order; unknown ids are skipped."""
        return [self._orders[oid] for oid in order_ids if oid in self._orders]
