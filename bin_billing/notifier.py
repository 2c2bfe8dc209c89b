"""
Hand-off point for outgoing invoice and reminder notices.

The engine builds a Notification and passes it to a Notifier; actual
e-mail / SMS delivery lives outside this package.
"""
from __future__ import annotations
import threading
from typing import Protocol
from loguru import logger

from .catalog import get_template
from .messages import render_message
from .models import Invoice, Notification, ScheduledReminder


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LoggingNotifier:
    """Default notifier: records the hand-off in the log only."""

    def notify(self, notification: Notification) -> None:
        logger.info(
            f"Handing off {notification.channel} notice for {notification.invoice_number} "
            f"to {notification.recipient}: {notification.subject}"
        )


class OutboxNotifier:
    """Keeps every notification in memory for a dispatcher (or a test) to drain."""

    def __init__(self):
        self._lock = threading.Lock()
        self._outbox: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        with self._lock:
            self._outbox.append(notification)

    @property
    def sent(self) -> list[Notification]:
        with self._lock:
            return list(self._outbox)

    def drain(self) -> list[Notification]:
        with self._lock:
            drained, self._outbox = self._outbox, []
        return drained


def _footer(invoice: Invoice) -> str:
    template = get_template(invoice.template)
    return template.footer if template else ""


def invoice_notification(invoice: Invoice, channel: str = "email") -> Notification:
    body = render_message(
        "invoice",
        invoice=invoice,
        tax_percent=f"{(invoice.tax_rate * 100).normalize():f}",
        footer=_footer(invoice),
    )
    return Notification(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        channel=channel,
        recipient=invoice.customer_name,
        subject=f"Invoice {invoice.invoice_number}",
        body=body,
    )


def reminder_notification(
    invoice: Invoice,
    reminder_type: str,
    message: str | None = None,
    channel: str = "email",
    schedule_entry: ScheduledReminder | None = None,
) -> Notification:
    """Build a reminder notice; a blank message is rendered from the type's template."""
    body = message or render_message(
        reminder_type,
        invoice=invoice,
        reminder_type=reminder_type,
        footer=_footer(invoice),
    )
    return Notification(
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        channel=channel,
        recipient=invoice.customer_name,
        subject=f"Payment reminder: {invoice.invoice_number}",
        body=body,
        schedule_entry=schedule_entry,
    )
