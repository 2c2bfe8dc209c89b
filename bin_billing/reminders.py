"""
Payment reminder scheduling.

The cadence is a policy table of day offsets relative to the due date. The
scheduler only returns dates; delivering them is the notifier's job.
"""
from __future__ import annotations
from datetime import date, timedelta
from typing import Iterable, Optional
from loguru import logger

from .config import BillingConfig
from .models import ScheduledReminder

DEFAULT_POLICY: list[tuple[int, str]] = [
    (-7, "gentle"),
    (0, "due_today"),
    (7, "firm"),
    (21, "final"),
]


class ReminderScheduler:
    def __init__(self, policy: Optional[Iterable[tuple[int, str]]] = None):
        # Stable sort keeps policy order for entries sharing an offset
        self.policy = sorted(
            DEFAULT_POLICY if policy is None else policy, key=lambda entry: entry[0]
        )
        if not self.policy:
            raise ValueError("Reminder policy must have at least one entry")

    @classmethod
    def from_config(cls, config: Optional[BillingConfig] = None) -> "ReminderScheduler":
        config = config or BillingConfig.from_env()
        return cls(config.reminder_offsets)

    @property
    def reminder_types(self) -> list[str]:
        return [kind for _, kind in self.policy]

    def schedule_payment_reminders(
        self,
        invoice_id: str,
        due_date: date,
        issue_date: Optional[date] = None,
    ) -> list[ScheduledReminder]:
        """
        Build the reminder sequence for an invoice.

        Args:
            invoice_id: Invoice the reminders belong to
            due_date: Payment due date the offsets are relative to
            issue_date: Entries falling before this date are dropped

        Returns:
            Reminders in chronological order; levels count from 1 over the
            full policy, so a dropped early entry leaves a gap in levels
        """
        reminders = []
        for level, (offset, kind) in enumerate(self.policy, start=1):
            when = due_date + timedelta(days=offset)
            if issue_date is not None and when < issue_date:
                continue
            reminders.append(
                ScheduledReminder(
                    id=f"{invoice_id}-R{level}",
                    invoice_id=invoice_id,
                    level=level,
                    date=when,
                    type=kind,
                    escalated=offset > 0,
                )
            )

        logger.debug(f"Scheduled {len(reminders)} reminders for {invoice_id} (due {due_date})")
        return reminders
