"""
Tests for payment reminder scheduling.
"""
from datetime import date
import pytest

from bin_billing.reminders import ReminderScheduler


class TestScheduler:
    def test_default_policy(self):
        reminders = ReminderScheduler().schedule_payment_reminders("inv_1", date(2026, 11, 18))

        assert [(r.date, r.type, r.level) for r in reminders] == [
            (date(2026, 11, 11), "gentle", 1),
            (date(2026, 11, 18), "due_today", 2),
            (date(2026, 11, 25), "firm", 3),
            (date(2026, 12, 9), "final", 4),
        ]
        assert [r.escalated for r in reminders] == [False, False, True, True]
        assert all(r.invoice_id == "inv_1" for r in reminders)

    def test_policy_is_sorted(self):
        scheduler = ReminderScheduler([(14, "firm"), (-3, "gentle")])
        assert scheduler.reminder_types == ["gentle", "firm"]

    def test_drops_dates_before_issue(self):
        reminders = ReminderScheduler().schedule_payment_reminders(
            "inv_1", date(2026, 10, 22), issue_date=date(2026, 10, 19)
        )
        assert [r.id for r in reminders] == ["inv_1-R2", "inv_1-R3", "inv_1-R4"]

    def test_issue_date_itself_is_kept(self):
        reminders = ReminderScheduler().schedule_payment_reminders(
            "inv_1", date(2026, 10, 26), issue_date=date(2026, 10, 19)
        )
        assert reminders[0].date == date(2026, 10, 19)

    def test_empty_policy(self):
        with pytest.raises(ValueError):
            ReminderScheduler([])

    def test_from_config(self, config):
        config.reminder_offsets = [(0, "due_today")]
        scheduler = ReminderScheduler.from_config(config)
        assert scheduler.reminder_types == ["due_today"]
