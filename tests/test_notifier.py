"""
Tests for message rendering and the notifier hand-off.
"""
import pytest

from bin_billing.messages import TEMPLATES, get_template_path, load_template, render_message
from bin_billing.notifier import OutboxNotifier, invoice_notification, reminder_notification


class TestMessages:
    def test_every_template_exists(self):
        for name in TEMPLATES:
            assert get_template_path(name).exists()
            assert "invoice.invoice_number" in load_template(name)

    def test_unknown_template_path(self):
        with pytest.raises(ValueError):
            get_template_path("sms")


class TestNotifications:
    def test_invoice_notice(self, sent_invoice):
        notice = invoice_notification(sent_invoice, channel="sms")
        assert notice.channel == "sms"
        assert notice.invoice_id == sent_invoice.id
        assert "Due by 2026-11-18" in notice.body

    def test_uk_vat_percent(self, engine):
        inv = engine.create_invoice(order_ids=["DO-2026-0003"], tax_region="UK")
        assert "VAT (20%)" in invoice_notification(inv).body

    def test_final_reminder_text(self, sent_invoice):
        notice = reminder_notification(sent_invoice, "final")
        assert notice.body.startswith("Dear Sarah Lim,")
        assert "FINAL NOTICE" in notice.body
        assert notice.schedule_entry is None

    def test_render_falls_back_to_generic(self, sent_invoice):
        body = render_message("whatsapp_nudge", invoice=sent_invoice, reminder_type="whatsapp_nudge")
        assert "(whatsapp_nudge)" in body


class TestOutbox:
    def test_drain(self, sent_invoice):
        outbox = OutboxNotifier()
        outbox.notify(invoice_notification(sent_invoice))
        assert len(outbox.sent) == 1
        assert len(outbox.drain()) == 1
        assert outbox.sent == []
