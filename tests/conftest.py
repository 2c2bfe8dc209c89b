"""
Shared fixtures for billing engine tests.
"""
from datetime import date, timedelta
from decimal import Decimal
import pytest

from bin_billing.config import BillingConfig, DEFAULT_RATES, parse_reminder_offsets
from bin_billing.engine import InvoiceEngine
from bin_billing.models import CustomerType, ServiceOrder
from bin_billing.notifier import OutboxNotifier
from bin_billing.orders import InMemoryOrderSource

TODAY = date(2026, 10, 19)


class Clock:
    """Callable stand-in for date.today that tests can move forward."""

    def __init__(self, today: date = TODAY):
        self.current = today

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> None:
        self.current += timedelta(days=days)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def config():
    return BillingConfig(
        base_currency="MYR",
        default_currency="MYR",
        rates=dict(DEFAULT_RATES),
        tax_region="MY",
        service_category="waste_collection",
        payment_terms_days=30,
        reminder_offsets=parse_reminder_offsets(None),
        log_file=None,
    )


@pytest.fixture
def orders():
    return InMemoryOrderSource([
        ServiceOrder(
            order_id="DO-2026-0001",
            customer_name="ABC Construction Sdn Bhd",
            customer_type=CustomerType.CORPORATE,
            service_amount=Decimal("1200.00"),
            description="20 yard roll-on bin",
        ),
        ServiceOrder(
            order_id="DO-2026-0002",
            customer_name="ABC Construction Sdn Bhd",
            customer_type=CustomerType.CORPORATE,
            service_amount=Decimal("650.00"),
        ),
        ServiceOrder(
            order_id="DO-2026-0003",
            customer_name="Sarah Lim",
            customer_type=CustomerType.INDIVIDUAL,
            service_amount=Decimal("320.00"),
        ),
    ])


@pytest.fixture
def notifier():
    return OutboxNotifier()


@pytest.fixture
def engine(config, clock, orders, notifier):
    return InvoiceEngine(config=config, orders=orders, notifier=notifier, today=clock)


@pytest.fixture
def sent_invoice(engine):
    """Sarah Lim's 320.00 + 6% SST invoice, already sent."""
    inv = engine.create_invoice(order_ids=["DO-2026-0003"], tax_region="MY")
    return engine.send(inv.id)
