"""
Command-line helpers for operators.

Usage:
    # Tax and currency breakdown for a subtotal in the base currency
    python -m bin_billing quote 320 --region MY --currency SGD

    # Reminder dates for an invoice due on a date
    python -m bin_billing schedule --due 2026-11-18 --issued 2026-10-19

    # Pull the exchange-rate feed and print the rebased table
    python -m bin_billing rates
"""
from __future__ import annotations
import argparse
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional
from loguru import logger

from .config import BillingConfig
from .currency import CurrencyConverter
from .errors import BillingError
from .feeds import RateFeedConnectionError, RateFeedResponseError, sync_rates
from .logs import configure_logging
from .models import AmountSet, money
from .reminders import ReminderScheduler
from .tax import TaxCalculator


def _decimal(s: str) -> Decimal:
    try:
        return Decimal(s)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {s}")


def cmd_quote(args, config: BillingConfig) -> int:
    subtotal = money(args.subtotal)
    category = args.category or config.service_category
    region = args.region or config.tax_region
    currency = (args.currency or config.default_currency).upper()
    tax = TaxCalculator().calculate_tax(subtotal, category, region)
    converter = CurrencyConverter.from_config(config)
    converted = converter.convert(
        AmountSet(subtotal=subtotal, tax_amount=tax, total_amount=subtotal + tax),
        config.base_currency,
        currency,
    )
    print(f"Subtotal: {currency} {money(converted.subtotal)}")
    print(f"Tax:      {currency} {money(converted.tax_amount)}")
    print(f"Total:    {currency} {money(converted.subtotal) + money(converted.tax_amount)}")
    if converted.exchange_rate is not None:
        print(f"Rate:     1 {converted.original_currency} = {converted.exchange_rate:.6f} {currency}")
    return 0


def cmd_schedule(args, config: BillingConfig) -> int:
    scheduler = ReminderScheduler.from_config(config)
    for r in scheduler.schedule_payment_reminders(args.invoice, args.due, issue_date=args.issued):
        flag = " (escalated)" if r.escalated else ""
        print(f"{r.date}  L{r.level}  {r.type}{flag}")
    return 0


def cmd_rates(args, config: BillingConfig) -> int:
    converter = CurrencyConverter.from_config(config)
    table = sync_rates(converter, url=args.url)
    for code in sorted(table):
        print(f"{code}  {table[code]}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bin_billing",
        description="Billing engine utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress output except errors")
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Tax and currency breakdown for a subtotal")
    quote.add_argument("subtotal", type=_decimal, help="Subtotal in the base currency")
    quote.add_argument("--region", default=None, help="Tax region (default from config)")
    quote.add_argument("--currency", default=None, help="Target currency (default from config)")
    quote.add_argument("--category", default=None, help="Service category")
    quote.set_defaults(func=cmd_quote)

    schedule = sub.add_parser("schedule", help="Reminder dates for a due date")
    schedule.add_argument(
        "--due",
        required=True,
        type=lambda s: date.fromisoformat(s),
        help="Due date (YYYY-MM-DD)",
    )
    schedule.add_argument(
        "--issued",
        type=lambda s: date.fromisoformat(s),
        help="Issue date (YYYY-MM-DD); earlier reminders are dropped",
    )
    schedule.add_argument("--invoice", default="INV", help="Invoice id used in reminder ids")
    schedule.set_defaults(func=cmd_schedule)

    rates = sub.add_parser("rates", help="Fetch the exchange-rate feed")
    rates.add_argument("--url", default=None, help="Feed URL (default from config)")
    rates.set_defaults(func=cmd_rates)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = BillingConfig.from_env()
    configure_logging(config, verbose=args.verbose, quiet=args.quiet)

    errors = config.validate()
    if errors:
        for e in errors:
            logger.error(f"Config error: {e}")
        return 1

    try:
        return args.func(args, config)
    except (RateFeedConnectionError, RateFeedResponseError) as e:
        logger.error(f"Rate feed error: {e}")
        return 1
    except BillingError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Command failed: {e}")
        return 1
