"""
Configuration management for the billing engine.

Loads settings from environment variables (and a local .env file) with
defaults matching the Malaysian head office setup.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# Multiplier from MYR to each currency
DEFAULT_RATES = {
    "MYR": Decimal("1"),
    "USD": Decimal("0.2114"),
    "SGD": Decimal("0.2841"),
    "EUR": Decimal("0.1942"),
    "GBP": Decimal("0.1672"),
}

DEFAULT_REMINDER_OFFSETS = "-7:gentle,0:due_today,7:firm,21:final"


def _parse_rates(env_val: str | None) -> dict[str, Decimal]:
    """
    Parse BILLING_RATES into a rate table.

    Format: ``USD=0.2114,SGD=0.2841``. Entries extend the default table.
    Malformed entries are skipped; ``validate()`` reports them.
    """
    rates = dict(DEFAULT_RATES)
    if not env_val:
        return rates
    for chunk in env_val.split(","):
        code, _, value = chunk.partition("=")
        code = code.strip().upper()
        if not code or not value.strip():
            continue
        try:
            rates[code] = Decimal(value.strip())
        except InvalidOperation:
            continue
    return rates


def parse_reminder_offsets(env_val: str | None) -> list[tuple[int, str]]:
    """
    Parse a reminder policy string into (day offset, reminder type) pairs.

    Format: ``-7:gentle,0:due_today,7:firm,21:final``.
    """
    policy = []
    for chunk in (env_val or DEFAULT_REMINDER_OFFSETS).split(","):
        offset, _, kind = chunk.partition(":")
        if not offset.strip() or not kind.strip():
            continue
        try:
            policy.append((int(offset.strip()), kind.strip()))
        except ValueError:
            continue
    return policy


@dataclass
class BillingConfig:
    """Configuration settings for the billing engine."""

    # Currency settings
    base_currency: str = field(
        default_factory=lambda: os.getenv("BILLING_BASE_CURRENCY", "MYR").upper()
    )
    default_currency: str = field(
        default_factory=lambda: os.getenv("BILLING_DEFAULT_CURRENCY", "MYR").upper()
    )
    rates: dict[str, Decimal] = field(
        default_factory=lambda: _parse_rates(os.getenv("BILLING_RATES"))
    )

    # Tax settings
    tax_region: str = field(default_factory=lambda: os.getenv("BILLING_TAX_REGION", "MY"))
    service_category: str = field(
        default_factory=lambda: os.getenv("BILLING_SERVICE_CATEGORY", "waste_collection")
    )

    # Invoice defaults
    payment_terms_days: int = field(
        default_factory=lambda: int(os.getenv("BILLING_PAYMENT_TERMS_DAYS", "30"))
    )

    # Reminder policy as (days relative to due date, reminder type)
    reminder_offsets: list[tuple[int, str]] = field(
        default_factory=lambda: parse_reminder_offsets(os.getenv("BILLING_REMINDER_OFFSETS"))
    )

    # Exchange-rate feed
    rate_feed_url: str = field(
        default_factory=lambda: os.getenv(
            "BILLING_RATE_FEED_URL",
            "https://www.ecb.europa.eu/stats/eurofxref/eurofxref-daily.xml",
        )
    )
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("BILLING_REQUEST_TIMEOUT", "30"))
    )
    retry_attempts: int = field(
        default_factory=lambda: int(os.getenv("BILLING_RETRY_ATTEMPTS", "3"))
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_file: Optional[str] = field(
        default_factory=lambda: os.getenv("BILLING_LOG_FILE")
    )

    @classmethod
    def from_env(cls) -> "BillingConfig":
        """Create config from environment variables."""
        return cls()

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.base_currency:
            errors.append("BILLING_BASE_CURRENCY is required")
        if self.base_currency not in self.rates:
            errors.append(f"Base currency {self.base_currency} missing from rate table")
        elif self.rates[self.base_currency] != 1:
            errors.append(f"Rate for base currency {self.base_currency} must be 1")
        if self.default_currency not in self.rates:
            errors.append(f"Default currency {self.default_currency} missing from rate table")
        for code, rate in self.rates.items():
            if rate <= 0:
                errors.append(f"Rate for {code} must be positive")
        if self.payment_terms_days < 0:
            errors.append("BILLING_PAYMENT_TERMS_DAYS must not be negative")
        if not self.reminder_offsets:
            errors.append("BILLING_REMINDER_OFFSETS has no valid entries")
        return errors


# Default configuration instance
default_config = BillingConfig.from_env()
