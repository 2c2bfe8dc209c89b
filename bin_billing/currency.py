"""
Currency conversion against a base-currency rate table.

Rates are multipliers from the base currency to each code, so the base
currency always maps to 1. Conversions are snapshots: replacing the table
never touches amounts already stored on invoices.
"""
from __future__ import annotations
import threading
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Optional
from loguru import logger

from .config import BillingConfig
from .errors import UnknownCurrency
from .models import AmountSet, ConvertedAmounts

# Converted amounts keep extra places so a round trip recovers the cent
CONVERSION_SCALE = Decimal("0.000001")


class CurrencyConverter:
    """
    Thread-safe holder of the exchange-rate table.

    Usage:
        converter = CurrencyConverter(base_currency="MYR", rates={"SGD": Decimal("0.2841")})
        converter.convert(amounts, "MYR", "SGD")
    """

    def __init__(
        self,
        base_currency: str = "MYR",
        rates: Optional[Mapping[str, Decimal]] = None,
    ):
        self.base_currency = base_currency.upper()
        self._lock = threading.Lock()
        self._rates = self._normalize(rates or {})

    @classmethod
    def from_config(cls, config: Optional[BillingConfig] = None) -> "CurrencyConverter":
        config = config or BillingConfig.from_env()
        return cls(base_currency=config.base_currency, rates=config.rates)

    def _normalize(self, rates: Mapping[str, Decimal]) -> dict[str, Decimal]:
        table = {code.upper(): Decimal(str(rate)) for code, rate in rates.items()}
        for code, rate in table.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive, got {rate}")
        table[self.base_currency] = Decimal("1")
        return table

    @property
    def rates(self) -> dict[str, Decimal]:
        """Copy of the current rate table."""
        with self._lock:
            return dict(self._rates)

    def rate(self, code: str) -> Decimal:
        with self._lock:
            rate = self._rates.get(code.upper())
        if rate is None:
            logger.bind(kind="configuration").error(f"No exchange rate for {code}")
            raise UnknownCurrency(code)
        return rate

    def supports(self, code: str) -> bool:
        with self._lock:
            return code.upper() in self._rates

    def exchange_rate(self, from_currency: str, to_currency: str) -> Decimal:
        """Effective multiplier taking an amount in from_currency to to_currency."""
        # update_rates swaps the dict without mutating it
        with self._lock:
            table = self._rates
        for code in (from_currency, to_currency):
            if code.upper() not in table:
                logger.bind(kind="configuration").error(f"No exchange rate for {code}")
                raise UnknownCurrency(code)
        return table[to_currency.upper()] / table[from_currency.upper()]

    def convert(
        self,
        amounts: AmountSet,
        from_currency: str,
        to_currency: str,
    ) -> ConvertedAmounts:
        """
        Convert subtotal, tax and total between two currencies.

        Args:
            amounts: Amounts denominated in from_currency
            from_currency: Source currency code
            to_currency: Target currency code

        Returns:
            ConvertedAmounts; exchange_rate and original_currency are only set
            when the currencies differ

        Raises:
            UnknownCurrency: If either code is missing from the table
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        multiplier = self.exchange_rate(from_currency, to_currency)

        if from_currency == to_currency:
            return ConvertedAmounts(
                subtotal=amounts.subtotal,
                tax_amount=amounts.tax_amount,
                total_amount=amounts.total_amount,
            )

        def scale(value: Decimal) -> Decimal:
            return (value * multiplier).quantize(CONVERSION_SCALE, rounding=ROUND_HALF_UP)

        converted = ConvertedAmounts(
            subtotal=scale(amounts.subtotal),
            tax_amount=scale(amounts.tax_amount),
            total_amount=scale(amounts.total_amount),
            exchange_rate=multiplier,
            original_currency=from_currency,
        )
        logger.debug(
            f"Converted {amounts.total_amount} {from_currency} -> "
            f"{converted.total_amount} {to_currency} @ {multiplier}"
        )
        return converted

    def update_rates(self, new_rates: Mapping[str, Decimal]) -> None:
        """Replace the rate table wholesale. The base currency stays at 1."""
        table = self._normalize(new_rates)
        with self._lock:
            self._rates = table
        logger.info(f"Exchange rates updated: {len(table)} currencies")
