"""
Tests for currency conversion.
"""
import threading
from decimal import Decimal
import pytest

from bin_billing.currency import CurrencyConverter
from bin_billing.errors import UnknownCurrency
from bin_billing.models import AmountSet, money


@pytest.fixture
def converter(config):
    return CurrencyConverter.from_config(config)


def amounts(subtotal: str, tax: str) -> AmountSet:
    s, t = Decimal(subtotal), Decimal(tax)
    return AmountSet(subtotal=s, tax_amount=t, total_amount=s + t)


class TestConvert:
    """Tests for CurrencyConverter.convert."""

    def test_same_currency_omits_provenance(self, converter):
        result = converter.convert(amounts("320.00", "19.20"), "MYR", "MYR")
        assert result.total_amount == Decimal("339.20")
        assert result.exchange_rate is None
        assert result.original_currency is None

    def test_converts_every_amount(self, converter):
        result = converter.convert(amounts("100.00", "6.00"), "MYR", "SGD")
        assert money(result.subtotal) == Decimal("28.41")
        assert money(result.tax_amount) == Decimal("1.70")
        assert money(result.total_amount) == Decimal("30.11")
        assert result.exchange_rate == Decimal("0.2841")
        assert result.original_currency == "MYR"

    def test_cross_rate_uses_ratio(self, converter):
        result = converter.convert(amounts("100.00", "0"), "SGD", "USD")
        expected = Decimal("0.2114") / Decimal("0.2841")
        assert result.exchange_rate == expected

    def test_codes_are_case_insensitive(self, converter):
        result = converter.convert(amounts("10", "0"), "myr", "usd")
        assert result.original_currency == "MYR"

    def test_unknown_target(self, converter):
        with pytest.raises(UnknownCurrency):
            converter.convert(amounts("10", "0"), "MYR", "JPY")

    def test_unknown_source(self, converter):
        with pytest.raises(UnknownCurrency):
            converter.convert(amounts("10", "0"), "XXX", "MYR")


class TestRoundTrip:
    """Converting there and back recovers the original within a cent."""

    @pytest.mark.parametrize("value", ["0.01", "1.00", "339.20", "1961.00", "98765.43"])
    @pytest.mark.parametrize("other", ["SGD", "USD", "EUR", "GBP"])
    def test_round_trip_from_base(self, converter, value, other):
        original = amounts(value, "0")
        there = converter.convert(original, "MYR", other)
        back = converter.convert(there, other, "MYR")
        assert abs(money(back.subtotal) - Decimal(value)) <= Decimal("0.01")

    def test_round_trip_between_foreign_currencies(self, converter):
        original = amounts("1234.56", "74.07")
        there = converter.convert(original, "GBP", "SGD")
        back = converter.convert(there, "SGD", "GBP")
        assert abs(money(back.total_amount) - original.total_amount) <= Decimal("0.01")

    def test_repeated_round_trips_do_not_drift(self, converter):
        current = amounts("500.00", "30.00")
        for _ in range(50):
            current = converter.convert(current, "MYR", "EUR")
            current = converter.convert(current, "EUR", "MYR")
        assert money(current.total_amount) == Decimal("530.00")


class TestUpdateRates:
    """Tests for replacing the rate table."""

    def test_replaces_table_wholesale(self, converter):
        converter.update_rates({"USD": Decimal("0.25")})
        assert converter.rates == {"USD": Decimal("0.25"), "MYR": Decimal("1")}
        assert not converter.supports("SGD")

    def test_base_currency_pinned_to_one(self, converter):
        converter.update_rates({"MYR": Decimal("3"), "USD": Decimal("0.2")})
        assert converter.rate("MYR") == Decimal("1")

    def test_rejects_non_positive_rates(self, converter):
        with pytest.raises(ValueError):
            converter.update_rates({"USD": Decimal("0")})
        # previous table untouched
        assert converter.supports("SGD")

    def test_cross_rate_never_mixes_tables(self):
        """Every cross rate read during updates comes from one whole table."""
        first = {"USD": Decimal("0.2"), "SGD": Decimal("0.4")}
        second = {"USD": Decimal("0.4"), "SGD": Decimal("0.2")}
        converter = CurrencyConverter(base_currency="MYR", rates=first)
        stop = threading.Event()

        def flip():
            while not stop.is_set():
                converter.update_rates(second)
                converter.update_rates(first)

        flipper = threading.Thread(target=flip)
        flipper.start()
        try:
            seen = {converter.exchange_rate("USD", "SGD") for _ in range(5000)}
        finally:
            stop.set()
            flipper.join()

        assert seen <= {Decimal("2"), Decimal("0.5")}
