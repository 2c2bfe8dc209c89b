"""
Tests for regional tax computation.
"""
from decimal import Decimal
import pytest

from bin_billing.errors import UnknownRegion, ConfigurationError
from bin_billing.tax import TaxCalculator, TaxRule


class TestTaxCalculator:
    """Tests for TaxCalculator.calculate_tax."""

    @pytest.mark.parametrize("region, expected", [
        ("MY", Decimal("19.20")),
        ("SG", Decimal("22.40")),
        ("UK", Decimal("64.00")),
    ])
    def test_default_rates(self, region, expected):
        assert TaxCalculator().calculate_tax(Decimal("320.00"), "waste_collection", region) == expected

    def test_category_does_not_change_rate(self):
        calc = TaxCalculator()
        assert calc.calculate_tax(Decimal("100"), "recycling", "MY") == \
            calc.calculate_tax(Decimal("100"), "waste_collection", "MY")

    def test_rounds_half_up_to_cents(self):
        # 0.25 * 0.06 = 0.015
        assert TaxCalculator().calculate_tax(Decimal("0.25"), "waste_collection", "MY") == Decimal("0.02")

    def test_unknown_region(self):
        with pytest.raises(UnknownRegion) as exc:
            TaxCalculator().calculate_tax(Decimal("100"), "waste_collection", "AU")
        assert isinstance(exc.value, ConfigurationError)

    def test_custom_rules(self):
        calc = TaxCalculator([TaxRule(region="AU", type="GST", rate=Decimal("0.10"))])
        assert calc.calculate_tax(Decimal("55.55"), "waste_collection", "au") == Decimal("5.56")
        assert calc.rule("AU").type == "GST"
        assert calc.regions == ["AU"]
