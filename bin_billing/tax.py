"""
Tax computation by region.

Every service category in a region shares the region's rate; the category
is carried through so rules can be split per category later.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Iterable, Optional
from loguru import logger
from pydantic import BaseModel

from .errors import UnknownRegion
from .models import money


class TaxRule(BaseModel):
    region: str
    type: str       # SST, GST or VAT
    rate: Decimal


DEFAULT_TAX_RULES = [
    TaxRule(region="MY", type="SST", rate=Decimal("0.06")),
    TaxRule(region="SG", type="GST", rate=Decimal("0.07")),
    TaxRule(region="UK", type="VAT", rate=Decimal("0.20")),
]


class TaxCalculator:
    def __init__(self, rules: Optional[Iterable[TaxRule]] = None):
        self._rules = {r.region.upper(): r for r in (rules or DEFAULT_TAX_RULES)}

    @property
    def regions(self) -> list[str]:
        return sorted(self._rules)

    def rule(self, region: str) -> TaxRule:
        rule = self._rules.get(region.upper())
        if rule is None:
            logger.bind(kind="configuration").error(f"No tax rule for region {region}")
            raise UnknownRegion(region)
        return rule

    def calculate_tax(self, subtotal: Decimal, service_category: str, region: str) -> Decimal:
        """
        Compute the tax owed on a subtotal.

        Args:
            subtotal: Pre-tax amount
            service_category: e.g. 'waste_collection' (same rate for all today)
            region: Tax region code, e.g. 'MY'

        Returns:
            Tax amount rounded to 2 dp

        Raises:
            UnknownRegion: If the region has no rule
        """
        rule = self.rule(region)
        tax = money(Decimal(str(subtotal)) * rule.rate)
        logger.debug(f"Tax {rule.type} {rule.rate} on {subtotal} ({service_category}, {region}) = {tax}")
        return tax
