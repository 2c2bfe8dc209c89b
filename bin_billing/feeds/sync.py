"""
Push a freshly fetched rate table into a converter.
"""
from __future__ import annotations
from decimal import Decimal
from typing import Optional
from loguru import logger

from ..currency import CurrencyConverter
from .client import RateFeedClient
from .parser import parse_rate_table


def sync_rates(
    converter: CurrencyConverter,
    client: Optional[RateFeedClient] = None,
    url: Optional[str] = None,
    keep_missing: bool = True,
) -> dict[str, Decimal]:
    """
    Fetch, parse and apply the feed's rate table.

    Args:
        converter: Converter whose table is replaced
        client: Feed client (a default one is created and closed if omitted)
        url: Override the configured feed URL
        keep_missing: Carry over currencies the feed does not quote

    Returns:
        The table now held by the converter
    """
    own_client = client is None
    client = client or RateFeedClient()
    try:
        body = client.fetch(url)
    finally:
        if own_client:
            client.close()

    fetched = parse_rate_table(body, base_currency=converter.base_currency)
    if keep_missing:
        table = converter.rates
        table.update(fetched)
    else:
        table = fetched

    converter.update_rates(table)
    logger.info(f"Synced {len(fetched)} rates from feed")
    return converter.rates
