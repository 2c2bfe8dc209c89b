"""
Exchange-rate feed adapter.

Pulls a published rate table over HTTP, parses it and pushes it into a
CurrencyConverter. The invoice engine never fetches rates itself.
"""

from .client import RateFeedClient, RateFeedConnectionError, RateFeedResponseError
from .parser import parse_rate, parse_rate_table, sanitize_xml
from .sync import sync_rates

__all__ = [
    "RateFeedClient",
    "RateFeedConnectionError",
    "RateFeedResponseError",
    "parse_rate",
    "parse_rate_table",
    "sanitize_xml",
    "sync_rates",
]
