"""
Parser for XML exchange-rate documents.

Understands the ECB reference-rate layout, where every rate is quoted
against one feed currency:

    <Cube time="2026-10-16">
        <Cube currency="USD" rate="1.0842"/>
        ...
    </Cube>

Rates are rebased so the configured base currency maps to 1.
"""
from __future__ import annotations
import re
from decimal import Decimal, InvalidOperation
from typing import Optional
from lxml import etree
from loguru import logger

from .client import RateFeedResponseError

RATE_PRECISION = Decimal("0.00000001")


def sanitize_xml(xml_text: str) -> str:
    """
    Remove characters XML 1.0 does not allow and escape stray ampersands.
    """
    if not xml_text:
        return xml_text
    xml_text = xml_text.replace("\x00", "")
    xml_text = re.sub(r"[\x01-\x08\x0B\x0C\x0E-\x1F]", "", xml_text)
    xml_text = re.sub(r"&(?!(amp|lt|gt|apos|quot|#\d+|#x[\da-fA-F]+);)", "&amp;", xml_text)
    return xml_text


def parse_rate(s: str | None) -> Optional[Decimal]:
    """
    Parse a rate string to Decimal.

    Returns None for empty, malformed or non-positive values.
    """
    if not s:
        return None
    s = str(s).strip().replace(",", "")
    if not s:
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        logger.warning(f"Could not parse rate: {s}")
        return None
    if not value.is_finite() or value <= 0:
        logger.warning(f"Ignoring non-positive rate: {s}")
        return None
    return value


def parse_rate_table(
    xml_text: str,
    base_currency: str = "MYR",
    feed_currency: str = "EUR",
) -> dict[str, Decimal]:
    """
    Parse a rate document into a table relative to base_currency.

    Args:
        xml_text: Raw feed body
        base_currency: Currency the returned table is expressed against
        feed_currency: Currency the feed quotes against (implicit rate 1)

    Returns:
        Mapping of currency code -> multiplier from base_currency

    Raises:
        RateFeedResponseError: If the body is not XML or lacks the base currency
    """
    try:
        root = etree.fromstring(sanitize_xml(xml_text).encode("utf-8"))
    except etree.XMLSyntaxError as e:
        raise RateFeedResponseError(f"Invalid XML from rate feed: {e}") from e

    quoted: dict[str, Decimal] = {feed_currency.upper(): Decimal("1")}
    for elem in root.iter():
        if not isinstance(elem.tag, str) or etree.QName(elem).localname != "Cube":
            continue
        code = elem.get("currency")
        rate = parse_rate(elem.get("rate"))
        if code and rate is not None:
            quoted[code.strip().upper()] = rate

    base = base_currency.upper()
    if base not in quoted:
        raise RateFeedResponseError(f"Rate feed has no quote for base currency {base}")

    base_quote = quoted[base]
    table = {
        code: (rate / base_quote).quantize(RATE_PRECISION)
        for code, rate in quoted.items()
    }
    table[base] = Decimal("1")
    logger.debug(f"Parsed {len(table)} rates against {base}")
    return table
