"""
NFT collection floor resolver.

Collection floor statistics come first. When the indexer reports no positive
floor, the cheapest recent sale and then the cheapest open sell offer stand in
for it. A collection with none of these is reported as not available; no
default price is ever substituted.
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional

from models.portfolio_models import NATIVE_SYMBOL
from services.cascade import CascadeResult, run_cascade

logger = logging.getLogger(__name__)

DROPS_PER_XRP = Decimal("1000000")
SALES_PAGE_SIZE = 20
OFFERS_PAGE_SIZE = 20


def normalize_amount(amount: Any) -> Optional[Decimal]:
    """
    Convert an indexer amount into native units.

    Integers and integer strings are drops. ``{currency, value}`` objects are
    already in whole units and only count when denominated in the native
    currency. Anything else yields None.
    """
    if amount is None or isinstance(amount, bool):
        return None

    if isinstance(amount, dict):
        if amount.get("currency") != NATIVE_SYMBOL or amount.get("issuer"):
            return None
        try:
            return Decimal(str(amount.get("value")))
        except (InvalidOperation, ValueError):
            return None

    if isinstance(amount, (int, str)):
        try:
            drops = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError):
            return None
        return drops / DROPS_PER_XRP

    return None


def _min_positive(values: Iterable[Optional[Decimal]]) -> Optional[Decimal]:
    positives = [v for v in values if v is not None and v > 0]
    return min(positives) if positives else None


def floor_from_entries(entries: List[dict]) -> Optional[Decimal]:
    """Lowest positive price across the open and private market of every entry."""
    prices = []
    for entry in entries or []:
        for market in ("open", "private"):
            section = entry.get(market) or {}
            prices.append(normalize_amount(section.get("amount")))
    return _min_positive(prices)


def sale_price(sale: dict) -> Optional[Decimal]:
    if "amount" in sale:
        return normalize_amount(sale.get("amount"))
    # Some indexer responses only carry a converted native price.
    try:
        return Decimal(str(sale["price"])) if sale.get("price") is not None else None
    except (InvalidOperation, ValueError):
        return None


def is_sell_offer(offer: dict) -> bool:
    flags = offer.get("flags")
    if isinstance(flags, dict) and "sellToken" in flags:
        return bool(flags["sellToken"])
    return True


class FloorResolver:
    """Resolves collection floor prices through the indexing gateway."""

    def __init__(self, indexer):
        """
        Args:
            indexer: blocking gateway with ``get_collection_floor``,
                ``get_recent_sales`` and ``get_open_offers``
        """
        self.indexer = indexer

    async def resolve(self, issuer: str, taxon: int) -> CascadeResult:
        """Floor price of the ``issuer``/``taxon`` collection in native units."""

        async def collection_stats():
            entries = await asyncio.to_thread(
                self.indexer.get_collection_floor, issuer, taxon
            )
            return floor_from_entries(entries)

        async def recent_sales():
            sales = await asyncio.to_thread(
                self.indexer.get_recent_sales, issuer, taxon, SALES_PAGE_SIZE
            )
            return _min_positive(sale_price(s) for s in sales)

        async def open_offers():
            offers = await asyncio.to_thread(
                self.indexer.get_open_offers, issuer, taxon, OFFERS_PAGE_SIZE
            )
            return _min_positive(
                normalize_amount(o.get("amount")) for o in offers if is_sell_offer(o)
            )

        result = await run_cascade(
            [
                ("collection_floor", collection_stats),
                ("recent_sales", recent_sales),
                ("open_offers", open_offers),
            ],
            label=f"floor {issuer}:{taxon}",
        )
        if not result.found:
            logger.info("No marketplace floor for %s:%s, marking not available", issuer, taxon)
        return result
