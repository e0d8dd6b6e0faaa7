"""
Token price resolver.

Finds a USD price for an issued token by trying the DEX market by symbol, then
by issuer address, then the internal token registry.
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from services.cascade import CascadeResult, run_cascade

logger = logging.getLogger(__name__)


def _positive_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return price if price > 0 else None


def price_from_pairs(
    pairs: List[Dict], chain: str, base_key: str, quote_key: str, wanted: str
) -> Optional[Decimal]:
    """
    USD price of the token identified by ``wanted`` among market pairs.

    ``priceUsd`` prices the base token, so base-side matches win. A token
    found only on the quote side is priced as ``priceUsd / priceNative``.
    """
    pairs = [p for p in pairs if p.get("chain") == chain]
    for pair in pairs:
        if pair.get(base_key) == wanted:
            return _positive_decimal(pair.get("priceUsd"))
    for pair in pairs:
        if pair.get(quote_key) == wanted:
            base_usd = _positive_decimal(pair.get("priceUsd"))
            base_in_quote = _positive_decimal(pair.get("priceNative"))
            if base_usd and base_in_quote:
                return base_usd / base_in_quote
            return None
    return None


class TokenPriceResolver:
    """Resolves token prices against a market-data gateway and the token registry."""

    def __init__(self, market, registry=None, chain: str = "xrpl"):
        """
        Args:
            market: async gateway with ``search_pairs(query)`` and ``get_native_price()``
            registry: blocking gateway with ``lookup(symbol)``; optional
            chain: market chain id the pairs must belong to
        """
        self.market = market
        self.registry = registry
        self.chain = chain

    async def resolve(
        self, symbol: str, issuer: Optional[str], chain: Optional[str] = None
    ) -> CascadeResult:
        """USD price of ``symbol`` issued by ``issuer``; empty result when unknown."""
        chain = chain or self.chain

        async def by_symbol():
            pairs = await self.market.search_pairs(symbol)
            return price_from_pairs(pairs, chain, "baseSymbol", "quoteSymbol", symbol)

        async def by_issuer():
            pairs = await self.market.search_pairs(issuer)
            return price_from_pairs(pairs, chain, "baseAddress", "quoteAddress", issuer)

        async def from_registry():
            tokens = await asyncio.to_thread(self.registry.lookup, symbol)
            for token in tokens:
                if token.get("symbol") == symbol and token.get("issuer") == issuer:
                    return _positive_decimal(token.get("priceUsd"))
            return None

        strategies = [("market_symbol", by_symbol)]
        if issuer:
            strategies.append(("market_issuer", by_issuer))
            if self.registry is not None:
                strategies.append(("token_registry", from_registry))

        result = await run_cascade(strategies, label=f"price {symbol}")
        if not result.found:
            logger.info("No price data found for %s (%s)", symbol, issuer)
        return result

    async def resolve_native(self) -> Optional[Decimal]:
        """USD price of the native currency, or None when the source fails."""
        result = await run_cascade(
            [("native_price", self.market.get_native_price)], label="native price"
        )
        return result.value
