"""
Pricing service for fetching market pairs and the native currency price.

This service handles the public market-data lookups: DEX pair search from
DexScreener and the XRP/USD price from CoinGecko.
"""

import asyncio
import logging
import aiohttp
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


def _issuer_part(address: Optional[str]) -> Optional[str]:
    """DexScreener lists XRPL tokens as ``<currency>.<issuer>``; keep the issuer."""
    if not address:
        return address
    return address.rsplit(".", 1)[-1]


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class PricingService:
    """Service for fetching cryptocurrency and token prices."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        dexscreener_base_url: str = "https://api.dexscreener.com",
        coingecko_base_url: str = "https://api.coingecko.com/api/v3",
        native_coingecko_id: str = "ripple",
        timeout: float = 30,
    ):
        """Initialize with optional aiohttp session."""
        self.session = session
        self._own_session = session is None
        self.dexscreener_base_url = dexscreener_base_url.rstrip("/")
        self.coingecko_base_url = coingecko_base_url.rstrip("/")
        self.native_coingecko_id = native_coingecko_id
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self):
        """Async context manager entry."""
        if self._own_session:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._own_session and self.session:
            await self.session.close()
            self.session = None

    async def _get_json(self, url: str, params: Dict[str, str]) -> Any:
        if not self.session:
            raise UpstreamUnavailableError("Pricing session is not open")
        try:
            async with self.session.get(url, params=params) as response:
                if response.status != 200:
                    raise UpstreamUnavailableError(
                        f"{url} answered with HTTP {response.status}"
                    )
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UpstreamUnavailableError(f"Error fetching {url}: {e}") from e

    async def search_pairs(self, query: str) -> List[Dict[str, Any]]:
        """
        Search DEX pairs matching a symbol or address.

        Returns:
            Pairs as ``{chain, baseSymbol, quoteSymbol, priceUsd, priceNative,
            baseAddress, quoteAddress}``. ``priceUsd`` is the USD price of the
            base token and ``priceNative`` its price in quote units, each a
            Decimal or None
        """
        data = await self._get_json(
            f"{self.dexscreener_base_url}/latest/dex/search", {"q": query}
        )

        pairs = []
        for pair in (data or {}).get("pairs") or []:
            base = pair.get("baseToken") or {}
            quote = pair.get("quoteToken") or {}
            pairs.append(
                {
                    "chain": pair.get("chainId"),
                    "baseSymbol": base.get("symbol"),
                    "quoteSymbol": quote.get("symbol"),
                    "baseAddress": _issuer_part(base.get("address")),
                    "quoteAddress": _issuer_part(quote.get("address")),
                    "priceUsd": _to_decimal(pair.get("priceUsd")),
                    "priceNative": _to_decimal(pair.get("priceNative")),
                }
            )
        return pairs

    async def get_native_price(self) -> Optional[Decimal]:
        """Get current USD price of the native currency, or None if not quoted."""
        data = await self._get_json(
            f"{self.coingecko_base_url}/simple/price",
            {"ids": self.native_coingecko_id, "vs_currencies": "usd"},
        )
        price = _to_decimal((data or {}).get(self.native_coingecko_id, {}).get("usd"))
        if price is None or price <= 0:
            logger.warning("No native price quoted for %s", self.native_coingecko_id)
            return None
        return price
