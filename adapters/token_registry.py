#!/usr/bin/env python3
"""
Token Registry Adapter
Adapter for the platform's own XRPL token search endpoint, used as the last
price source after the public market data.
"""

import os
from typing import Dict, Any, List

from .base import BaseAdapter


class TokenRegistryAdapter(BaseAdapter):
    """Adapter for the internal token registry (``/api/xrpl/tokens/search``)."""

    def __init__(self, base_url: str = None, timeout: float = 30):
        super().__init__(
            base_url=base_url
            or os.getenv("TOKEN_REGISTRY_URL", "http://localhost:5000"),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    def validate_response(self, response: Any) -> bool:
        return isinstance(response, dict) and response.get("success") is not False

    def lookup(self, symbol: str) -> List[Dict]:
        """
        Search registered tokens by symbol.

        Returns:
            List of ``{symbol, issuer, priceUsd}`` records; ``priceUsd`` is None
            when the registry has no stored price

        Raises:
            UpstreamUnavailableError: if the registry did not answer
        """
        response = self.get_required("api/xrpl/tokens/search", params={"q": symbol})

        tokens = []
        for token in response.get("tokens") or []:
            tokens.append(
                {
                    "symbol": token.get("symbol"),
                    "issuer": token.get("issuer"),
                    "priceUsd": token.get("price_usd", token.get("priceUsd")),
                }
            )
        return tokens
