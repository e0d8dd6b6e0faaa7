#!/usr/bin/env python3
"""
Bithomp API Adapter
Ledger-indexing adapter for XRPL NFT ownership and collection market data.
Documentation: https://docs.bithomp.com/
"""

import os
from typing import Dict, Optional, Any, List

from .base import BaseAdapter


class BithompAdapter(BaseAdapter):
    """Adapter for the Bithomp v2 API: NFTs by owner, floor prices, sales and offers."""

    def __init__(
        self,
        api_key: str = None,
        base_url: str = "https://bithomp.com/api/v2",
        timeout: float = 30,
        max_pages: int = 10,
    ):
        """
        Initialize Bithomp adapter.

        Args:
            api_key: Bithomp API token (can also be set via BITHOMP_API_KEY env var)
            base_url: API root, overridable for testnet or a proxy
            timeout: Request timeout in seconds
            max_pages: Upper bound on pages followed when listing NFTs by owner
        """
        self.api_key = api_key or os.getenv("BITHOMP_API_KEY")
        self.max_pages = max_pages

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-bithomp-token"] = self.api_key

        super().__init__(base_url=base_url, headers=headers, timeout=timeout)

    def validate_response(self, response: Any) -> bool:
        """Bithomp answers with a JSON object; errors carry an 'error' key."""
        return isinstance(response, dict) and "error" not in response

    # === NFT ownership ===

    def get_nfts_by_owner(self, owner: str, limit: int = 100) -> List[Dict]:
        """
        Get every NFT currently owned by an address.

        Follows the pagination marker up to ``max_pages`` pages.

        Raises:
            UpstreamUnavailableError: if a page could not be fetched
        """
        nfts: List[Dict] = []
        marker: Optional[str] = None

        for _ in range(self.max_pages):
            params = {"owner": owner, "limit": limit, "metadata": "true"}
            if marker:
                params["marker"] = marker

            response = self.get_required("nfts", params=params)
            nfts.extend(response.get("nfts") or response.get("result") or [])

            marker = response.get("marker")
            if not marker:
                break

        return nfts

    # === Collection market data ===

    def get_collection_floor(self, issuer: str, taxon: int) -> List[Dict]:
        """
        Get the floor price entries of a collection.

        Each entry may hold ``open`` and ``private`` market sub-entries with an
        ``amount`` in drops or as a ``{currency, issuer, value}`` object.
        """
        response = self.get_required(
            f"nft-collection/{issuer}:{taxon}",
            params={"floorPrice": "true", "statistics": "true"},
        )
        collection = response.get("collection") or {}
        return collection.get("floorPrices") or []

    def get_recent_sales(self, issuer: str, taxon: int, limit: int = 20) -> List[Dict]:
        """Get the most recent sales of a collection, newest first."""
        response = self.get_required(
            "nft-sales",
            params={"issuer": issuer, "taxon": taxon, "limit": limit},
        )
        return response.get("sales") or []

    def get_open_offers(self, issuer: str, taxon: int, limit: int = 20) -> List[Dict]:
        """Get active offers on NFTs of a collection."""
        response = self.get_required(
            "nft-offers",
            params={
                "issuer": issuer,
                "taxon": taxon,
                "limit": limit,
                "list": "sell",
            },
        )
        return response.get("nftOffers") or response.get("offers") or []
