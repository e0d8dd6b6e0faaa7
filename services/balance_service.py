"""
Balance service for fetching the holdings of a single address.

Native balance, trust line balances and owned NFTs are fetched concurrently
and independently. A failing source leaves only its own part empty.
"""

import asyncio
import json
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from currency_codes import decode_currency
from models.portfolio_models import (
    Address,
    AddressHoldings,
    CollectionGroup,
    NftHolding,
    TokenBalance,
    NATIVE_CHAIN,
)

logger = logging.getLogger(__name__)

IPFS_GATEWAY = "https://cloudflare-ipfs.com/ipfs/"


def _image_ref(nft: Dict, metadata: Dict) -> Optional[str]:
    image = metadata.get("image") or nft.get("image")
    if image and image.startswith("ipfs://"):
        return IPFS_GATEWAY + image[len("ipfs://"):]
    return image


def parse_nft(nft: Dict, owner: str) -> Optional[NftHolding]:
    """Build an NftHolding from an indexer record; None if it has no id or issuer."""
    token_id = nft.get("nftokenID") or nft.get("nfTokenID") or nft.get("tokenId")
    issuer = nft.get("issuer")
    if not token_id or not issuer:
        return None

    metadata = nft.get("metadata") or nft.get("jsonMeta") or {}
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except ValueError:
            metadata = {}
    if not isinstance(metadata, dict):
        metadata = {}

    try:
        taxon = int(nft.get("nftokenTaxon", nft.get("taxon", 0)) or 0)
    except (TypeError, ValueError):
        taxon = 0

    return NftHolding(
        token_id=token_id,
        issuer=issuer,
        taxon=taxon,
        image_ref=_image_ref(nft, metadata),
        name=metadata.get("name") or nft.get("name"),
        owner=nft.get("owner") or owner,
    )


def group_by_collection(nfts: List[NftHolding]) -> List[CollectionGroup]:
    """
    Group holdings by ``(issuer, taxon)`` preserving first-seen order.

    The collection takes the name of its first named holding.
    """
    groups: Dict[tuple, CollectionGroup] = {}
    for nft in nfts:
        group = groups.get(nft.collection_key)
        if group is None:
            group = CollectionGroup(issuer=nft.issuer, taxon=nft.taxon, count=0)
            groups[nft.collection_key] = group
        group.count += 1
        group.nft_ids.append(nft.token_id)
        if group.name is None and nft.name:
            group.name = nft.name
    return list(groups.values())


class BalanceService:
    """Fetches balances and NFTs for XRPL addresses."""

    chain = NATIVE_CHAIN

    def __init__(self, ledger, indexer=None):
        """
        Args:
            ledger: async gateway with ``get_balance`` and ``get_trust_lines``
            indexer: blocking gateway with ``get_nfts_by_owner``; optional
        """
        self.ledger = ledger
        self.indexer = indexer

    async def fetch_holdings(self, address: Address) -> AddressHoldings:
        """Holdings of one address. Never raises for upstream failures."""
        native, lines, nfts = await asyncio.gather(
            self._native_balance(address.value),
            self._trust_lines(address.value),
            self._nfts(address.value),
        )

        tokens = []
        for line in lines:
            currency = line.get("currency")
            if not currency:
                continue
            tokens.append(
                TokenBalance(
                    chain=address.chain,
                    symbol=decode_currency(currency),
                    issuer=line.get("issuer"),
                    raw_balance=Decimal(str(line.get("balance", "0"))),
                    currency=currency,
                    holder=address.value,
                )
            )

        holdings = AddressHoldings(
            address=address, native_balance=native, tokens=tokens, nfts=nfts
        )
        logger.info(
            "%s: native=%s, %d trust lines, %d NFTs",
            address,
            native,
            len(tokens),
            len(nfts),
        )
        return holdings

    async def _native_balance(self, address: str) -> Optional[Decimal]:
        try:
            return await self.ledger.get_balance(address)
        except Exception as e:
            logger.warning("Native balance unavailable for %s: %s", address, e)
            return None

    async def _trust_lines(self, address: str) -> List[Dict]:
        try:
            return await self.ledger.get_trust_lines(address) or []
        except Exception as e:
            logger.warning("Trust lines unavailable for %s: %s", address, e)
            return []

    async def _nfts(self, address: str) -> List[NftHolding]:
        if self.indexer is None:
            return []
        try:
            raw = await asyncio.to_thread(self.indexer.get_nfts_by_owner, address)
        except Exception as e:
            logger.warning("NFT lookup unavailable for %s: %s", address, e)
            return []

        holdings = []
        for nft in raw or []:
            holding = parse_nft(nft, address)
            if holding is not None:
                holdings.append(holding)
        return holdings
