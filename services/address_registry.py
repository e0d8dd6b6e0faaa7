"""
Address registry for collecting every wallet a user controls.

Addresses come from the session's primary wallet, the multi-chain wallet
profile and externally linked wallets. A source that fails or is missing adds
nothing; it never aborts the collection.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple

from models.portfolio_models import Address, NATIVE_CHAIN
from models.lifecycle_models import SessionContext

logger = logging.getLogger(__name__)

# Wallet profile field -> chain
PROFILE_FIELDS = {
    "xrpAddress": "xrpl",
    "ethAddress": "ethereum",
    "solAddress": "solana",
    "btcAddress": "bitcoin",
}


def merge_addresses(*groups: Iterable[Tuple[str, Optional[str]]]) -> List[Address]:
    """Merge ``(chain, value)`` groups into a deduplicated list, first seen first."""
    seen = set()
    merged = []
    for group in groups:
        for chain, value in group:
            if not chain or not value or not str(value).strip():
                continue
            address = Address.normalized(chain, value)
            if address not in seen:
                seen.add(address)
                merged.append(address)
    return merged


def profile_entries(profile: Optional[Dict]) -> List[Tuple[str, Optional[str]]]:
    if not profile:
        return []
    return [(chain, profile.get(field)) for field, chain in PROFILE_FIELDS.items()]


def linked_entries(wallets: Optional[Iterable[Dict]]) -> List[Tuple[str, Optional[str]]]:
    entries = []
    for wallet in wallets or []:
        entries.append((wallet.get("chain"), wallet.get("address")))
    return entries


class AddressRegistry:
    """Collects the addresses of one user from the session and two wallet stores."""

    def __init__(self, linked_wallet_store=None, wallet_profile_store=None):
        """
        Args:
            linked_wallet_store: async ``get_linked_wallets(handle) -> [{chain, address}]``
            wallet_profile_store: async ``get_wallet_profile(handle) -> {xrpAddress, ...}``
        """
        self.linked_wallet_store = linked_wallet_store
        self.wallet_profile_store = wallet_profile_store

    async def resolve(self, session: SessionContext) -> List[Address]:
        """All addresses of the session's user, primary wallet first."""
        linked, profile = await asyncio.gather(
            self._fetch_linked(session.user_handle),
            self._fetch_profile(session.user_handle),
        )

        addresses = merge_addresses(
            [(NATIVE_CHAIN, session.primary_address)],
            linked_entries(session.linked_wallets),
            profile_entries(profile),
            linked_entries(linked),
        )
        logger.info("Resolved %d addresses for %s", len(addresses), session.user_handle)
        return addresses

    async def _fetch_linked(self, handle: str) -> List[Dict]:
        if self.linked_wallet_store is None:
            return []
        try:
            return await self.linked_wallet_store.get_linked_wallets(handle) or []
        except Exception as e:
            logger.warning("Linked wallet lookup failed for %s: %s", handle, e)
            return []

    async def _fetch_profile(self, handle: str) -> Optional[Dict]:
        if self.wallet_profile_store is None:
            return None
        try:
            return await self.wallet_profile_store.get_wallet_profile(handle)
        except Exception as e:
            logger.warning("Wallet profile lookup failed for %s: %s", handle, e)
            return None
