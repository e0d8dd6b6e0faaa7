"""
Data models for portfolio valuation.

This module contains the core data structures used throughout the valuation
engine. Amounts are Decimals; a missing price or floor is ``None`` together
with an explicit status, never a zero.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

NATIVE_CHAIN = "xrpl"
NATIVE_SYMBOL = "XRP"

EVM_CHAINS = {
    "ethereum",
    "base",
    "polygon",
    "bsc",
    "arbitrum",
    "optimism",
    "avalanche",
}

CHAIN_ALIASES = {
    "xrp": "xrpl",
    "ripple": "xrpl",
    "eth": "ethereum",
    "sol": "solana",
    "btc": "bitcoin",
    "matic": "polygon",
}


def normalize_chain(chain: str) -> str:
    """Lower-case a chain name and fold common aliases."""
    key = (chain or "").strip().lower()
    return CHAIN_ALIASES.get(key, key)


class PriceStatus(str, Enum):
    PRICED = "priced"
    UNKNOWN = "unknown"


class FloorStatus(str, Enum):
    AVAILABLE = "available"
    NOT_AVAILABLE = "not_available"


@dataclass(frozen=True)
class Address:
    """An address on one chain. Build through ``normalized`` to apply chain casing rules."""

    chain: str
    value: str

    @classmethod
    def normalized(cls, chain: str, value: str) -> "Address":
        chain = normalize_chain(chain)
        value = (value or "").strip()
        # Hex-style addresses are case-insensitive; base58 and XRPL ones are not.
        if chain in EVM_CHAINS or value[:2].lower() == "0x":
            value = value.lower()
        return cls(chain=chain, value=value)

    def __str__(self) -> str:
        return f"{self.chain}:{self.value}"


@dataclass
class TokenBalance:
    """A fungible balance held by one address, optionally priced in USD."""

    chain: str
    symbol: str
    issuer: Optional[str]
    raw_balance: Decimal
    currency: Optional[str] = None  # on-ledger code, may be hex encoded
    price_usd: Optional[Decimal] = None
    price_source: Optional[str] = None
    holder: Optional[str] = None

    def __post_init__(self):
        if self.currency is None:
            self.currency = self.symbol

    @property
    def is_native(self) -> bool:
        return self.issuer is None

    @property
    def price_status(self) -> PriceStatus:
        if self.price_usd is None:
            return PriceStatus.UNKNOWN
        return PriceStatus.PRICED

    @property
    def value_usd(self) -> Optional[Decimal]:
        """USD value, or None when the token could not be priced."""
        if self.price_usd is None:
            return None
        return self.raw_balance * self.price_usd

    @property
    def price_key(self) -> Tuple[str, str, Optional[str]]:
        return (self.chain, self.symbol, self.issuer)

    def to_dict(self) -> Dict[str, Any]:
        value = self.value_usd
        return {
            "chain": self.chain,
            "currency": self.symbol,
            "raw_currency": self.currency,
            "issuer": self.issuer,
            "holder": self.holder,
            "balance": str(self.raw_balance),
            "price_usd": str(self.price_usd) if self.price_usd is not None else None,
            "price_status": self.price_status.value,
            "price_source": self.price_source,
            "value_usd": str(value) if value is not None else None,
        }


@dataclass
class NftHolding:
    """A single NFT owned by one address."""

    token_id: str
    issuer: str
    taxon: int
    image_ref: Optional[str] = None
    name: Optional[str] = None
    owner: Optional[str] = None

    @property
    def collection_key(self) -> Tuple[str, int]:
        return (self.issuer, self.taxon)


@dataclass
class AddressHoldings:
    """Everything the balance aggregator found for one address."""

    address: Address
    native_balance: Optional[Decimal] = None
    tokens: List[TokenBalance] = field(default_factory=list)
    nfts: List[NftHolding] = field(default_factory=list)

    @classmethod
    def empty(cls, address: Address) -> "AddressHoldings":
        return cls(address=address)


@dataclass
class CollectionGroup:
    """NFTs of one collection with a floor price resolved once for the group."""

    issuer: str
    taxon: int
    count: int
    nft_ids: List[str] = field(default_factory=list)
    name: Optional[str] = None
    floor_price: Optional[Decimal] = None
    floor_status: FloorStatus = FloorStatus.NOT_AVAILABLE
    floor_source: Optional[str] = None
    value_usd: Optional[Decimal] = None

    @property
    def collection_key(self) -> Tuple[str, int]:
        return (self.issuer, self.taxon)

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return f"{self.issuer[:6]}...{self.issuer[-4:]} #{self.taxon}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.display_name,
            "issuer": self.issuer,
            "taxon": self.taxon,
            "count": self.count,
            "floor_price": (
                str(self.floor_price) if self.floor_price is not None else None
            ),
            "floor_status": self.floor_status.value,
            "floor_source": self.floor_source,
            "total_value": str(self.value_usd) if self.value_usd is not None else None,
        }


@dataclass
class PortfolioSnapshot:
    """Valuation of every address a user controls at one point in time."""

    user_handle: str
    addresses: List[Address]
    token_details: List[TokenBalance]
    nft_details: List[CollectionGroup]
    native_price_usd: Optional[Decimal]
    timestamp: datetime
    timed_out: bool = False

    @property
    def token_value_usd(self) -> Decimal:
        """Sum of priced token values; unpriced tokens contribute nothing."""
        return sum(
            (t.value_usd for t in self.token_details if t.value_usd is not None),
            Decimal("0"),
        )

    @property
    def nft_value_usd(self) -> Decimal:
        return sum(
            (c.value_usd for c in self.nft_details if c.value_usd is not None),
            Decimal("0"),
        )

    @property
    def total_usd(self) -> Decimal:
        return self.token_value_usd + self.nft_value_usd

    @property
    def unpriced_tokens(self) -> List[TokenBalance]:
        return [t for t in self.token_details if t.price_status is PriceStatus.UNKNOWN]

    @property
    def unavailable_collections(self) -> List[CollectionGroup]:
        return [c for c in self.nft_details if c.value_usd is None]

    @property
    def is_complete(self) -> bool:
        """False when the total is only a lower bound."""
        return not (
            self.timed_out or self.unpriced_tokens or self.unavailable_collections
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_handle": self.user_handle,
            "addresses": [str(a) for a in self.addresses],
            "total_value_usd": str(self.total_usd),
            "is_complete": self.is_complete,
            "timed_out": self.timed_out,
            "native_price_usd": (
                str(self.native_price_usd)
                if self.native_price_usd is not None
                else None
            ),
            "tokens": {
                "total_value_usd": str(self.token_value_usd),
                "count": len(self.token_details),
                "unpriced_count": len(self.unpriced_tokens),
                "details": [t.to_dict() for t in self.token_details],
            },
            "nfts": {
                "total_value_usd": str(self.nft_value_usd),
                "total_count": sum(c.count for c in self.nft_details),
                "collections_count": len(self.nft_details),
                "details": [c.to_dict() for c in self.nft_details],
            },
            "timestamp": self.timestamp.isoformat(),
        }
