"""
Data models for portfolio valuation and trustline lifecycle.
"""

from .portfolio_models import (
    Address,
    AddressHoldings,
    CollectionGroup,
    FloorStatus,
    NftHolding,
    PortfolioSnapshot,
    PriceStatus,
    TokenBalance,
)
from .lifecycle_models import (
    LifecyclePhase,
    LifecycleState,
    SessionContext,
    TrustlineLifecycleResult,
    TxResult,
)

__all__ = [
    "Address",
    "AddressHoldings",
    "CollectionGroup",
    "FloorStatus",
    "NftHolding",
    "PortfolioSnapshot",
    "PriceStatus",
    "TokenBalance",
    "LifecyclePhase",
    "LifecycleState",
    "SessionContext",
    "TrustlineLifecycleResult",
    "TxResult",
]
