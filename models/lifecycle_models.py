"""
Data models for the trustline lifecycle workflow and the session it runs under.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


class LifecycleState(str, Enum):
    START = "start"
    BALANCE_CHECKED = "balance_checked"
    SOLD = "sold"
    REMOVED = "removed"
    FAILED = "failed"


class LifecyclePhase(str, Enum):
    """Furthest phase that completed on-ledger."""

    NONE = "none"
    SOLD = "sold"
    REMOVED = "removed"


@dataclass
class SessionContext:
    """What the authentication layer knows about a signed-in user."""

    user_handle: str
    primary_address: str
    cached_signing_key: Optional[str] = None
    linked_wallets: List[Dict[str, str]] = field(default_factory=list)

    def __repr__(self) -> str:
        # Never echo the signing key.
        return (
            f"SessionContext(user_handle={self.user_handle!r}, "
            f"primary_address={self.primary_address!r}, "
            f"has_signing_key={self.cached_signing_key is not None})"
        )


@dataclass
class TxResult:
    """Outcome reported by a transaction gateway."""

    success: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, tx_hash: str) -> "TxResult":
        return cls(success=True, tx_hash=tx_hash)

    @classmethod
    def failed(cls, error: str) -> "TxResult":
        return cls(success=False, error=error)


@dataclass
class TrustlineLifecycleResult:
    """Exact outcome of a sell-then-remove run, including partial progress."""

    currency: str
    issuer: str
    state: LifecycleState = LifecycleState.START
    phase_reached: LifecyclePhase = LifecyclePhase.NONE
    failed_step: Optional[str] = None
    sell_tx_hash: Optional[str] = None
    remove_tx_hash: Optional[str] = None
    amount_sold: Optional[Decimal] = None
    balance_was_zero: bool = False
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is LifecycleState.REMOVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "currency": self.currency,
            "issuer": self.issuer,
            "state": self.state.value,
            "phase_reached": self.phase_reached.value,
            "step": self.failed_step,
            "sellTxHash": self.sell_tx_hash,
            "removeTxHash": self.remove_tx_hash,
            "amountSold": str(self.amount_sold) if self.amount_sold is not None else None,
            "error": self.error,
        }
