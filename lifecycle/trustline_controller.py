"""
Trustline lifecycle controller.

Runs "sell the entire balance, wait for settlement, remove the trustline" as a
strictly sequential state machine:

    START -> BALANCE_CHECKED -> SOLD -> REMOVED
                 any step    ->  FAILED

The removal is only attempted after the sale succeeded or the balance was
already zero. A failed removal still reports the sale's transaction hash.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Optional

from currency_codes import currency_matches, decode_currency
from errors import SigningKeyUnavailableError, UnknownUserError
from models.lifecycle_models import (
    LifecyclePhase,
    LifecycleState,
    SessionContext,
    TrustlineLifecycleResult,
    TxResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SELL_SLIPPAGE_PCT = 10.0
DEFAULT_SETTLEMENT_DELAY = 5.0


class TrustlineLifecycleController:
    """Sells a token position and removes its trustline with the session's cached key."""

    def __init__(
        self,
        session_lookup: Callable[[str], Optional[SessionContext]],
        ledger,
        swap_gateway,
        trustline_gateway,
        settlement_delay: float = DEFAULT_SETTLEMENT_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            session_lookup: returns the session of a user handle, or None
            ledger: async gateway with ``get_trust_lines(address)``
            swap_gateway: async ``sell_entire_balance(key, address, currency, issuer, amount, slippage_pct)``
            trustline_gateway: async ``remove_trustline(key, address, currency, issuer)``
            settlement_delay: seconds to wait after a sale before the removal
            sleep: awaitable used for the settlement wait
        """
        self.session_lookup = session_lookup
        self.ledger = ledger
        self.swap_gateway = swap_gateway
        self.trustline_gateway = trustline_gateway
        self.settlement_delay = settlement_delay
        self._sleep = sleep

    def _signing_key(self, user_handle: str) -> Optional[str]:
        session = self.session_lookup(user_handle)
        return session.cached_signing_key if session else None

    def _require_session(self, user_handle: str) -> SessionContext:
        session = self.session_lookup(user_handle)
        if session is None:
            raise UnknownUserError(f"No session for user {user_handle!r}")
        if not session.cached_signing_key:
            raise SigningKeyUnavailableError(
                "Signing key not available in session - please renew your session"
            )
        return session

    @staticmethod
    def _fail(
        result: TrustlineLifecycleResult, step: str, error: str
    ) -> TrustlineLifecycleResult:
        result.state = LifecycleState.FAILED
        result.failed_step = step
        result.error = error
        logger.error("[%s] %s failed: %s", result.currency, step, error)
        return result

    async def _find_line(self, address: str, currency: str, issuer: str) -> Optional[Dict]:
        lines = await self.ledger.get_trust_lines(address)
        for line in lines or []:
            if line.get("issuer") == issuer and currency_matches(
                line.get("currency"), currency
            ):
                return line
        return None

    async def sell_all_and_remove_trustline(
        self,
        user_handle: str,
        currency: str,
        issuer: str,
        slippage_pct: float = DEFAULT_SELL_SLIPPAGE_PCT,
    ) -> TrustlineLifecycleResult:
        """
        Sell the whole balance of ``currency``/``issuer`` for XRP, then remove the trustline.

        Raises:
            ValueError: for a blank currency or issuer or an out-of-range slippage
            UnknownUserError: if the handle has no session
            SigningKeyUnavailableError: if the session holds no cached key
        """
        if not currency or not issuer:
            raise ValueError("currency and issuer are required")
        if not 0 < slippage_pct <= 100:
            raise ValueError("slippage_pct must be in (0, 100]")

        session = self._require_session(user_handle)
        address = session.primary_address
        result = TrustlineLifecycleResult(currency=currency, issuer=issuer)
        logger.info("[%s] sell-all-and-remove started for %s", currency, user_handle)

        # === START -> BALANCE_CHECKED ===
        try:
            line = await self._find_line(address, currency, issuer)
        except Exception as e:
            return self._fail(result, "balance_check", f"Could not read trust lines: {e}")
        if line is None:
            return self._fail(
                result, "balance_check", f"No trustline found for {currency} ({issuer})"
            )

        ledger_currency = line.get("currency") or currency
        balance = Decimal(str(line.get("balance", "0")))
        if balance < 0:
            return self._fail(
                result,
                "balance_check",
                f"Negative {currency} balance {balance}: account owes on this line",
            )
        result.state = LifecycleState.BALANCE_CHECKED
        logger.info("[%s] current balance: %s", currency, balance)

        # === BALANCE_CHECKED -> SOLD ===
        if balance == 0:
            result.balance_was_zero = True
            logger.info("[%s] balance already zero, skipping sale", currency)
        else:
            key = self._signing_key(user_handle)
            if not key:
                return self._fail(result, "sell", "Signing key no longer available in session")

            amount = balance
            try:
                swap = await self.swap_gateway.sell_entire_balance(
                    key, address, ledger_currency, issuer, amount, slippage_pct
                )
            except Exception as e:
                swap = TxResult.failed(str(e))

            if swap is None or not swap.success or not swap.tx_hash:
                error = (swap and swap.error) or "Failed to sell all tokens"
                return self._fail(result, "sell", f"Failed to sell tokens: {error}")

            result.sell_tx_hash = swap.tx_hash
            result.amount_sold = amount
            logger.info("[%s] all tokens sold: %s", currency, swap.tx_hash)

            # The removal needs the emptied balance to be visible to validators.
            await self._sleep(self.settlement_delay)

        result.state = LifecycleState.SOLD
        result.phase_reached = LifecyclePhase.SOLD

        # === SOLD -> REMOVED ===
        return await self._remove(result, user_handle, address, ledger_currency, issuer)

    async def remove_trustline(
        self, user_handle: str, currency: str, issuer: str
    ) -> TrustlineLifecycleResult:
        """Remove a trustline whose balance is already zero; refuses otherwise."""
        if not currency or not issuer:
            raise ValueError("currency and issuer are required")

        session = self._require_session(user_handle)
        address = session.primary_address
        result = TrustlineLifecycleResult(currency=currency, issuer=issuer)

        try:
            line = await self._find_line(address, currency, issuer)
        except Exception as e:
            return self._fail(result, "balance_check", f"Could not read trust lines: {e}")
        if line is None:
            return self._fail(
                result, "balance_check", f"No trustline found for {currency} ({issuer})"
            )

        balance = Decimal(str(line.get("balance", "0")))
        result.state = LifecycleState.BALANCE_CHECKED
        if balance != 0:
            return self._fail(
                result,
                "balance_check",
                f"Balance of {decode_currency(line.get('currency'))} is {balance}; "
                "sell it before removing the trustline",
            )

        result.balance_was_zero = True
        result.state = LifecycleState.SOLD
        result.phase_reached = LifecyclePhase.SOLD
        return await self._remove(
            result, user_handle, address, line.get("currency") or currency, issuer
        )

    async def _remove(
        self,
        result: TrustlineLifecycleResult,
        user_handle: str,
        address: str,
        ledger_currency: str,
        issuer: str,
    ) -> TrustlineLifecycleResult:
        key = self._signing_key(user_handle)
        if not key:
            return self._fail(result, "remove", "Signing key no longer available in session")

        try:
            removal = await self.trustline_gateway.remove_trustline(
                key, address, ledger_currency, issuer
            )
        except Exception as e:
            removal = TxResult.failed(str(e))

        if removal is None or not removal.success or not removal.tx_hash:
            error = (removal and removal.error) or "Trustline removal failed"
            if result.sell_tx_hash:
                error = f"Sold tokens but failed to remove trustline: {error}"
            return self._fail(result, "remove", error)

        result.remove_tx_hash = removal.tx_hash
        result.state = LifecycleState.REMOVED
        result.phase_reached = LifecyclePhase.REMOVED
        logger.info("[%s] trustline removed: %s", result.currency, removal.tx_hash)
        return result
