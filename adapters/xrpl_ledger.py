#!/usr/bin/env python3
"""
XRPL Ledger Adapter
Reads balances and trust lines over JSON-RPC and submits the two transactions
the trustline lifecycle needs: a sell-everything swap and a trustline removal.
"""

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Dict, List, Optional, Tuple

from xrpl.asyncio.clients import AsyncJsonRpcClient
from xrpl.asyncio.transaction import submit_and_wait
from xrpl.constants import XRPLException
from xrpl.models.amounts import IssuedCurrencyAmount
from xrpl.models.currencies import XRP, IssuedCurrency
from xrpl.models.requests import AccountInfo, AccountLines, BookOffers
from xrpl.models.transactions import Payment, PaymentFlag, TrustSet, TrustSetFlag
from xrpl.utils import drops_to_xrp, xrp_to_drops
from xrpl.wallet import Wallet

from currency_codes import currency_matches, encode_currency
from errors import UpstreamUnavailableError
from models.lifecycle_models import TxResult

logger = logging.getLogger(__name__)

ONE_DROP = Decimal("0.000001")
# Total XRP supply in drops; the largest Amount a payment may name.
MAX_XRP_DROPS = "100000000000000000"


def trust_line_deleted(meta: Dict) -> bool:
    """True when transaction metadata shows a trust line (RippleState) deleted."""
    for node in meta.get("AffectedNodes") or []:
        deleted = node.get("DeletedNode")
        if deleted and deleted.get("LedgerEntryType") == "RippleState":
            return True
    return False


class XrplLedgerAdapter:
    """JSON-RPC access to an XRPL node for balances, trust lines and signing."""

    def __init__(self, rpc_url: str = "https://s1.ripple.com:51234/"):
        self.rpc_url = rpc_url
        self.client = AsyncJsonRpcClient(rpc_url)

    # === Reads ===

    async def get_balance(self, address: str) -> Decimal:
        """Native XRP balance of an account; an unfunded account holds zero."""
        response = await self.client.request(
            AccountInfo(account=address, ledger_index="validated")
        )
        if not response.is_successful():
            if response.result.get("error") == "actNotFound":
                return Decimal("0")
            raise UpstreamUnavailableError(
                f"account_info failed for {address}: {response.result.get('error')}"
            )
        return drops_to_xrp(response.result["account_data"]["Balance"])

    async def get_trust_lines(self, address: str) -> List[Dict]:
        """
        Every trust line of an account as ``{currency, issuer, balance, limit}``.

        ``balance`` is from the account's point of view.
        """
        lines: List[Dict] = []
        marker = None

        while True:
            request = AccountLines(
                account=address, ledger_index="validated", marker=marker
            )
            response = await self.client.request(request)
            if not response.is_successful():
                if response.result.get("error") == "actNotFound":
                    return []
                raise UpstreamUnavailableError(
                    f"account_lines failed for {address}: {response.result.get('error')}"
                )

            for line in response.result.get("lines", []):
                lines.append(
                    {
                        "currency": line["currency"],
                        "issuer": line["account"],
                        "balance": Decimal(line.get("balance", "0")),
                        "limit": Decimal(line.get("limit", "0")),
                    }
                )

            marker = response.result.get("marker")
            if not marker:
                return lines

    async def quote_to_native(self, currency: str, issuer: str) -> Optional[Decimal]:
        """XRP received per unit of the token at the best resting offer, if any."""
        response = await self.client.request(
            BookOffers(
                taker_gets=XRP(),
                taker_pays=IssuedCurrency(
                    currency=encode_currency(currency), issuer=issuer
                ),
                ledger_index="validated",
                limit=5,
            )
        )
        if not response.is_successful():
            raise UpstreamUnavailableError(
                f"book_offers failed for {currency}.{issuer}: {response.result.get('error')}"
            )

        for offer in response.result.get("offers", []):
            xrp_side = offer.get("TakerGets")
            token_side = offer.get("TakerPays")
            if not isinstance(xrp_side, str) or not isinstance(token_side, dict):
                continue
            token_amount = Decimal(token_side.get("value", "0"))
            if token_amount > 0:
                return drops_to_xrp(xrp_side) / token_amount
        return None

    # === Transactions ===

    async def sell_entire_balance(
        self,
        signing_key: str,
        address: str,
        from_currency: str,
        from_issuer: str,
        amount: Decimal,
        slippage_pct: float,
    ) -> TxResult:
        """
        Sell ``amount`` of a token for XRP with a partial payment to self.

        The whole amount is offered as SendMax and Amount is set to the XRP
        ceiling, so the payment keeps consuming the token until SendMax is
        spent. DeliverMin is the quoted XRP output reduced by ``slippage_pct``.
        """
        try:
            wallet = Wallet.from_seed(signing_key)
        except (XRPLException, ValueError) as e:
            return TxResult.failed(f"Invalid signing key: {e}")

        if wallet.address != address:
            return TxResult.failed("Signing key does not belong to this address")

        try:
            rate = await self.quote_to_native(from_currency, from_issuer)
        except UpstreamUnavailableError as e:
            return TxResult.failed(str(e))
        if rate is None:
            return TxResult.failed(f"No XRP liquidity for {from_currency}")

        expected = (amount * rate).quantize(ONE_DROP, rounding=ROUND_DOWN)
        if expected < ONE_DROP:
            return TxResult.failed(f"Balance of {from_currency} too small to sell")
        deliver_min = (
            expected * (Decimal("1") - Decimal(str(slippage_pct)) / Decimal("100"))
        ).quantize(ONE_DROP, rounding=ROUND_DOWN)
        if deliver_min < ONE_DROP:
            deliver_min = ONE_DROP

        payment = Payment(
            account=wallet.address,
            destination=wallet.address,
            amount=MAX_XRP_DROPS,
            send_max=IssuedCurrencyAmount(
                currency=encode_currency(from_currency),
                issuer=from_issuer,
                value=format(amount, "f"),
            ),
            deliver_min=xrp_to_drops(deliver_min),
            flags=PaymentFlag.TF_PARTIAL_PAYMENT,
        )
        result, _ = await self._submit(payment, wallet, "sell")
        return result

    async def remove_trustline(
        self, signing_key: str, address: str, currency: str, issuer: str
    ) -> TxResult:
        """
        Set the trust line limit to zero and clear its flags so the ledger deletes it.

        A TrustSet succeeds even when the line survives (a leftover balance
        keeps it alive), so success is only reported once the line is gone.
        """
        try:
            wallet = Wallet.from_seed(signing_key)
        except (XRPLException, ValueError) as e:
            return TxResult.failed(f"Invalid signing key: {e}")

        if wallet.address != address:
            return TxResult.failed("Signing key does not belong to this address")

        trust_set = TrustSet(
            account=address,
            limit_amount=IssuedCurrencyAmount(
                currency=encode_currency(currency), issuer=issuer, value="0"
            ),
            flags=TrustSetFlag.TF_SET_NO_RIPPLE | TrustSetFlag.TF_CLEAR_FREEZE,
        )
        result, meta = await self._submit(trust_set, wallet, "remove")
        if not result.success or trust_line_deleted(meta):
            return result

        try:
            lines = await self.get_trust_lines(address)
        except UpstreamUnavailableError as e:
            return TxResult.failed(f"Could not confirm trustline removal: {e}")

        for line in lines:
            if line["issuer"] == issuer and currency_matches(line["currency"], currency):
                return TxResult.failed("trustline still present: balance not zero")
        return result

    async def _submit(
        self, transaction, wallet: Wallet, label: str
    ) -> Tuple[TxResult, Dict]:
        """Sign, submit and wait; returns the outcome and the transaction metadata."""
        try:
            response = await submit_and_wait(transaction, self.client, wallet)
        except XRPLException as e:
            logger.error("XRPL %s transaction failed: %s", label, e)
            return TxResult.failed(str(e)), {}

        result = response.result
        meta = result.get("meta") or {}
        engine_result = meta.get("TransactionResult")
        if engine_result != "tesSUCCESS":
            return TxResult.failed(f"{label} transaction ended with {engine_result}"), meta
        return TxResult.ok(result.get("hash")), meta
