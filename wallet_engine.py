"""
Wallet Engine

This is the main entry point for portfolio valuation and trustline lifecycle
operations. The engine wires the adapters and services together and exposes
the two operations callers use.
"""

import os
from typing import Callable, Dict, Optional

from adapters.bithomp import BithompAdapter
from adapters.token_registry import TokenRegistryAdapter
from adapters.xrpl_ledger import XrplLedgerAdapter
from config import Settings
from lifecycle.trustline_controller import TrustlineLifecycleController
from models.lifecycle_models import SessionContext, TrustlineLifecycleResult
from models.portfolio_models import PortfolioSnapshot
from services.address_registry import AddressRegistry
from services.balance_service import BalanceService
from services.floor_resolver import FloorResolver
from services.portfolio_service import PortfolioService
from services.pricing_service import PricingService
from services.token_price_resolver import TokenPriceResolver


class EnvSessionStore:
    """
    Single-user session built from environment variables.

    Stands in for the authentication layer when running from the command line:
    WALLET_HANDLE, WALLET_ADDRESS, WALLET_SEED and LINKED_WALLETS
    (comma-separated ``chain:address`` pairs).
    """

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        env = os.environ if environ is None else environ
        self.session: Optional[SessionContext] = None

        address = env.get("WALLET_ADDRESS")
        if address:
            linked = []
            for item in (env.get("LINKED_WALLETS") or "").split(","):
                chain, _, value = item.strip().partition(":")
                if chain and value:
                    linked.append({"chain": chain, "address": value})
            self.session = SessionContext(
                user_handle=env.get("WALLET_HANDLE", "local"),
                primary_address=address,
                cached_signing_key=env.get("WALLET_SEED") or None,
                linked_wallets=linked,
            )

    def __call__(self, user_handle: str) -> Optional[SessionContext]:
        if self.session and self.session.user_handle == user_handle:
            return self.session
        return None


class WalletEngine:
    """Coordinates valuation and trustline lifecycle over the live gateways."""

    def __init__(
        self,
        session_lookup: Callable[[str], Optional[SessionContext]],
        settings: Optional[Settings] = None,
        linked_wallet_store=None,
        wallet_profile_store=None,
    ):
        self.settings = settings or Settings.from_env()
        s = self.settings

        # Initialize adapters
        self.ledger = XrplLedgerAdapter(s.xrpl_rpc_url)
        self.indexer = BithompAdapter(
            api_key=s.bithomp_api_key, base_url=s.bithomp_base_url, timeout=s.http_timeout
        )
        self.registry = TokenRegistryAdapter(
            base_url=s.token_registry_url, timeout=s.http_timeout
        )
        self.pricing_service = PricingService(
            dexscreener_base_url=s.dexscreener_base_url,
            coingecko_base_url=s.coingecko_base_url,
            native_coingecko_id=s.native_coingecko_id,
            timeout=s.http_timeout,
        )

        # Initialize services
        self.portfolio_service = PortfolioService(
            session_lookup=session_lookup,
            address_registry=AddressRegistry(linked_wallet_store, wallet_profile_store),
            balance_services={BalanceService.chain: BalanceService(self.ledger, self.indexer)},
            price_resolver=TokenPriceResolver(self.pricing_service, self.registry),
            floor_resolver=FloorResolver(self.indexer),
            default_timeout=s.portfolio_timeout,
        )
        self.trustline_controller = TrustlineLifecycleController(
            session_lookup=session_lookup,
            ledger=self.ledger,
            swap_gateway=self.ledger,
            trustline_gateway=self.ledger,
            settlement_delay=s.settlement_delay,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        await self.pricing_service.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.pricing_service.__aexit__(exc_type, exc_val, exc_tb)
        self.indexer.close()
        self.registry.close()

    async def get_portfolio_snapshot(
        self, user_handle: str, timeout: Optional[float] = None
    ) -> PortfolioSnapshot:
        return await self.portfolio_service.get_portfolio_snapshot(
            user_handle, timeout=timeout
        )

    async def sell_all_and_remove_trustline(
        self,
        user_handle: str,
        currency: str,
        issuer: str,
        slippage_pct: Optional[float] = None,
    ) -> TrustlineLifecycleResult:
        if slippage_pct is None:
            slippage_pct = self.settings.sell_slippage_pct
        return await self.trustline_controller.sell_all_and_remove_trustline(
            user_handle, currency, issuer, slippage_pct
        )

    async def remove_trustline(
        self, user_handle: str, currency: str, issuer: str
    ) -> TrustlineLifecycleResult:
        return await self.trustline_controller.remove_trustline(
            user_handle, currency, issuer
        )
