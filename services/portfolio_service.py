"""
Portfolio service for valuing everything a user holds.

This service resolves the user's addresses, fetches holdings per address,
prices each distinct token and NFT collection exactly once and reduces the
result to a single USD figure with itemized detail. Every fan-out runs
concurrently; a branch that fails or misses the deadline counts as "no data".
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from errors import UnknownUserError
from models.portfolio_models import (
    Address,
    AddressHoldings,
    CollectionGroup,
    FloorStatus,
    PortfolioSnapshot,
    TokenBalance,
    NATIVE_CHAIN,
    NATIVE_SYMBOL,
)
from models.lifecycle_models import SessionContext
from services.address_registry import AddressRegistry
from services.balance_service import group_by_collection
from services.cascade import CascadeResult

logger = logging.getLogger(__name__)


class PortfolioService:
    """Service for computing portfolio snapshots."""

    def __init__(
        self,
        session_lookup: Callable[[str], Optional[SessionContext]],
        address_registry: AddressRegistry,
        balance_services: Dict[str, object],
        price_resolver,
        floor_resolver,
        default_timeout: Optional[float] = None,
    ):
        """
        Args:
            session_lookup: returns the session of a user handle, or None
            address_registry: collects the user's addresses
            balance_services: balance aggregator per chain
            price_resolver: TokenPriceResolver
            floor_resolver: FloorResolver
            default_timeout: deadline in seconds when the caller passes none
        """
        self.session_lookup = session_lookup
        self.address_registry = address_registry
        self.balance_services = balance_services
        self.price_resolver = price_resolver
        self.floor_resolver = floor_resolver
        self.default_timeout = default_timeout

    async def get_portfolio_snapshot(
        self, user_handle: str, timeout: Optional[float] = None
    ) -> PortfolioSnapshot:
        """
        Value every address of a user.

        Args:
            user_handle: handle of a signed-in user
            timeout: seconds bounding the whole call; unfinished lookups are
                treated as missing data

        Returns:
            PortfolioSnapshot; ``total_usd`` is a lower bound whenever
            ``is_complete`` is False

        Raises:
            UnknownUserError: if no session exists for the handle
        """
        session = self.session_lookup(user_handle)
        if session is None:
            raise UnknownUserError(f"No session for user {user_handle!r}")

        timeout = timeout if timeout is not None else self.default_timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        timed_out = False

        # === 1. Addresses ===
        (addresses,), late = await self._fan_out(
            [self.address_registry.resolve(session)], deadline, "address registry"
        )
        timed_out |= late
        if addresses is None:
            addresses = [Address.normalized(NATIVE_CHAIN, session.primary_address)]

        # === 2. Holdings per address ===
        fetchable = [a for a in addresses if a.chain in self.balance_services]
        results, late = await self._fan_out(
            [self.balance_services[a.chain].fetch_holdings(a) for a in fetchable],
            deadline,
            "balances",
        )
        timed_out |= late
        holdings = [
            result if result is not None else AddressHoldings.empty(address)
            for address, result in zip(fetchable, results)
        ]

        # === 3. Prices and floors, each distinct asset once ===
        tokens = self._collect_tokens(holdings)
        price_keys = list(dict.fromkeys(t.price_key for t in tokens if not t.is_native))
        groups = group_by_collection([nft for h in holdings for nft in h.nfts])

        lookups: List[Awaitable] = [self.price_resolver.resolve_native()]
        lookups.extend(
            self.price_resolver.resolve(symbol, issuer, chain)
            for chain, symbol, issuer in price_keys
        )
        lookups.extend(self.floor_resolver.resolve(g.issuer, g.taxon) for g in groups)

        results, late = await self._fan_out(lookups, deadline, "pricing")
        timed_out |= late

        native_price = results[0]
        token_prices = dict(zip(price_keys, results[1 : 1 + len(price_keys)]))
        floors = results[1 + len(price_keys) :]

        self._apply_token_prices(tokens, token_prices, native_price)
        for group, floor in zip(groups, floors):
            self._apply_floor(group, floor, native_price)

        snapshot = PortfolioSnapshot(
            user_handle=user_handle,
            addresses=addresses,
            token_details=tokens,
            nft_details=groups,
            native_price_usd=native_price,
            timestamp=datetime.now(timezone.utc),
            timed_out=timed_out,
        )
        self.log_breakdown(snapshot)
        return snapshot

    @staticmethod
    def _collect_tokens(holdings: Sequence[AddressHoldings]) -> List[TokenBalance]:
        """Positive balances of every address, native first per address."""
        tokens = []
        for h in holdings:
            if h.native_balance is not None and h.native_balance > 0:
                tokens.append(
                    TokenBalance(
                        chain=h.address.chain,
                        symbol=NATIVE_SYMBOL,
                        issuer=None,
                        raw_balance=h.native_balance,
                        holder=h.address.value,
                    )
                )
            tokens.extend(t for t in h.tokens if t.raw_balance > 0)
        return tokens

    @staticmethod
    def _apply_token_prices(
        tokens: List[TokenBalance],
        prices: Dict[Tuple, Optional[CascadeResult]],
        native_price: Optional[Decimal],
    ) -> None:
        for token in tokens:
            if token.is_native:
                token.price_usd = native_price
                token.price_source = "native_price" if native_price is not None else None
                continue
            result = prices.get(token.price_key)
            if result is not None and result.found:
                token.price_usd = result.value
                token.price_source = result.source

    @staticmethod
    def _apply_floor(
        group: CollectionGroup,
        floor: Optional[CascadeResult],
        native_price: Optional[Decimal],
    ) -> None:
        if floor is None or not floor.found:
            group.floor_status = FloorStatus.NOT_AVAILABLE
            return
        group.floor_price = floor.value
        group.floor_source = floor.source
        group.floor_status = FloorStatus.AVAILABLE
        if native_price is not None:
            group.value_usd = floor.value * group.count * native_price

    @staticmethod
    async def _fan_out(
        coros: Sequence[Awaitable], deadline: Optional[float], label: str
    ) -> Tuple[List, bool]:
        """
        Run awaitables concurrently until done or until the deadline.

        Returns each result in input order (None for a failed or unfinished
        branch) and whether the deadline cut any branch short.
        """
        if not coros:
            return [], False

        tasks = [asyncio.ensure_future(c) for c in coros]
        timeout = None
        if deadline is not None:
            timeout = max(0.0, deadline - asyncio.get_running_loop().time())

        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "%s: %d of %d lookups missed the deadline", label, len(pending), len(tasks)
            )

        results = []
        for task in tasks:
            if task not in done or task.cancelled():
                results.append(None)
            elif task.exception() is not None:
                logger.warning("%s: lookup failed: %s", label, task.exception())
                results.append(None)
            else:
                results.append(task.result())
        return results, bool(pending)

    def log_breakdown(self, snapshot: PortfolioSnapshot) -> None:
        """Log the portfolio breakdown ordered by value."""
        logger.info(
            "Portfolio for %s: total $%.2f (tokens $%.2f, NFTs $%.2f)%s",
            snapshot.user_handle,
            snapshot.total_usd,
            snapshot.token_value_usd,
            snapshot.nft_value_usd,
            "" if snapshot.is_complete else " [lower bound]",
        )

        for token in sorted(
            snapshot.token_details,
            key=lambda t: t.value_usd if t.value_usd is not None else Decimal("-1"),
            reverse=True,
        ):
            if token.value_usd is None:
                logger.info("  %s %s: price unknown", token.raw_balance, token.symbol)
            else:
                logger.info(
                    "  %s %s @ $%s = $%.2f",
                    token.raw_balance,
                    token.symbol,
                    token.price_usd,
                    token.value_usd,
                )

        for group in snapshot.nft_details:
            if group.value_usd is None:
                logger.info(
                    "  %s: %d NFTs, floor %s",
                    group.display_name,
                    group.count,
                    group.floor_status.value,
                )
            else:
                logger.info(
                    "  %s: %d x %s %s = $%.2f",
                    group.display_name,
                    group.count,
                    group.floor_price,
                    NATIVE_SYMBOL,
                    group.value_usd,
                )
