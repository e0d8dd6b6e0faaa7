"""In-memory gateways shared by the tests."""

import asyncio
from collections import Counter
from decimal import Decimal

from errors import UpstreamUnavailableError
from models.lifecycle_models import SessionContext, TxResult

ALICE = "rAlice1111111111111111111111111111"
BOB_ETH = "0xAbCdEf0000000000000000000000000000000001"
ISSUER_A = "rIssuerA00000000000000000000000000"
ISSUER_B = "rIssuerB00000000000000000000000000"
NFT_ISSUER = "rNftIssuer000000000000000000000000"


class FakeMarket:
    """``search_pairs``/``get_native_price`` answering from dicts."""

    def __init__(self, pairs=None, native_price=Decimal("0.5"), failing=(), slow=()):
        self.pairs = pairs or {}
        self.native_price = native_price
        self.failing = set(failing)
        self.slow = set(slow)
        self.queries = []
        self.native_calls = 0

    async def search_pairs(self, query):
        self.queries.append(query)
        if query in self.slow:
            await asyncio.sleep(5)
        if query in self.failing:
            raise UpstreamUnavailableError(f"search {query} failed")
        return list(self.pairs.get(query, []))

    async def get_native_price(self):
        self.native_calls += 1
        if "native" in self.failing:
            raise UpstreamUnavailableError("native price failed")
        return self.native_price


class FakeRegistry:
    def __init__(self, tokens=None, fail=False):
        self.tokens = tokens or {}
        self.fail = fail
        self.queries = []

    def lookup(self, symbol):
        self.queries.append(symbol)
        if self.fail:
            raise UpstreamUnavailableError("registry down")
        return list(self.tokens.get(symbol, []))


class FakeIndexer:
    def __init__(self, nfts=None, floors=None, sales=None, offers=None, failing=()):
        self.nfts = nfts or {}
        self.floors = floors or {}
        self.sales = sales or {}
        self.offers = offers or {}
        self.failing = set(failing)
        self.calls = Counter()

    def _check(self, name, key):
        self.calls[(name, key)] += 1
        if name in self.failing or key in self.failing:
            raise UpstreamUnavailableError(f"{name} {key} failed")

    def get_nfts_by_owner(self, owner):
        self._check("nfts", owner)
        return list(self.nfts.get(owner, []))

    def get_collection_floor(self, issuer, taxon):
        self._check("floor", (issuer, taxon))
        return list(self.floors.get((issuer, taxon), []))

    def get_recent_sales(self, issuer, taxon, limit=20):
        self._check("sales", (issuer, taxon))
        return list(self.sales.get((issuer, taxon), []))[:limit]

    def get_open_offers(self, issuer, taxon, limit=20):
        self._check("offers", (issuer, taxon))
        return list(self.offers.get((issuer, taxon), []))[:limit]

    def floor_lookups(self):
        return sum(n for (name, _), n in self.calls.items() if name == "floor")


class FakeLedger:
    def __init__(self, balances=None, lines=None, failing=(), delay=0):
        self.balances = balances or {}
        self.lines = lines or {}
        self.failing = set(failing)
        self.delay = delay
        self.balance_calls = Counter()
        self.line_calls = Counter()

    async def get_balance(self, address):
        self.balance_calls[address] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if address in self.failing:
            raise UpstreamUnavailableError(f"ledger down for {address}")
        return self.balances.get(address, Decimal("0"))

    async def get_trust_lines(self, address):
        self.line_calls[address] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if address in self.failing:
            raise UpstreamUnavailableError(f"ledger down for {address}")
        return [dict(line) for line in self.lines.get(address, [])]


class FakeSwap:
    def __init__(self, result=None, error=None):
        self.result = result or TxResult.ok("S1")
        self.error = error
        self.calls = []

    async def sell_entire_balance(self, key, address, currency, issuer, amount, slippage_pct):
        self.calls.append((key, address, currency, issuer, amount, slippage_pct))
        if self.error:
            raise self.error
        return self.result


class FakeTrustline:
    def __init__(self, result=None, error=None):
        self.result = result or TxResult.ok("R1")
        self.error = error
        self.calls = []

    async def remove_trustline(self, key, address, currency, issuer):
        self.calls.append((key, address, currency, issuer))
        if self.error:
            raise self.error
        return self.result


class SessionTable:
    """Session lookup keyed by handle, counting reads."""

    def __init__(self, *sessions):
        self.sessions = {s.user_handle: s for s in sessions}
        self.reads = 0

    def __call__(self, handle):
        self.reads += 1
        return self.sessions.get(handle)


def alice_session(key="sEdSecretSeed", linked=None):
    return SessionContext(
        user_handle="alice",
        primary_address=ALICE,
        cached_signing_key=key,
        linked_wallets=linked or [],
    )


def pair(chain, base, quote, price, base_address=None, quote_address=None, price_native=None):
    return {
        "chain": chain,
        "baseSymbol": base,
        "quoteSymbol": quote,
        "priceUsd": price,
        "priceNative": price_native,
        "baseAddress": base_address,
        "quoteAddress": quote_address,
    }


def nft(token_id, issuer=NFT_ISSUER, taxon=0, name=None):
    record = {"nftokenID": token_id, "issuer": issuer, "nftokenTaxon": taxon}
    if name:
        record["metadata"] = {"name": name, "image": f"ipfs://{token_id}"}
    return record
