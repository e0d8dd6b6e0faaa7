import asyncio
from decimal import Decimal

from fakes import NFT_ISSUER, FakeIndexer
from services.floor_resolver import FloorResolver, floor_from_entries, normalize_amount

KEY = (NFT_ISSUER, 7)


def resolve(indexer):
    return asyncio.run(FloorResolver(indexer).resolve(*KEY))


def test_normalize_amount_shapes():
    assert normalize_amount("2500000") == Decimal("2.5")
    assert normalize_amount(1000000) == Decimal("1")
    assert normalize_amount({"currency": "XRP", "value": "1.5"}) == Decimal("1.5")
    assert normalize_amount({"currency": "ABC", "issuer": "rX", "value": "3"}) is None
    assert normalize_amount("not a number") is None
    assert normalize_amount(None) is None


def test_floor_is_minimum_over_open_and_private():
    entries = [
        {"open": {"amount": "2500000"}, "private": {"amount": "1000000"}},
        {"open": {"amount": {"currency": "XRP", "value": "1.5"}}},
        {"open": {"amount": "0"}},
    ]
    assert floor_from_entries(entries) == Decimal("1")


def test_collection_stats_first():
    indexer = FakeIndexer(
        floors={KEY: [{"open": {"amount": "3000000"}}]},
        sales={KEY: [{"amount": "1000000"}]},
    )
    result = resolve(indexer)
    assert result.value == Decimal("3")
    assert result.source == "collection_floor"
    assert indexer.calls[("sales", KEY)] == 0


def test_recent_sales_when_no_positive_floor():
    indexer = FakeIndexer(
        floors={KEY: [{"open": {"amount": "0"}}]},
        sales={KEY: [{"amount": "3000000"}, {"amount": "2000000"}, {"price": "2.5"}]},
    )
    result = resolve(indexer)
    assert result.value == Decimal("2")
    assert result.source == "recent_sales"


def test_open_sell_offers_last():
    indexer = FakeIndexer(
        offers={
            KEY: [
                {"amount": "5000000", "flags": {"sellToken": True}},
                {"amount": "1000000", "flags": {"sellToken": False}},
                {"amount": "6000000"},
            ]
        }
    )
    result = resolve(indexer)
    assert result.value == Decimal("5")
    assert result.source == "open_offers"


def test_failed_step_continues_cascade():
    indexer = FakeIndexer(failing=("floor",), sales={KEY: [{"amount": "4000000"}]})
    result = resolve(indexer)
    assert result.value == Decimal("4")


def test_no_market_data_is_not_available():
    indexer = FakeIndexer()
    result = resolve(indexer)
    assert not result.found
    assert result.value is None
    assert indexer.calls[("offers", KEY)] == 1
