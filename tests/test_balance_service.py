import asyncio
from decimal import Decimal

from fakes import ALICE, ISSUER_A, NFT_ISSUER, FakeIndexer, FakeLedger, nft
from models.portfolio_models import Address, NftHolding
from services.balance_service import BalanceService, group_by_collection, parse_nft

SOLO_HEX = "534F4C4F00000000000000000000000000000000"
ADDRESS = Address("xrpl", ALICE)


def test_holdings_decode_currency_and_parse_nfts():
    ledger = FakeLedger(
        balances={ALICE: Decimal("12.5")},
        lines={
            ALICE: [
                {"currency": SOLO_HEX, "issuer": ISSUER_A, "balance": Decimal("3")},
                {"currency": "USD", "issuer": ISSUER_A, "balance": "0"},
            ]
        },
    )
    indexer = FakeIndexer(nfts={ALICE: [nft("N1", name="Brick #1"), {"issuer": NFT_ISSUER}]})

    holdings = asyncio.run(BalanceService(ledger, indexer).fetch_holdings(ADDRESS))

    assert holdings.native_balance == Decimal("12.5")
    assert [t.symbol for t in holdings.tokens] == ["SOLO", "USD"]
    assert holdings.tokens[0].currency == SOLO_HEX
    assert holdings.tokens[0].raw_balance == Decimal("3")
    assert holdings.tokens[0].holder == ALICE
    assert [n.token_id for n in holdings.nfts] == ["N1"]
    assert holdings.nfts[0].image_ref == "https://cloudflare-ipfs.com/ipfs/N1"


def test_indexer_failure_only_empties_nfts():
    ledger = FakeLedger(
        balances={ALICE: Decimal("1")},
        lines={ALICE: [{"currency": "USD", "issuer": ISSUER_A, "balance": "2"}]},
    )
    indexer = FakeIndexer(failing=("nfts",))

    holdings = asyncio.run(BalanceService(ledger, indexer).fetch_holdings(ADDRESS))

    assert holdings.nfts == []
    assert holdings.native_balance == Decimal("1")
    assert len(holdings.tokens) == 1


def test_ledger_failure_gives_empty_balances():
    ledger = FakeLedger(failing=(ALICE,))
    holdings = asyncio.run(BalanceService(ledger, FakeIndexer()).fetch_holdings(ADDRESS))
    assert holdings.native_balance is None
    assert holdings.tokens == []


def test_parse_nft_handles_string_metadata():
    parsed = parse_nft(
        {
            "nfTokenID": "N9",
            "issuer": NFT_ISSUER,
            "taxon": "4",
            "metadata": '{"name": "Land", "image": "https://img/1.png"}',
        },
        ALICE,
    )
    assert parsed.taxon == 4
    assert parsed.name == "Land"
    assert parsed.image_ref == "https://img/1.png"
    assert parsed.owner == ALICE

    broken = parse_nft({"nftokenID": "N8", "issuer": NFT_ISSUER, "metadata": "{oops"}, ALICE)
    assert broken.name is None


def test_group_by_collection_counts_per_issuer_and_taxon():
    nfts = [
        NftHolding("A1", NFT_ISSUER, 0),
        NftHolding("B1", NFT_ISSUER, 1),
        NftHolding("A2", NFT_ISSUER, 0),
    ]
    groups = group_by_collection(nfts)
    assert [(g.taxon, g.count, g.nft_ids) for g in groups] == [
        (0, 2, ["A1", "A2"]),
        (1, 1, ["B1"]),
    ]


def test_collection_named_after_first_named_holding():
    nfts = [
        NftHolding("A1", NFT_ISSUER, 1),
        NftHolding("A2", NFT_ISSUER, 1, name="Riddle Drop"),
        NftHolding("A3", NFT_ISSUER, 1, name="Riddle Drop #3"),
    ]
    [group] = group_by_collection(nfts)
    assert group.name == "Riddle Drop"
    assert group.display_name == "Riddle Drop"

    [unnamed] = group_by_collection([NftHolding("B1", NFT_ISSUER, 2)])
    assert unnamed.name is None
    assert unnamed.display_name.endswith("#2")
