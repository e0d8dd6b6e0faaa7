import pytest
import requests

from adapters.bithomp import BithompAdapter
from adapters.token_registry import TokenRegistryAdapter
from errors import UpstreamUnavailableError
from fakes import ALICE, NFT_ISSUER


class StubResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.exceptions.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class StubSession:
    """Replays queued payloads for requests.Session.get."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


def test_bithomp_sends_token_header():
    adapter = BithompAdapter(api_key="k-123")
    assert adapter.session.headers["x-bithomp-token"] == "k-123"


def test_nfts_by_owner_follows_marker():
    adapter = BithompAdapter(api_key="k")
    adapter.session = StubSession(
        StubResponse({"nfts": [{"nftokenID": "A"}], "marker": "m1"}),
        StubResponse({"nfts": [{"nftokenID": "B"}]}),
    )

    nfts = adapter.get_nfts_by_owner(ALICE)

    assert [n["nftokenID"] for n in nfts] == ["A", "B"]
    first, second = adapter.session.requests
    assert first[0] == "https://bithomp.com/api/v2/nfts"
    assert "marker" not in first[1]
    assert second[1]["marker"] == "m1"


def test_collection_floor_reads_floor_prices():
    adapter = BithompAdapter(api_key="k")
    adapter.session = StubSession(
        StubResponse({"collection": {"floorPrices": [{"open": {"amount": "1000000"}}]}})
    )

    entries = adapter.get_collection_floor(NFT_ISSUER, 3)

    assert entries == [{"open": {"amount": "1000000"}}]
    url, params = adapter.session.requests[0]
    assert url.endswith(f"nft-collection/{NFT_ISSUER}:3")
    assert params == {"floorPrice": "true", "statistics": "true"}


def test_unreachable_indexer_raises_instead_of_empty():
    adapter = BithompAdapter(api_key="k")
    adapter.session = StubSession(requests.exceptions.ConnectionError("refused"))
    with pytest.raises(UpstreamUnavailableError):
        adapter.get_recent_sales(NFT_ISSUER, 0)


def test_error_payload_is_a_failure():
    adapter = BithompAdapter(api_key="k")
    adapter.session = StubSession(StubResponse({"error": "bad token"}))
    with pytest.raises(UpstreamUnavailableError):
        adapter.get_open_offers(NFT_ISSUER, 0)


def test_registry_lookup_maps_prices():
    adapter = TokenRegistryAdapter(base_url="http://registry")
    adapter.session = StubSession(
        StubResponse(
            {
                "success": True,
                "tokens": [
                    {"symbol": "SOLO", "issuer": "rSolo", "price_usd": "0.2"},
                    {"symbol": "SOLO", "issuer": "rFake"},
                ],
            }
        )
    )

    tokens = adapter.lookup("SOLO")

    assert tokens == [
        {"symbol": "SOLO", "issuer": "rSolo", "priceUsd": "0.2"},
        {"symbol": "SOLO", "issuer": "rFake", "priceUsd": None},
    ]
    assert adapter.session.requests[0] == (
        "http://registry/api/xrpl/tokens/search",
        {"q": "SOLO"},
    )


def test_registry_http_error():
    adapter = TokenRegistryAdapter(base_url="http://registry")
    adapter.session = StubSession(StubResponse({}, status=503))
    with pytest.raises(UpstreamUnavailableError):
        adapter.lookup("SOLO")


class BrokenJsonResponse(StubResponse):
    def json(self):
        raise ValueError("Expecting value")


def test_invalid_json_is_a_failure():
    adapter = TokenRegistryAdapter(base_url="http://registry/")
    adapter.session = StubSession(BrokenJsonResponse(None))

    assert adapter.get("api/xrpl/tokens/search", params={"q": "SOLO"}) is None
    assert adapter.session.requests[0][0] == "http://registry/api/xrpl/tokens/search"
