import pytest

from config import Settings
from wallet_engine import EnvSessionStore


def test_defaults_when_env_is_empty(monkeypatch):
    for name in ("PORTFOLIO_TIMEOUT", "SELL_SLIPPAGE_PCT", "LOG_LEVEL", "XRPL_RPC_URL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.portfolio_timeout == 30.0
    assert settings.sell_slippage_pct == 10.0
    assert settings.log_level == "INFO"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PORTFOLIO_TIMEOUT", "12.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("XRPL_RPC_URL", "https://testnet.example/")

    settings = Settings.from_env()

    assert settings.portfolio_timeout == 12.5
    assert settings.log_level == "DEBUG"
    assert settings.xrpl_rpc_url == "https://testnet.example/"


def test_bad_number_is_reported(monkeypatch):
    monkeypatch.setenv("SELL_SLIPPAGE_PCT", "lots")
    with pytest.raises(ValueError, match="SELL_SLIPPAGE_PCT"):
        Settings.from_env()


def test_env_session_store():
    store = EnvSessionStore(
        {
            "WALLET_HANDLE": "alice",
            "WALLET_ADDRESS": "rAlice",
            "WALLET_SEED": "sEdSeed",
            "LINKED_WALLETS": "ethereum:0xAbc, solana:SoL1,broken",
        }
    )

    session = store("alice")

    assert session.primary_address == "rAlice"
    assert session.cached_signing_key == "sEdSeed"
    assert session.linked_wallets == [
        {"chain": "ethereum", "address": "0xAbc"},
        {"chain": "solana", "address": "SoL1"},
    ]
    assert store("bob") is None
    assert "sEdSeed" not in repr(session)


def test_env_session_store_without_wallet():
    assert EnvSessionStore({})("local") is None
