"""
Runtime configuration loaded from environment variables and an optional .env file.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    """Connection settings for the external gateways and engine tunables."""

    bithomp_api_key: Optional[str] = None
    bithomp_base_url: str = "https://bithomp.com/api/v2"
    xrpl_rpc_url: str = "https://s1.ripple.com:51234/"
    token_registry_url: str = "http://localhost:5000"
    dexscreener_base_url: str = "https://api.dexscreener.com"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    native_coingecko_id: str = "ripple"
    portfolio_timeout: float = 30.0
    settlement_delay: float = 5.0
    sell_slippage_pct: float = 10.0
    http_timeout: float = 30.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current environment."""
        defaults = cls()
        return cls(
            bithomp_api_key=os.getenv("BITHOMP_API_KEY") or None,
            bithomp_base_url=os.getenv("BITHOMP_BASE_URL", defaults.bithomp_base_url),
            xrpl_rpc_url=os.getenv("XRPL_RPC_URL", defaults.xrpl_rpc_url),
            token_registry_url=os.getenv(
                "TOKEN_REGISTRY_URL", defaults.token_registry_url
            ),
            dexscreener_base_url=os.getenv(
                "DEXSCREENER_BASE_URL", defaults.dexscreener_base_url
            ),
            coingecko_base_url=os.getenv(
                "COINGECKO_BASE_URL", defaults.coingecko_base_url
            ),
            native_coingecko_id=os.getenv(
                "NATIVE_COINGECKO_ID", defaults.native_coingecko_id
            ),
            portfolio_timeout=_env_float(
                "PORTFOLIO_TIMEOUT", defaults.portfolio_timeout
            ),
            settlement_delay=_env_float("SETTLEMENT_DELAY", defaults.settlement_delay),
            sell_slippage_pct=_env_float(
                "SELL_SLIPPAGE_PCT", defaults.sell_slippage_pct
            ),
            http_timeout=_env_float("HTTP_TIMEOUT", defaults.http_timeout),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
