"""
Services for portfolio valuation.
"""

from .address_registry import AddressRegistry
from .balance_service import BalanceService
from .floor_resolver import FloorResolver
from .portfolio_service import PortfolioService
from .pricing_service import PricingService
from .token_price_resolver import TokenPriceResolver

__all__ = [
    "AddressRegistry",
    "BalanceService",
    "FloorResolver",
    "PortfolioService",
    "PricingService",
    "TokenPriceResolver",
]
