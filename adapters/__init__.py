"""
API Adapters Package
Contains base adapter and specific adapters for the ledger, indexing and registry services.
"""

from .base import BaseAdapter
from .bithomp import BithompAdapter
from .token_registry import TokenRegistryAdapter
from .xrpl_ledger import XrplLedgerAdapter

__all__ = [
    'BaseAdapter',
    'BithompAdapter',
    'TokenRegistryAdapter',
    'XrplLedgerAdapter'
]
