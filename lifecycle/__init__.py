"""
Trustline lifecycle: sell an issued token's whole balance, then remove its trustline.
"""

from .trustline_controller import TrustlineLifecycleController

__all__ = ["TrustlineLifecycleController"]
