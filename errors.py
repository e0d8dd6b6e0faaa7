"""
Exception types for the wallet engine.

Upstream failures are recovered locally by the services; precondition
failures abort a single request before any ledger call is made.
"""


class WalletEngineError(Exception):
    """Base class for all wallet engine errors."""


class UpstreamUnavailableError(WalletEngineError):
    """Raised by a gateway when an external call returned no usable response."""


class PreconditionError(WalletEngineError):
    """Raised when a request cannot start at all."""


class UnknownUserError(PreconditionError):
    """Raised when no session exists for the requested user handle."""


class SigningKeyUnavailableError(PreconditionError):
    """Raised when the session holds no cached signing key."""
