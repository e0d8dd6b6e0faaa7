"""
Ordered fallback over unreliable data sources.

A strategy is a zero-argument coroutine function returning a Decimal or None.
Strategies run in order and the first strictly positive value wins; a strategy
that raises counts as having found nothing.
"""

import logging
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Sequence, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Strategy = Callable[[], Awaitable[Optional[Decimal]]]


@dataclass(frozen=True)
class CascadeResult:
    value: Optional[Decimal] = None
    source: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.value is not None

    @classmethod
    def empty(cls) -> "CascadeResult":
        return cls()


async def run_cascade(
    strategies: Sequence[Tuple[str, Strategy]], label: str = ""
) -> CascadeResult:
    """Run ``(name, strategy)`` pairs in order and return the first positive result."""
    for name, strategy in strategies:
        try:
            value = await strategy()
        except Exception as e:
            logger.warning("%s: %s lookup failed: %s", label, name, e)
            continue

        if value is not None and value > 0:
            logger.debug("%s: %s -> %s", label, name, value)
            return CascadeResult(value=value, source=name)

        logger.debug("%s: %s found nothing", label, name)

    return CascadeResult.empty()
