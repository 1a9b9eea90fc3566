"""Limits used by quote validation and the swap safety policy."""

from __future__ import annotations

from decimal import Decimal

# Price impact (percent) above which the UI must show an explicit warning
# before the user may confirm. Never a hard block.
HIGH_PRICE_IMPACT_PCT = Decimal("3")

MIN_SLIPPAGE_PCT = Decimal("0.1")
MAX_SLIPPAGE_PCT = Decimal("50")

BPS_PER_PERCENT = 100

# On-chain token amounts are u64
MAX_AMOUNT_MINOR = 2**64 - 1

__all__ = [
    "HIGH_PRICE_IMPACT_PCT",
    "MIN_SLIPPAGE_PCT",
    "MAX_SLIPPAGE_PCT",
    "BPS_PER_PERCENT",
    "MAX_AMOUNT_MINOR",
]
