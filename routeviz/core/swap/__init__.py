"""
Swap State Machine Module

Manages the quote -> confirm -> submit lifecycle of a swap session with
request superseding, timeouts and the high price-impact warning policy.
"""

from .constants import HIGH_PRICE_IMPACT_PCT, MAX_SLIPPAGE_PCT, MIN_SLIPPAGE_PCT
from .models import (
    QuoteTicket,
    SwapContext,
    SwapReceipt,
    SwapState,
    SwapTransition,
    SwapTransitionTrigger,
)
from .state_machine import SwapStateMachine
from .validation import requires_high_impact_warning, validate_quote_request

__all__ = [
    # State Machine
    "SwapStateMachine",
    # Models
    "SwapState",
    "SwapTransition",
    "SwapTransitionTrigger",
    "SwapContext",
    "SwapReceipt",
    "QuoteTicket",
    # Policy
    "HIGH_PRICE_IMPACT_PCT",
    "MIN_SLIPPAGE_PCT",
    "MAX_SLIPPAGE_PCT",
    "requires_high_impact_warning",
    "validate_quote_request",
]
