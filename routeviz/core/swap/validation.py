"""Local validation of quote and swap parameters. Never touches the network."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ..errors import InvalidAmount, InvalidSlippage, InvalidTokenPair, MissingTokens
from ..formatting import to_decimal_units, to_minor_units
from ..routes.models import QuoteParams, QuoteRequest, Route
from .constants import (
    BPS_PER_PERCENT,
    HIGH_PRICE_IMPACT_PCT,
    MAX_AMOUNT_MINOR,
    MAX_SLIPPAGE_PCT,
    MIN_SLIPPAGE_PCT,
)


def _to_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidOperation
    if isinstance(value, float):
        value = str(value)
    return Decimal(str(value).strip() if isinstance(value, str) else value)


def parse_amount(value: Any) -> Decimal:
    """Parse a human-unit amount; must be a finite number greater than zero."""
    try:
        amount = _to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Amount must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmount(f"Amount must be a finite number, got {value!r}")
    if amount <= 0:
        raise InvalidAmount(f"Amount must be greater than zero, got {value!r}")
    return amount


def parse_slippage_bps(value: Any) -> int:
    """Convert a slippage percentage in [0.1, 50] to basis points."""
    try:
        pct = _to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidSlippage(f"Slippage must be a number, got {value!r}") from None
    if not pct.is_finite() or pct < MIN_SLIPPAGE_PCT or pct > MAX_SLIPPAGE_PCT:
        raise InvalidSlippage(
            f"Slippage must be between {MIN_SLIPPAGE_PCT}% and {MAX_SLIPPAGE_PCT}%, got {value!r}"
        )
    return int((pct * BPS_PER_PERCENT).to_integral_value(rounding=ROUND_HALF_UP))


def validate_quote_request(request: QuoteRequest) -> QuoteParams:
    """
    Validate a quote request and resolve it to QuoteParams.

    Raises:
        MissingTokens: either token is unset
        InvalidTokenPair: both tokens are the same mint
        InvalidAmount: amount is non-numeric, not positive, below token precision or above u64
        InvalidSlippage: slippage outside [0.1, 50] percent
    """
    if request.input_token is None or request.output_token is None:
        raise MissingTokens("Select both an input and an output token")
    if request.input_token.address == request.output_token.address:
        raise InvalidTokenPair("The input and output tokens are the same")

    amount = parse_amount(request.amount)
    if amount > to_decimal_units(MAX_AMOUNT_MINOR, request.input_token.decimals):
        raise InvalidAmount(f"Amount {request.amount!r} is too large for {request.input_token.symbol}")
    amount_minor = to_minor_units(amount, request.input_token.decimals)
    if amount_minor <= 0:
        raise InvalidAmount(
            f"Amount {amount} is below the precision of {request.input_token.symbol}"
        )

    return QuoteParams(
        input_token=request.input_token,
        output_token=request.output_token,
        amount=amount,
        amount_minor=amount_minor,
        slippage_bps=parse_slippage_bps(request.slippage_pct),
    )


def requires_high_impact_warning(route: Route) -> bool:
    """True when the route's price impact exceeds the warning threshold."""
    return route.price_impact_pct > HIGH_PRICE_IMPACT_PCT
