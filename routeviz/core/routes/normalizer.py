"""
Route Model Normalizer

Turns a raw aggregation-service quote body into a RouteSet. This is the
only place that looks at payload shape; everything downstream works with
Route and Hop.
"""

from __future__ import annotations

import copy
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from ..errors import MalformedResponse
from .models import (
    DEFAULT_HOP_PERCENT,
    DEFAULT_OTHER_AMOUNT_THRESHOLD,
    DEFAULT_SLIPPAGE_BPS,
    DEFAULT_SWAP_MODE,
    Hop,
    QuoteParams,
    Route,
    RouteSet,
)

logger = logging.getLogger(__name__)

ROUTES_FIELD = "routes"
HOP_SEQUENCE_FIELD = "routePlan"
DEFAULT_PRICE_IMPACT_PCT = Decimal("0")


def _present(data: Mapping[str, Any], key: str) -> bool:
    return data.get(key) is not None


def parse_amount(value: Any, field_name: str) -> int:
    """Parse an integer minor-unit amount given as an int or a string of digits."""
    if isinstance(value, bool) or isinstance(value, float):
        raise MalformedResponse(f"{field_name} must be an integer amount, got {value!r}")
    if isinstance(value, int) and value >= 0:
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise MalformedResponse(f"{field_name} must be an integer amount, got {value!r}")


def parse_price_impact(value: Any) -> Decimal:
    """
    Parse a price impact percentage given as a number or numeric string.

    Missing values default to zero; anything else non-numeric is malformed.
    """
    if value is None or value == "":
        return DEFAULT_PRICE_IMPACT_PCT
    if isinstance(value, bool):
        raise MalformedResponse(f"priceImpactPct must be numeric, got {value!r}")
    try:
        # str() keeps floats from dragging their binary expansion along
        impact = Decimal(str(value).strip())
    except InvalidOperation:
        raise MalformedResponse(f"priceImpactPct must be numeric, got {value!r}") from None
    if not impact.is_finite():
        raise MalformedResponse(f"priceImpactPct must be finite, got {value!r}")
    return impact


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if not _present(data, key):
        raise MalformedResponse(f"{where} is missing required field '{key}'")
    return data[key]


def parse_hop(step: Any, index: int) -> Hop:
    """Parse one ``routePlan`` entry."""
    where = f"routePlan[{index}]"
    if not isinstance(step, Mapping):
        raise MalformedResponse(f"{where} must be an object")
    swap_info = step.get("swapInfo")
    if not isinstance(swap_info, Mapping):
        raise MalformedResponse(f"{where} is missing 'swapInfo'")

    input_mint = str(_require(swap_info, "inputMint", where))
    output_mint = str(_require(swap_info, "outputMint", where))
    venue_id = str(swap_info.get("ammKey") or "")
    venue_label = swap_info.get("label") or venue_id or "Unknown"

    percent = step.get("percent")
    if percent is None:
        percent = DEFAULT_HOP_PERCENT
    elif isinstance(percent, bool) or not isinstance(percent, (int, float)):
        raise MalformedResponse(f"{where}.percent must be numeric, got {percent!r}")
    elif isinstance(percent, float) and not percent.is_integer():
        raise MalformedResponse(f"{where}.percent must be a whole number, got {percent!r}")

    fee_amount = swap_info.get("feeAmount")
    return Hop(
        venue_id=venue_id,
        venue_label=str(venue_label),
        input_mint=input_mint,
        output_mint=output_mint,
        in_amount=parse_amount(_require(swap_info, "inAmount", where), f"{where}.inAmount"),
        out_amount=parse_amount(_require(swap_info, "outAmount", where), f"{where}.outAmount"),
        fee_amount=0 if fee_amount is None else parse_amount(fee_amount, f"{where}.feeAmount"),
        fee_mint=swap_info.get("feeMint") or input_mint,
        percent=int(percent),
    )


def _check_hop_chain(hops: List[Hop], input_mint: str, output_mint: str) -> None:
    if not hops:
        return
    if hops[0].input_mint != input_mint:
        raise MalformedResponse(
            f"first hop consumes {hops[0].input_mint}, route input is {input_mint}"
        )
    for i in range(len(hops) - 1):
        if hops[i].output_mint != hops[i + 1].input_mint:
            raise MalformedResponse(
                f"hop chain broken between routePlan[{i}] and routePlan[{i + 1}]"
            )
    if hops[-1].output_mint != output_mint:
        raise MalformedResponse(
            f"last hop produces {hops[-1].output_mint}, route output is {output_mint}"
        )


def parse_route(data: Any, request: Optional[QuoteParams] = None) -> Route:
    """Parse one route object (a single-route response or an element of ``routes``)."""
    if not isinstance(data, Mapping):
        raise MalformedResponse("route must be an object")

    plan = data.get(HOP_SEQUENCE_FIELD)
    if not isinstance(plan, list):
        raise MalformedResponse(f"route '{HOP_SEQUENCE_FIELD}' must be a list")
    hops = [parse_hop(step, i) for i, step in enumerate(plan)]

    input_mint = data.get("inputMint") or (hops[0].input_mint if hops else None)
    output_mint = data.get("outputMint") or (hops[-1].output_mint if hops else None)
    if request is not None:
        input_mint = input_mint or request.input_token.address
        output_mint = output_mint or request.output_token.address
    if not input_mint or not output_mint:
        raise MalformedResponse("route is missing 'inputMint'/'outputMint'")

    _check_hop_chain(hops, input_mint, output_mint)

    slippage = data.get("slippageBps")
    threshold = data.get("otherAmountThreshold")
    return Route(
        hops=tuple(hops),
        input_mint=str(input_mint),
        output_mint=str(output_mint),
        in_amount=parse_amount(_require(data, "inAmount", "route"), "inAmount"),
        out_amount=parse_amount(_require(data, "outAmount", "route"), "outAmount"),
        price_impact_pct=parse_price_impact(data.get("priceImpactPct")),
        slippage_bps=DEFAULT_SLIPPAGE_BPS if slippage is None else parse_amount(slippage, "slippageBps"),
        other_amount_threshold=(
            DEFAULT_OTHER_AMOUNT_THRESHOLD
            if threshold is None
            else parse_amount(threshold, "otherAmountThreshold")
        ),
        swap_mode=str(data.get("swapMode") or DEFAULT_SWAP_MODE),
        raw=copy.deepcopy(dict(data)),
    )


def normalize_quote_response(
    payload: Any,
    request: Optional[QuoteParams] = None,
) -> RouteSet:
    """
    Normalize a quote response into a RouteSet in response order.

    Accepts either ``{"routes": [route, ...]}`` or a single route object.
    A body with neither shape (e.g. ``{}``) means "no route found" and yields
    an empty RouteSet. Raises MalformedResponse for bodies that have one of
    the shapes but cannot be parsed.
    """
    if not isinstance(payload, Mapping):
        raise MalformedResponse(f"quote response must be an object, got {type(payload).__name__}")

    if ROUTES_FIELD in payload:
        elements = payload[ROUTES_FIELD]
        if not isinstance(elements, list):
            raise MalformedResponse(f"'{ROUTES_FIELD}' must be a list")
        routes = []
        for i, element in enumerate(elements):
            try:
                routes.append(parse_route(element, request))
            except MalformedResponse as e:
                raise MalformedResponse(f"routes[{i}]: {e.message}") from e
        return RouteSet(routes=tuple(routes), request=request)

    if HOP_SEQUENCE_FIELD in payload:
        return RouteSet(routes=(parse_route(payload, request),), request=request)

    logger.debug("Quote response has no routes: keys=%s", sorted(payload.keys()))
    return RouteSet(routes=(), request=request)


def route_payload(route: Route) -> Dict[str, Any]:
    """Return a copy of the raw payload a route was parsed from."""
    return copy.deepcopy(route.raw)
