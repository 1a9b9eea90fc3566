"""Route ranking: best effective output first."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Tuple

from .models import Route, RouteSet


def route_sort_key(route: Route) -> Tuple[int, Decimal, int]:
    """Higher output first, then lower price impact, then fewer hops."""
    return (-route.out_amount, route.price_impact_pct, route.hop_count)


def rank_routes(routes: Iterable[Route]) -> Tuple[Route, ...]:
    """
    Order routes best-first.

    Always builds a new tuple; the sort is stable, so routes that tie on every
    key keep their response order and re-ranking a ranked sequence is a no-op.
    """
    return tuple(sorted(routes, key=route_sort_key))


def rank_route_set(route_set: RouteSet) -> RouteSet:
    """Rank a freshly fetched route set and reset the selection to the best route."""
    return replace(
        route_set,
        routes=rank_routes(route_set.routes),
        selected_index=0,
        compare_all=False,
    )
