"""
Route Analytics

Summary statistics over a quoted route set: output spread, price impact
range, protocol usage and route complexity.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .models import RouteSet


@dataclass(frozen=True)
class RouteMetrics:
    """Aggregate view of all candidate routes for one quote."""

    route_count: int = 0
    best_out_amount: Optional[int] = None
    worst_out_amount: Optional[int] = None
    average_out_amount: Optional[int] = None
    price_impact_min: Optional[Decimal] = None
    price_impact_max: Optional[Decimal] = None
    price_impact_avg: Optional[Decimal] = None
    protocol_usage: Dict[str, int] = field(default_factory=dict)  # protocol -> % of hops
    hop_counts: Dict[int, int] = field(default_factory=dict)      # hop count -> % of routes

    def top_protocols(self, limit: int = 3) -> List[Tuple[str, int]]:
        return list(self.protocol_usage.items())[:limit]

    def to_dict(self) -> Dict[str, Any]:
        def _str(value: Any) -> Optional[str]:
            return None if value is None else str(value)

        return {
            "routeCount": self.route_count,
            "bestOutAmount": _str(self.best_out_amount),
            "worstOutAmount": _str(self.worst_out_amount),
            "averageOutAmount": _str(self.average_out_amount),
            "priceImpactRange": {
                "min": _str(self.price_impact_min),
                "max": _str(self.price_impact_max),
                "avg": _str(self.price_impact_avg),
            },
            "protocolUsage": dict(self.protocol_usage),
            "hopCounts": {str(k): v for k, v in self.hop_counts.items()},
        }


def _percentages(counter: Counter, total: int) -> Dict[Any, int]:
    return {key: round(count * 100 / total) for key, count in counter.items()}


def compute_route_metrics(route_set: RouteSet) -> RouteMetrics:
    """Compute metrics for a route set; an empty set yields zero counts."""
    routes = route_set.routes
    if not routes:
        return RouteMetrics()

    outs = [route.out_amount for route in routes]
    impacts = [route.price_impact_pct for route in routes]

    protocols: Counter = Counter(hop.protocol for route in routes for hop in route.hops)
    total_hops = sum(protocols.values())
    usage = _percentages(protocols, total_hops) if total_hops else {}
    usage = dict(sorted(usage.items(), key=lambda item: (-item[1], item[0])))

    hop_counter: Counter = Counter(route.hop_count for route in routes)
    hop_counts = dict(sorted(_percentages(hop_counter, len(routes)).items()))

    return RouteMetrics(
        route_count=len(routes),
        best_out_amount=max(outs),
        worst_out_amount=min(outs),
        average_out_amount=sum(outs) // len(outs),
        price_impact_min=min(impacts),
        price_impact_max=max(impacts),
        price_impact_avg=sum(impacts, Decimal("0")) / len(impacts),
        protocol_usage=usage,
        hop_counts=hop_counts,
    )
