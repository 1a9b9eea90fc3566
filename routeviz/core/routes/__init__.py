"""
Route Model Module

Normalizes aggregator quote responses into routes, ranks them, and derives
graph views and analytics for display.
"""

from .analytics import RouteMetrics, compute_route_metrics
from .graph import build_graph, build_graphs
from .models import (
    GraphEdge,
    GraphNode,
    GraphView,
    Hop,
    QuoteParams,
    QuoteRequest,
    Route,
    RouteSet,
    SwapIntent,
    TokenDescriptor,
)
from .normalizer import normalize_quote_response, route_payload
from .ranking import rank_route_set, rank_routes

__all__ = [
    # Models
    "TokenDescriptor",
    "Hop",
    "Route",
    "RouteSet",
    "QuoteRequest",
    "QuoteParams",
    "SwapIntent",
    "GraphNode",
    "GraphEdge",
    "GraphView",
    # Normalizer
    "normalize_quote_response",
    "route_payload",
    # Ranking
    "rank_routes",
    "rank_route_set",
    # Graph
    "build_graph",
    "build_graphs",
    # Analytics
    "RouteMetrics",
    "compute_route_metrics",
]
