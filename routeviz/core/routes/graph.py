"""
Route Graph Builder

Derives left-to-right node/edge graphs from route hop sequences:
input token -> hop 1 -> ... -> hop n -> output token.
"""

from __future__ import annotations

from typing import List, Optional

from .models import GraphEdge, GraphNode, GraphView, Route, RouteSet, TokenDescriptor

INPUT_NODE_ID = "input"
OUTPUT_NODE_ID = "output"
DIRECT_EDGE_LABEL = "Direct"
OUTPUT_EDGE_LABEL = "Output"

COLUMN_WIDTH = 200
TERMINAL_Y = 150
HOP_Y = (100, 200)  # Alternating rows keep neighbouring hop labels apart
ROUTE_ROW_HEIGHT = 300


def hop_node_id(index: int) -> str:
    return f"amm-{index}"


def route_namespace(route_index: int) -> str:
    return f"route-{route_index}"


def build_graph(
    route: Route,
    input_token: Optional[TokenDescriptor],
    output_token: Optional[TokenDescriptor],
    *,
    namespace: Optional[str] = None,
    route_index: int = 0,
) -> GraphView:
    """
    Build the graph for a single route.

    Node ids are ``input``, ``amm-{i}`` and ``output``, prefixed with
    ``{namespace}/`` when a namespace is given. A route with no hops gets a
    single input -> output edge labelled "Direct".
    """
    prefix = f"{namespace}/" if namespace else ""
    y_offset = route_index * ROUTE_ROW_HEIGHT if namespace else 0

    def node_id(local_id: str) -> str:
        return f"{prefix}{local_id}"

    nodes: List[GraphNode] = [
        GraphNode(
            id=node_id(INPUT_NODE_ID),
            label=input_token.symbol if input_token and input_token.symbol else "Input",
            kind="input",
            x=0,
            y=TERMINAL_Y + y_offset,
        )
    ]
    edges: List[GraphEdge] = []

    previous = nodes[0].id
    for i, hop in enumerate(route.hops):
        current = node_id(hop_node_id(i))
        nodes.append(
            GraphNode(
                id=current,
                label=hop.venue_label,
                kind="hop",
                x=COLUMN_WIDTH * (i + 1),
                y=HOP_Y[i % 2] + y_offset,
                hop_index=i,
                protocol=hop.protocol,
            )
        )
        edges.append(
            GraphEdge(
                id=node_id(f"edge-{i}"),
                source=previous,
                target=current,
                label=f"{hop.percent}%",
            )
        )
        previous = current

    output_id = node_id(OUTPUT_NODE_ID)
    nodes.append(
        GraphNode(
            id=output_id,
            label=output_token.symbol if output_token and output_token.symbol else "Output",
            kind="output",
            x=COLUMN_WIDTH * (route.hop_count + 1),
            y=TERMINAL_Y + y_offset,
        )
    )
    edges.append(
        GraphEdge(
            id=node_id(f"edge-{route.hop_count}"),
            source=previous,
            target=output_id,
            label=OUTPUT_EDGE_LABEL if route.hops else DIRECT_EDGE_LABEL,
        )
    )

    return GraphView(route_index=route_index, nodes=tuple(nodes), edges=tuple(edges))


def build_graphs(
    route_set: RouteSet,
    input_token: Optional[TokenDescriptor],
    output_token: Optional[TokenDescriptor],
) -> List[GraphView]:
    """
    Build the graphs to render for a route set.

    Compare-all mode yields one namespaced graph per route; otherwise only the
    selected route is drawn.
    """
    if route_set.is_empty:
        return []

    if route_set.compare_all:
        return [
            build_graph(
                route,
                input_token,
                output_token,
                namespace=route_namespace(i),
                route_index=i,
            )
            for i, route in enumerate(route_set.routes)
        ]

    return [
        build_graph(
            route_set.routes[route_set.selected_index],
            input_token,
            output_token,
            route_index=route_set.selected_index,
        )
    ]
