"""
Route Models

Immutable snapshots of a single quote response: tokens, hops, routes,
route sets and the graph projections derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from ..errors import IndexOutOfRange
from ..formatting import classify_protocol

DEFAULT_SLIPPAGE_BPS = 50
DEFAULT_OTHER_AMOUNT_THRESHOLD = 0
DEFAULT_SWAP_MODE = "ExactIn"
DEFAULT_HOP_PERCENT = 100


@dataclass(frozen=True)
class TokenDescriptor:
    """Token metadata resolved by the token registry."""

    address: str  # Mint address (Base58)
    symbol: str
    name: str = ""
    logo_uri: Optional[str] = None
    decimals: int = 9

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "TokenDescriptor":
        """Parse a token from a Jupiter token list entry."""
        return cls(
            address=data.get("address", ""),
            symbol=data.get("symbol", ""),
            name=data.get("name", ""),
            logo_uri=data.get("logoURI"),
            decimals=int(data.get("decimals", 9)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "logo_uri": self.logo_uri,
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class Hop:
    """One execution step through a single liquidity venue."""

    venue_id: str                # ammKey
    venue_label: str             # Free text, e.g. "Raydium CLMM"
    input_mint: str
    output_mint: str
    in_amount: int               # Minor units
    out_amount: int              # Minor units
    fee_amount: int = 0
    fee_mint: Optional[str] = None
    percent: int = DEFAULT_HOP_PERCENT  # Share of the flow through this hop

    @property
    def protocol(self) -> str:
        return classify_protocol(self.venue_label)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venueId": self.venue_id,
            "venueLabel": self.venue_label,
            "protocol": self.protocol,
            "inputMint": self.input_mint,
            "outputMint": self.output_mint,
            "inAmount": str(self.in_amount),
            "outAmount": str(self.out_amount),
            "feeAmount": str(self.fee_amount),
            "feeMint": self.fee_mint,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class Route:
    """A complete path from input asset to output asset."""

    hops: Tuple[Hop, ...]
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    price_impact_pct: Decimal = Decimal("0")
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    other_amount_threshold: int = DEFAULT_OTHER_AMOUNT_THRESHOLD
    swap_mode: str = DEFAULT_SWAP_MODE

    # Source payload for this route, passed back verbatim when building the swap.
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def hop_count(self) -> int:
        return len(self.hops)

    @property
    def is_direct(self) -> bool:
        return not self.hops

    @property
    def venues(self) -> Tuple[str, ...]:
        return tuple(hop.venue_label for hop in self.hops)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputMint": self.input_mint,
            "outputMint": self.output_mint,
            "inAmount": str(self.in_amount),
            "outAmount": str(self.out_amount),
            "priceImpactPct": str(self.price_impact_pct),
            "slippageBps": self.slippage_bps,
            "otherAmountThreshold": str(self.other_amount_threshold),
            "swapMode": self.swap_mode,
            "hopCount": self.hop_count,
            "hops": [hop.to_dict() for hop in self.hops],
        }


@dataclass(frozen=True)
class QuoteRequest:
    """Raw quote parameters as entered by the user; validated by the state machine."""

    input_token: Optional[TokenDescriptor]
    output_token: Optional[TokenDescriptor]
    amount: Union[str, int, Decimal, None]  # Human units
    slippage_pct: Union[str, int, Decimal] = Decimal("0.5")


# Confirming a swap carries the same parameters as the quote it executes.
SwapIntent = QuoteRequest


@dataclass(frozen=True)
class QuoteParams:
    """Validated quote parameters; the identity tag of a quote round-trip."""

    input_token: TokenDescriptor
    output_token: TokenDescriptor
    amount: Decimal      # Human units
    amount_minor: int    # Minor units of the input token
    slippage_bps: int

    @property
    def pair_key(self) -> Tuple[str, str, int]:
        """The (input, output, amount) triple a route set belongs to."""
        return (self.input_token.address, self.output_token.address, self.amount_minor)


@dataclass(frozen=True)
class RouteSet:
    """Routes for one (input token, output token, amount) triple plus selection state."""

    routes: Tuple[Route, ...] = ()
    request: Optional[QuoteParams] = None
    selected_index: int = 0
    compare_all: bool = False

    def __len__(self) -> int:
        return len(self.routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    @property
    def is_empty(self) -> bool:
        return not self.routes

    @property
    def selected_route(self) -> Optional[Route]:
        if self.is_empty:
            return None
        return self.routes[self.selected_index]

    @property
    def best_route(self) -> Optional[Route]:
        return self.routes[0] if self.routes else None

    def select(self, index: int) -> "RouteSet":
        if index < 0 or index >= len(self.routes):
            raise IndexOutOfRange(index, len(self.routes))
        return replace(self, selected_index=index)

    def toggle_compare_all(self) -> "RouteSet":
        return replace(self, compare_all=not self.compare_all)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routes": [route.to_dict() for route in self.routes],
            "selectedIndex": self.selected_index,
            "compareAll": self.compare_all,
        }


@dataclass(frozen=True)
class GraphNode:
    """A node in a route graph: input terminal, hop, or output terminal."""

    id: str
    label: str
    kind: str  # "input", "hop", "output"
    x: int
    y: int
    hop_index: Optional[int] = None
    protocol: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind,
            "data": {"label": self.label},
            "position": {"x": self.x, "y": self.y},
        }
        if self.protocol is not None:
            data["data"]["protocol"] = self.protocol
        if self.hop_index is not None:
            data["data"]["hopIndex"] = self.hop_index
        return data


@dataclass(frozen=True)
class GraphEdge:
    """A directed edge between consecutive route graph nodes."""

    id: str
    source: str
    target: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "animated": True,
        }


@dataclass(frozen=True)
class GraphView:
    """Node/edge projection of one route."""

    route_index: int
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(node.id for node in self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "routeIndex": self.route_index,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }
