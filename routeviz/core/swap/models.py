"""
Swap State Machine Models

Defines states, transition records and the context carried through the
quote -> confirm -> submit lifecycle.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..errors import RouteVizError
from ..routes.models import QuoteParams, Route, RouteSet


class SwapState(str, Enum):
    """States of a quote/swap session."""

    IDLE = "idle"                    # No quote requested yet
    QUOTING = "quoting"              # Quote request in flight
    QUOTED = "quoted"                # Route set available for selection
    QUOTE_FAILED = "quote_failed"    # Service error or unparsable quote
    CONFIRMING = "confirming"        # Building, signing and submitting
    SUBMITTED = "submitted"          # Transaction accepted by the network
    SWAP_FAILED = "swap_failed"      # Build/sign/submit failed


class SwapTransitionTrigger(str, Enum):
    """What triggered a state transition."""

    USER_ACTION = "user_action"
    RESPONSE = "response"
    ERROR = "error"
    TIMEOUT = "timeout"
    AUTOMATIC = "automatic"


@dataclass
class SwapTransition:
    """Record of a state transition."""

    id: str = field(default_factory=lambda: str(uuid4()))
    from_state: SwapState = SwapState.IDLE
    to_state: SwapState = SwapState.IDLE
    trigger: SwapTransitionTrigger = SwapTransitionTrigger.AUTOMATIC
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    reason: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fromState": self.from_state.value,
            "toState": self.to_state.value,
            "trigger": self.trigger.value,
            "timestamp": self.timestamp.isoformat(),
            "reason": self.reason,
            "errorMessage": self.error_message,
            "errorCode": self.error_code,
        }


@dataclass(frozen=True)
class QuoteTicket:
    """Identity of one outbound quote request."""

    sequence: int
    params: QuoteParams


@dataclass(frozen=True)
class SwapReceipt:
    """Result of a submitted swap."""

    signature: str
    route: Route
    public_key: str
    high_impact_warning: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "publicKey": self.public_key,
            "highImpactWarning": self.high_impact_warning,
            "route": self.route.to_dict(),
        }


@dataclass
class SwapContext:
    """Mutable session state owned by the state machine."""

    session_id: str = field(default_factory=lambda: str(uuid4()))
    current_state: SwapState = SwapState.IDLE
    state_entered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Quote
    params: Optional[QuoteParams] = None
    route_set: Optional[RouteSet] = None
    pending: Optional[QuoteTicket] = None

    # Swap
    high_impact_warning: bool = False
    receipt: Optional[SwapReceipt] = None

    # Last failure, kept until the next successful transition out of it
    last_error: Optional[RouteVizError] = None

    state_history: List[SwapTransition] = field(default_factory=list)

    @property
    def error_message(self) -> Optional[str]:
        return self.last_error.message if self.last_error else None

    @property
    def is_terminal(self) -> bool:
        return self.current_state == SwapState.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "currentState": self.current_state.value,
            "stateEnteredAt": self.state_entered_at.isoformat(),
            "routeCount": len(self.route_set) if self.route_set else 0,
            "selectedIndex": self.route_set.selected_index if self.route_set is not None else None,
            "compareAll": self.route_set.compare_all if self.route_set else False,
            "highImpactWarning": self.high_impact_warning,
            "signature": self.receipt.signature if self.receipt else None,
            "errorMessage": self.error_message,
            "errorCode": self.last_error.code if self.last_error else None,
            "isTerminal": self.is_terminal,
            "stateHistory": [t.to_dict() for t in self.state_history],
        }
