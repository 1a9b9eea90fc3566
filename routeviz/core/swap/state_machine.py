"""
Quote/Swap State Machine

Drives a single swap session through quote -> confirm -> submit, with
last-request-wins quote handling and a price-impact warning policy.
"""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Optional, Set, TypeVar

from ...config import settings
from ...providers.base import AggregatorError, AggregatorTimeout, SwapAggregator, WalletProvider
from ..errors import (
    InvalidTransitionError,
    MalformedResponse,
    QuoteFailed,
    RequestTimeout,
    RouteVizError,
    StaleRoute,
    SwapFailed,
    WalletNotConnected,
)
from ..routes.analytics import RouteMetrics, compute_route_metrics
from ..routes.graph import build_graphs
from ..routes.models import GraphView, QuoteParams, QuoteRequest, Route, RouteSet, SwapIntent, TokenDescriptor
from ..routes.normalizer import normalize_quote_response
from ..routes.ranking import rank_route_set
from .models import (
    QuoteTicket,
    SwapContext,
    SwapReceipt,
    SwapState,
    SwapTransition,
    SwapTransitionTrigger,
)
from .validation import requires_high_impact_warning, validate_quote_request

T = TypeVar("T")


def _reason(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or type(exc).__name__


class SwapStateMachine:
    """
    Manages one quote/swap session.

    Features:
    - Validates transitions against an allowed transition map
    - Tags every quote request with a sequence number; late responses from
      superseded requests are dropped
    - Keeps a transition history with failure reasons
    - Caps every network call with a timeout
    """

    TRANSITIONS: Dict[SwapState, Set[SwapState]] = {
        SwapState.IDLE: {
            SwapState.QUOTING,
        },
        SwapState.QUOTING: {
            SwapState.QUOTED,
            SwapState.QUOTE_FAILED,
            SwapState.QUOTING,   # Superseded by a newer request
            SwapState.IDLE,      # Reset while in flight
        },
        SwapState.QUOTED: {
            SwapState.QUOTING,   # Re-quote
            SwapState.CONFIRMING,
            SwapState.IDLE,
        },
        SwapState.QUOTE_FAILED: {
            SwapState.QUOTING,   # Retry
            SwapState.IDLE,
        },
        SwapState.CONFIRMING: {
            SwapState.SUBMITTED,
            SwapState.SWAP_FAILED,
        },
        SwapState.SWAP_FAILED: {
            SwapState.QUOTED,    # Retry the same route without re-quoting
        },
        SwapState.SUBMITTED: {
            SwapState.IDLE,      # Reset for a new swap
        },
    }

    def __init__(
        self,
        aggregator: SwapAggregator,
        wallet: Optional[WalletProvider] = None,
        *,
        timeout_s: Optional[float] = None,
        context: Optional[SwapContext] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the state machine.

        Args:
            aggregator: Quote and swap-building service
            wallet: Signing capability; may be connected later via ``wallet``
            timeout_s: Cap for each network call (default: settings.request_timeout_seconds)
            context: Existing session context to resume
            logger: Optional logger
        """
        if timeout_s is None:
            timeout_s = settings.request_timeout_seconds

        self.aggregator = aggregator
        self.wallet = wallet
        self.timeout_s = timeout_s
        self.context = context or SwapContext()
        self.logger = logger or logging.getLogger(__name__)
        self._sequence = 0

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SwapState:
        return self.context.current_state

    @property
    def route_set(self) -> Optional[RouteSet]:
        return self.context.route_set

    @property
    def selected_route(self) -> Optional[Route]:
        return self.context.route_set.selected_route if self.context.route_set else None

    @property
    def high_impact_warning(self) -> bool:
        return self.context.high_impact_warning

    @property
    def last_error(self) -> Optional[RouteVizError]:
        return self.context.last_error

    @property
    def history(self) -> List[SwapTransition]:
        return self.context.state_history

    def can_transition_to(self, to_state: SwapState) -> bool:
        return to_state in self.TRANSITIONS.get(self.state, set())

    def get_allowed_transitions(self) -> Set[SwapState]:
        return self.TRANSITIONS.get(self.state, set())

    def graphs(
        self,
        input_token: Optional[TokenDescriptor] = None,
        output_token: Optional[TokenDescriptor] = None,
    ) -> List[GraphView]:
        """Graph views for the current route set (selected route, or all in compare mode)."""
        route_set = self.context.route_set
        if route_set is None:
            return []
        params = route_set.request
        return build_graphs(
            route_set,
            input_token or (params.input_token if params else None),
            output_token or (params.output_token if params else None),
        )

    def metrics(self) -> RouteMetrics:
        return compute_route_metrics(self.context.route_set or RouteSet())

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def _transition_to(
        self,
        to_state: SwapState,
        trigger: SwapTransitionTrigger = SwapTransitionTrigger.AUTOMATIC,
        reason: Optional[str] = None,
        error: Optional[RouteVizError] = None,
    ) -> SwapTransition:
        from_state = self.state
        if not self.can_transition_to(to_state):
            raise InvalidTransitionError(
                from_state=from_state,
                to_state=to_state,
                message=f"Invalid transition from {from_state.value} to {to_state.value}. "
                        f"Allowed: {sorted(s.value for s in self.get_allowed_transitions())}",
            )

        transition = SwapTransition(
            from_state=from_state,
            to_state=to_state,
            trigger=trigger,
            reason=reason,
            error_message=error.message if error else None,
            error_code=error.code if error else None,
        )
        self.context.current_state = to_state
        self.context.state_entered_at = transition.timestamp
        self.context.state_history.append(transition)

        self.logger.info(
            f"Swap session {self.context.session_id}: {from_state.value} -> {to_state.value}"
            f"{f' ({reason})' if reason else ''}"
        )
        return transition

    def _require_state(self, target: SwapState, *allowed: SwapState, message: Optional[str] = None) -> None:
        if self.state not in allowed:
            raise InvalidTransitionError(self.state, target, message)

    async def _call(self, awaitable: Awaitable[T], operation: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_s)
        except asyncio.TimeoutError:
            raise RequestTimeout(operation, self.timeout_s) from None

    def _is_current(self, ticket: QuoteTicket) -> bool:
        return ticket.sequence == self._sequence

    # -------------------------------------------------------------------------
    # Quote
    # -------------------------------------------------------------------------

    async def request_quote(self, request: QuoteRequest) -> Optional[RouteSet]:
        """
        Request routes for the given parameters.

        Validation errors (MissingTokens, InvalidTokenPair, InvalidAmount,
        InvalidSlippage) are raised before any network call. Service failures
        move the session to QUOTE_FAILED and return None; so does a response
        that arrives after a newer request was issued (it is dropped).

        Returns:
            The ranked RouteSet (possibly empty) when this request is still current.
        """
        self._require_state(
            SwapState.QUOTING,
            SwapState.IDLE,
            SwapState.QUOTING,
            SwapState.QUOTED,
            SwapState.QUOTE_FAILED,
        )
        params = validate_quote_request(request)

        previous = self.context.params
        if previous is None or previous.pair_key != params.pair_key:
            # Routes for another pair or amount are no longer meaningful
            self.context.route_set = None

        self._sequence += 1
        ticket = QuoteTicket(sequence=self._sequence, params=params)
        self.context.params = params
        self.context.pending = ticket
        self._transition_to(
            SwapState.QUOTING,
            trigger=SwapTransitionTrigger.USER_ACTION,
            reason=f"quote #{ticket.sequence} {params.input_token.symbol} -> {params.output_token.symbol}",
        )

        error: Optional[RouteVizError] = None
        route_set: Optional[RouteSet] = None
        try:
            payload = await self._call(self.aggregator.get_quote(params), "Quote request")
            route_set = rank_route_set(normalize_quote_response(payload, params))
        except (RequestTimeout, MalformedResponse) as e:
            error = e
        except AggregatorTimeout as e:
            error = RequestTimeout("Quote request", self.timeout_s)
            error.context["detail"] = e.message
        except AggregatorError as e:
            error = QuoteFailed(e.message, context={"status_code": e.status_code})
        except Exception as e:
            self.logger.exception("Unexpected quote failure")
            error = QuoteFailed(_reason(e))

        if not self._is_current(ticket):
            self.logger.debug(
                f"Dropping stale quote #{ticket.sequence} (current #{self._sequence})"
            )
            return None

        self.context.pending = None

        if error is not None:
            self.context.route_set = None
            self.context.last_error = error
            self.context.high_impact_warning = False
            self.logger.warning(f"Quote #{ticket.sequence} failed: {error.message}")
            self._transition_to(
                SwapState.QUOTE_FAILED,
                trigger=(
                    SwapTransitionTrigger.TIMEOUT
                    if isinstance(error, RequestTimeout)
                    else SwapTransitionTrigger.ERROR
                ),
                reason=error.message,
                error=error,
            )
            return None

        self.context.route_set = route_set
        self.context.last_error = None
        self.context.receipt = None
        self._refresh_warning()
        self._transition_to(
            SwapState.QUOTED,
            trigger=SwapTransitionTrigger.RESPONSE,
            reason=f"{len(route_set)} route(s)",
        )
        return route_set

    def _refresh_warning(self) -> None:
        route = self.selected_route
        self.context.high_impact_warning = bool(route and requires_high_impact_warning(route))

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select_route(self, index: int) -> Route:
        """Select a route by its ranked index; raises IndexOutOfRange for bad indices."""
        self._require_state(
            SwapState.QUOTED,
            SwapState.QUOTED,
            message="No quoted routes to select from",
        )
        self.context.route_set = self.context.route_set.select(index)
        self._refresh_warning()
        return self.context.route_set.selected_route

    def toggle_compare_all(self) -> bool:
        """Flip the compare-all view; returns the new flag."""
        self._require_state(
            SwapState.QUOTED,
            SwapState.QUOTED,
            message="No quoted routes to compare",
        )
        self.context.route_set = self.context.route_set.toggle_compare_all()
        return self.context.route_set.compare_all

    # -------------------------------------------------------------------------
    # Swap
    # -------------------------------------------------------------------------

    async def confirm_swap(
        self,
        intent: SwapIntent,
        route: Optional[Route] = None,
    ) -> Optional[SwapReceipt]:
        """
        Build, sign and submit a swap for a quoted route.

        ``route`` defaults to the selected route and must be one of the
        current route set's route objects. Raises WalletNotConnected when no
        signing identity is available, RequestTimeout when the wallet does not
        answer, and StaleRoute when the routes were re-quoted while waiting
        for it. Nothing is built in those cases. Build, signing or submission
        failures pass through SWAP_FAILED back to QUOTED so the same route can
        be retried; they return None and leave the reason in ``last_error``.

        High price impact never blocks the swap; ``high_impact_warning`` is
        set so the caller can require an explicit acknowledgement first.
        """
        self._require_state(SwapState.CONFIRMING, SwapState.QUOTED)
        params = validate_quote_request(intent)
        route_set = self.context.route_set
        route = self._current_route(params, route)

        public_key = None
        if self.wallet is not None:
            public_key = await self._call(self.wallet.get_public_key(), "Wallet connection")
        if not public_key:
            raise WalletNotConnected()

        # A re-quote may have replaced the route set while the wallet answered
        if self.state != SwapState.QUOTED or self.context.route_set is not route_set:
            raise StaleRoute("Routes were re-quoted while connecting the wallet; confirm again")
        route = self._current_route(params, route)

        warning = requires_high_impact_warning(route)
        self.context.high_impact_warning = warning
        if warning:
            self.logger.warning(
                f"Swap session {self.context.session_id}: price impact "
                f"{route.price_impact_pct}% exceeds warning threshold"
            )

        self._transition_to(
            SwapState.CONFIRMING,
            trigger=SwapTransitionTrigger.USER_ACTION,
            reason=f"{route.hop_count} hop(s) via {', '.join(route.venues) or 'direct'}",
        )

        stage = "build"
        try:
            transaction = await self._call(
                self.aggregator.build_swap_transaction(route, public_key),
                "Swap transaction build",
            )
            stage = "sign_and_submit"
            signature = await self._call(
                self.wallet.sign_and_submit(transaction),
                "Swap submission",
            )
        except Exception as e:
            # Signing rejections come from the wallet as arbitrary exceptions
            failure = SwapFailed(
                _reason(e),
                stage="timeout" if isinstance(e, (RequestTimeout, AggregatorTimeout)) else stage,
                context={"error_type": type(e).__name__},
            )
            self._fail_swap(failure)
            return None

        receipt = SwapReceipt(
            signature=signature,
            route=route,
            public_key=public_key,
            high_impact_warning=warning,
        )
        self.context.receipt = receipt
        self.context.last_error = None
        self._transition_to(
            SwapState.SUBMITTED,
            trigger=SwapTransitionTrigger.RESPONSE,
            reason=f"signature {signature}",
        )
        return receipt

    def _current_route(self, params: QuoteParams, route: Optional[Route]) -> Route:
        route_set = self.context.route_set
        if route_set is None or route_set.is_empty:
            raise StaleRoute("There is no quoted route to swap")
        if params != route_set.request:
            raise StaleRoute("Swap parameters changed since the quote; request a new quote")
        route = route or route_set.selected_route
        if not any(candidate is route for candidate in route_set.routes):
            raise StaleRoute("Route does not belong to the current quote")
        return route

    def _fail_swap(self, failure: SwapFailed) -> None:
        self.context.last_error = failure
        self.logger.warning(f"Swap failed during {failure.stage}: {failure.message}")
        self._transition_to(
            SwapState.SWAP_FAILED,
            trigger=SwapTransitionTrigger.ERROR,
            reason=failure.message,
            error=failure,
        )
        self._transition_to(
            SwapState.QUOTED,
            trigger=SwapTransitionTrigger.AUTOMATIC,
            reason="route kept for retry",
        )

    # -------------------------------------------------------------------------
    # Reset
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Return to IDLE, discarding routes and any in-flight quote."""
        if self.state == SwapState.IDLE:
            self._sequence += 1
            self._clear()
            return
        self._require_state(
            SwapState.IDLE,
            *(state for state, targets in self.TRANSITIONS.items() if SwapState.IDLE in targets),
        )
        self._sequence += 1
        self._clear()
        self._transition_to(SwapState.IDLE, trigger=SwapTransitionTrigger.USER_ACTION, reason="reset")

    def _clear(self) -> None:
        self.context.params = None
        self.context.route_set = None
        self.context.pending = None
        self.context.receipt = None
        self.context.last_error = None
        self.context.high_impact_warning = False

    def to_dict(self) -> Dict[str, Any]:
        return self.context.to_dict()
