"""
Route Visualizer Errors

Local validation failures are raised before any network call is made.
Service, parsing and wallet failures are carried by the swap state machine
as retryable states, with the original message preserved.
"""

from typing import Any, Dict, Optional


class RouteVizError(Exception):
    """Base class for route visualizer errors."""

    code = "ROUTEVIZ_ERROR"
    recoverable = True

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if code:
            self.code = code
        self.context = context or {}
        super().__init__(message)


# =============================================================================
# Local validation
# =============================================================================

class ValidationError(RouteVizError):
    """Quote or swap parameters are invalid."""

    code = "VALIDATION_ERROR"


class InvalidAmount(ValidationError):
    """Amount is missing, non-numeric, or not strictly positive."""

    code = "INVALID_AMOUNT"


class InvalidSlippage(ValidationError):
    """Slippage tolerance is outside the accepted percentage range."""

    code = "INVALID_SLIPPAGE"


class MissingTokens(ValidationError):
    """Input or output token has not been selected."""

    code = "MISSING_TOKENS"


class InvalidTokenPair(ValidationError):
    """Input and output token are the same asset."""

    code = "INVALID_TOKEN_PAIR"


# =============================================================================
# Service failures
# =============================================================================

class MalformedResponse(RouteVizError):
    """The aggregation service returned a body we could not parse."""

    code = "MALFORMED_RESPONSE"


class QuoteFailed(RouteVizError):
    """The aggregation service rejected the quote request."""

    code = "QUOTE_FAILED"


class RequestTimeout(RouteVizError):
    """A network call did not complete within the configured timeout."""

    code = "REQUEST_TIMEOUT"

    def __init__(self, operation: str, timeout_s: float):
        self.operation = operation
        self.timeout_s = timeout_s
        super().__init__(
            f"{operation} timed out after {timeout_s:g}s",
            context={"operation": operation, "timeout_s": timeout_s},
        )


class WalletNotConnected(RouteVizError):
    """No signing identity is available; the user needs to connect a wallet."""

    code = "WALLET_NOT_CONNECTED"

    def __init__(self, message: str = "Connect a wallet to sign this swap"):
        super().__init__(message)


class SwapFailed(RouteVizError):
    """Transaction construction, signing or submission failed."""

    code = "SWAP_FAILED"

    def __init__(self, message: str, stage: str, context: Optional[Dict[str, Any]] = None):
        self.stage = stage  # "build", "sign_and_submit" or "timeout"
        super().__init__(message, context=context)


# =============================================================================
# Selection and lifecycle
# =============================================================================

class IndexOutOfRange(RouteVizError, IndexError):
    """Route index does not exist in the current route set."""

    code = "INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, route_count: int):
        self.index = index
        self.route_count = route_count
        super().__init__(f"Route index {index} out of range for {route_count} route(s)")


class StaleRoute(RouteVizError):
    """The route or swap intent no longer matches the current quote."""

    code = "STALE_ROUTE"


class InvalidTransitionError(RouteVizError):
    """Raised when an operation is not allowed from the current state."""

    code = "INVALID_TRANSITION"
    recoverable = False

    def __init__(self, from_state: Any, to_state: Any, message: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            message or f"Cannot transition from {from_state.value} to {to_state.value}"
        )


__all__ = [
    "RouteVizError",
    "ValidationError",
    "InvalidAmount",
    "InvalidSlippage",
    "MissingTokens",
    "InvalidTokenPair",
    "MalformedResponse",
    "QuoteFailed",
    "RequestTimeout",
    "WalletNotConnected",
    "SwapFailed",
    "IndexOutOfRange",
    "StaleRoute",
    "InvalidTransitionError",
]
