from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..config import settings
from ..core.errors import IndexOutOfRange, InvalidTransitionError, ValidationError
from ..core.routes.models import QuoteRequest
from ..core.swap import SwapStateMachine, validate_quote_request
from ..logging_config import bind_swap_session
from ..providers.base import SwapAggregator, TokenRegistry, TokenRegistryError
from ..providers.jupiter import get_swap_provider, get_token_provider


router = APIRouter(prefix="/routes")

# session_id -> state machine
_sessions: Dict[str, SwapStateMachine] = {}


class QuoteBody(BaseModel):
    session_id: str = Field(description="Client session identifier")
    input_mint: str = Field(description="Mint address of the input token")
    output_mint: str = Field(description="Mint address of the output token")
    amount: str = Field(description="Amount of input token in human units")
    slippage_pct: Optional[float] = Field(default=None, description="Slippage tolerance in percent (0.1 - 50)")


class SelectBody(BaseModel):
    index: int = Field(ge=0, description="Ranked route index")


def get_aggregator() -> SwapAggregator:
    return get_swap_provider()


def get_registry() -> TokenRegistry:
    return get_token_provider()


def _session(session_id: str) -> SwapStateMachine:
    machine = _sessions.get(session_id)
    if machine is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return machine


def _snapshot(machine: SwapStateMachine) -> Dict[str, Any]:
    route_set = machine.route_set
    return {
        "state": machine.state.value,
        "routes": route_set.to_dict() if route_set is not None else None,
        "highImpactWarning": machine.high_impact_warning,
        "error": machine.last_error.message if machine.last_error else None,
        "errorCode": machine.last_error.code if machine.last_error else None,
    }


@router.post("/quote")
async def post_quote(
    body: QuoteBody,
    aggregator: SwapAggregator = Depends(get_aggregator),
    registry: TokenRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    try:
        input_token = await registry.get_token(body.input_mint)
        output_token = await registry.get_token(body.output_mint)
    except TokenRegistryError as e:
        raise HTTPException(status_code=503, detail=str(e))

    request = QuoteRequest(
        input_token=input_token,
        output_token=output_token,
        amount=body.amount,
        slippage_pct=str(body.slippage_pct if body.slippage_pct is not None else settings.default_slippage_pct),
    )
    # Rejected requests never create a session
    try:
        validate_quote_request(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail={"code": e.code, "message": e.message})

    machine = _sessions.get(body.session_id)
    if machine is None:
        machine = SwapStateMachine(aggregator)
        machine.context.session_id = body.session_id
        _sessions[body.session_id] = machine

    try:
        with bind_swap_session(body.session_id):
            await machine.request_quote(request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail={"code": e.code, "message": e.message})
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return _snapshot(machine)


@router.get("/{session_id}")
async def get_routes(session_id: str) -> Dict[str, Any]:
    return _snapshot(_session(session_id))


@router.post("/{session_id}/select")
async def post_select(session_id: str, body: SelectBody) -> Dict[str, Any]:
    machine = _session(session_id)
    try:
        with bind_swap_session(session_id):
            machine.select_route(body.index)
    except IndexOutOfRange as e:
        raise HTTPException(status_code=400, detail=e.message)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return _snapshot(machine)


@router.post("/{session_id}/compare")
async def post_compare(session_id: str) -> Dict[str, Any]:
    machine = _session(session_id)
    try:
        with bind_swap_session(session_id):
            machine.toggle_compare_all()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return _snapshot(machine)


@router.get("/{session_id}/graph")
async def get_graph(session_id: str) -> Dict[str, Any]:
    machine = _session(session_id)
    return {"graphs": [graph.to_dict() for graph in machine.graphs()]}


@router.get("/{session_id}/metrics")
async def get_metrics(session_id: str) -> Dict[str, Any]:
    return _session(session_id).metrics().to_dict()


@router.get("/{session_id}/state")
async def get_state(session_id: str) -> Dict[str, Any]:
    return _session(session_id).to_dict()


@router.delete("/{session_id}")
async def delete_session(session_id: str) -> Dict[str, Any]:
    machine = _session(session_id)
    try:
        with bind_swap_session(session_id):
            machine.reset()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)
    del _sessions[session_id]
    return {"sessionId": session_id, "state": machine.state.value}
