"""Debate management and WebSocket endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect

from debate_engine.event_bus import make_event
from debate_engine.exceptions import NotFoundError
from debate_engine.types import EventType
from web.debate_manager import DebateManager
from web.debate_response import (
    AgentResponse,
    DebateListResponse,
    DebateResponse,
    RoundResponse,
)
from web.debate_setup_request import DebateSetupRequest
from web.message_response import MessageResponse, ScoreResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()


def get_debate_manager(request: Request) -> DebateManager:
    return request.app.state.debate_manager


def _debate_response(manager: DebateManager, debate, with_agents: bool = False) -> DebateResponse:
    response = DebateResponse.model_validate(debate)
    if with_agents:
        response.agents = [
            AgentResponse.model_validate(agent)
            for agent in manager.orchestrator.get_agents(debate.id)
        ]
    return response


@router.post("/debates", response_model=DebateResponse, status_code=201)
async def create_debate(
    setup: DebateSetupRequest, manager: DebateManager = Depends(get_debate_manager)
):
    """Create a new pending debate."""
    debate = manager.orchestrator.create_debate(setup.to_setup(manager.config))
    return _debate_response(manager, debate, with_agents=True)


@router.get("/debates", response_model=DebateListResponse)
async def list_debates(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    manager: DebateManager = Depends(get_debate_manager),
):
    """List debates, newest first."""
    debates = manager.orchestrator.list_debates(limit=limit, offset=offset)
    return DebateListResponse(
        debates=[DebateResponse.model_validate(debate) for debate in debates],
        total=manager.orchestrator.count_debates(),
        limit=limit,
        offset=offset,
    )


@router.get("/debates/{debate_id}", response_model=DebateResponse)
async def get_debate(debate_id: str, manager: DebateManager = Depends(get_debate_manager)):
    """Get debate status and participants."""
    debate = manager.orchestrator.get_debate(debate_id)
    return _debate_response(manager, debate, with_agents=True)


@router.delete("/debates/{debate_id}", status_code=204)
async def delete_debate(debate_id: str, manager: DebateManager = Depends(get_debate_manager)):
    """Delete a debate that is not running."""
    manager.orchestrator.delete_debate(debate_id)


@router.post("/debates/{debate_id}/start", response_model=DebateResponse)
async def start_debate(debate_id: str, manager: DebateManager = Depends(get_debate_manager)):
    """Start a pending debate in the background."""
    debate = await manager.orchestrator.start_debate(debate_id)
    return DebateResponse.model_validate(debate)


@router.post("/debates/{debate_id}/stop", response_model=DebateResponse)
async def stop_debate(debate_id: str, manager: DebateManager = Depends(get_debate_manager)):
    """Stop a running debate at the next round boundary."""
    debate = manager.orchestrator.stop_debate(debate_id)
    return DebateResponse.model_validate(debate)


@router.get("/debates/{debate_id}/rounds", response_model=list[RoundResponse])
async def get_rounds(debate_id: str, manager: DebateManager = Depends(get_debate_manager)):
    return [RoundResponse.model_validate(round_) for round_ in manager.orchestrator.get_rounds(debate_id)]


@router.get("/rounds/{round_id}/messages", response_model=list[MessageResponse])
async def get_round_messages(round_id: str, manager: DebateManager = Depends(get_debate_manager)):
    return [
        MessageResponse.model_validate(message)
        for message in manager.orchestrator.get_round_messages(round_id)
    ]


@router.get("/rounds/{round_id}/scores", response_model=list[ScoreResponse])
async def get_round_scores(round_id: str, manager: DebateManager = Depends(get_debate_manager)):
    return [
        ScoreResponse.model_validate(score)
        for score in manager.orchestrator.get_round_scores(round_id)
    ]


@router.get("/debates/{debate_id}/result")
async def get_debate_result(
    debate_id: str, manager: DebateManager = Depends(get_debate_manager)
) -> dict[str, Any]:
    """Final judgment, voting analysis and weighted verdict."""
    return manager.orchestrator.get_debate_result(debate_id)


@router.get("/debates/{debate_id}/export")
async def export_debate(
    debate_id: str, manager: DebateManager = Depends(get_debate_manager)
) -> dict[str, Any]:
    """Complete debate archive as JSON."""
    return manager.orchestrator.export_debate(debate_id)


@ws_router.websocket("/ws/debate/{debate_id}")
async def websocket_endpoint(websocket: WebSocket, debate_id: str):
    """WebSocket endpoint for real-time debate updates."""
    await websocket.accept()
    manager: DebateManager = websocket.app.state.debate_manager

    try:
        manager.orchestrator.get_debate(debate_id)
    except NotFoundError as e:
        await websocket.send_json(make_event(EventType.ERROR, debate_id, {"message": str(e)}))
        await websocket.close(code=4404)
        return

    manager.add_connection(debate_id, websocket)
    try:
        # Keep connection alive; clients never need to send anything
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.remove_connection(debate_id, websocket)
