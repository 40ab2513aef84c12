"""Main conversational chat endpoints for the travel agent."""

import json
import logging
from functools import lru_cache
from typing import Dict, NoReturn, Optional, Tuple
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from travel_agent.config import settings
from travel_agent.core.agent import ConversationAgent, Turn
from travel_agent.core.errors import (
    ConversationConflictError,
    EmptyMessageError,
    ModelResponseError,
    PlacesLookupError,
    SessionNotFoundError,
)
from travel_agent.core.llm_client import GeminiClient
from travel_agent.core.places_client import GooglePlacesClient
from travel_agent.core.session_manager import session_manager
from travel_agent.core.tools import build_registry
from travel_agent.models.chat import (
    ChatRequest,
    ChatResponse,
    ConversationResponse,
    Platform,
    ToolListResponse,
)

# --- Setup ---
router = APIRouter(prefix="/chat", tags=["chat"])
logger = logging.getLogger(__name__)


@lru_cache
def get_agent() -> ConversationAgent:
    """The process-wide agent, created on first use."""
    return ConversationAgent(llm=GeminiClient(), places=GooglePlacesClient())


def get_session_id(request: Request) -> str:
    """Session ID attached by the session middleware."""
    session_id = getattr(request.state, "session_id", None)
    if not session_id:
        raise HTTPException(status_code=400, detail="Session ID is missing.")
    return session_id


def get_location(request: Request) -> Dict[str, str]:
    """User location forwarded by the edge proxy; empty when unavailable."""
    try:
        location = {
            "city": request.headers.get(settings.location_city_header, ""),
            "region": request.headers.get(settings.location_region_header, ""),
        }
        return {key: value.strip() for key, value in location.items() if value.strip()}
    except Exception as e:
        logger.error(f"Error reading location headers: {e}")
        return {}


def _error_status(exc: Exception) -> Tuple[int, str]:
    """HTTP status and client-safe detail for a failed turn."""
    if isinstance(exc, EmptyMessageError):
        return 422, str(exc)
    if isinstance(exc, ConversationConflictError):
        return 409, str(exc)
    if isinstance(exc, (ModelResponseError, PlacesLookupError)):
        return 502, str(exc)
    return 500, "Unexpected error while answering."


def _handle_agent_error(exc: Exception) -> NoReturn:
    status_code, detail = _error_status(exc)
    raise HTTPException(status_code=status_code, detail=detail) from exc


def _sse_line(obj: dict) -> bytes:
    """Single SSE event line as bytes so clients render it immediately."""
    return f"data: {json.dumps(obj)}\n\n".encode("utf-8")


# --- Main Chat Endpoints ---


@router.post("/", response_model=ChatResponse)
async def chat(
    chat_request: ChatRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
    agent: ConversationAgent = Depends(get_agent),
):
    """Handles an incoming user message and returns the rendered answer."""
    await session_manager.get_or_create_session(session_id)
    logger.info(f"Chat request for session {session_id}: '{chat_request.message}'")

    try:
        turn = await agent.submit(
            session_id,
            chat_request.message,
            platform=chat_request.platform,
            location=get_location(request),
        )
    except Exception as e:
        _handle_agent_error(e)

    return ChatResponse(chat_id=turn.chat_id, result=turn.result, state=turn.state.value)


async def _stream_turn(agent: ConversationAgent, turn: Turn):
    """Yield SSE events for each turn event, then a final done or error event."""
    try:
        async for event in agent.run(turn):
            yield _sse_line(event.model_dump(mode="json"))
        yield _sse_line({"type": "done", "chat_id": turn.chat_id})
    except Exception as e:
        status_code, detail = _error_status(e)
        yield _sse_line({"type": "error", "status": status_code, "error": detail})


@router.post("/stream")
async def chat_stream(
    chat_request: ChatRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
    agent: ConversationAgent = Depends(get_agent),
):
    """Stream the turn as SSE: state changes, text deltas, placeholder, result."""
    await session_manager.get_or_create_session(session_id)
    turn = Turn(
        session_id,
        chat_request.message,
        platform=chat_request.platform,
        location=get_location(request),
    )
    return StreamingResponse(
        _stream_turn(agent, turn),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/messages", response_model=ConversationResponse)
async def list_messages(session_id: str = Depends(get_session_id)):
    """Returns the persisted history of the current chat."""
    session = await session_manager.get_or_create_session(session_id)
    conversation = session.conversation
    return ConversationResponse(
        chat_id=conversation.chat_id,
        version=conversation.version,
        messages=list(conversation.messages),
    )


@router.post("/new", response_model=ConversationResponse)
async def new_chat(session_id: str = Depends(get_session_id)):
    """Starts a new chat; previous messages are dropped."""
    await session_manager.get_or_create_session(session_id)
    try:
        conversation = await session_manager.reset_conversation(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return ConversationResponse(
        chat_id=conversation.chat_id, version=conversation.version, messages=[]
    )


@router.get("/tools", response_model=ToolListResponse)
async def list_tools(platform: Optional[Platform] = None):
    """Lists the tools the model may call for a platform."""
    platform = platform or settings.client_platform
    return ToolListResponse(
        platform=platform, tools=[tool.name for tool in build_registry(platform)]
    )
