"""
The conversation action: one user submission in, one assistant turn out.

A submission moves through idle -> awaiting_model_response -> streaming_text or
tool_executing -> done. The user message is persisted before the model is
called; the assistant message is persisted once, at the end, and only if the
conversation has not changed in the meantime.
"""

import logging
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional, Protocol, Sequence

from travel_agent.config import settings
from travel_agent.core.errors import (
    EmptyMessageError,
    InvalidTransitionError,
    ModelResponseError,
    ToolArgumentsError,
    TravelAgentError,
)
from travel_agent.core.itinerary import ItineraryPlanner
from travel_agent.core.llm_client import FunctionCall, ModelEvent, TextChunk, ToolFeedback
from travel_agent.core.session_manager import SessionManager, session_manager
from travel_agent.core.tools import (
    PlacesSearch,
    ToolCall,
    ToolCallRejected,
    ToolDefinition,
    ToolExecutor,
    ToolKind,
    build_registry,
    resolve_call,
)
from travel_agent.models.chat import (
    Message,
    Pending,
    Platform,
    RenderedResult,
    Resolved,
    StateChanged,
    TextDelta,
    TextResult,
    TurnEvent,
)

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL_RESPONSE = "awaiting_model_response"
    STREAMING_TEXT = "streaming_text"
    TOOL_EXECUTING = "tool_executing"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    TurnState.IDLE: {TurnState.AWAITING_MODEL_RESPONSE, TurnState.FAILED},
    TurnState.AWAITING_MODEL_RESPONSE: {
        TurnState.STREAMING_TEXT,
        TurnState.TOOL_EXECUTING,
        TurnState.FAILED,
    },
    # Text may be followed by a tool call, or by a rejected call and a new step.
    TurnState.STREAMING_TEXT: {
        TurnState.AWAITING_MODEL_RESPONSE,
        TurnState.TOOL_EXECUTING,
        TurnState.DONE,
        TurnState.FAILED,
    },
    TurnState.TOOL_EXECUTING: {TurnState.DONE, TurnState.FAILED},
    TurnState.DONE: set(),
    TurnState.FAILED: set(),
}

_TOOL_HINTS = {
    ToolKind.CREATE_ITINERARY: (
        'REQUIRED for trip planning requests (e.g., "plan a trip", '
        '"create an itinerary", "what should I do in...")'
    ),
    ToolKind.GET_DESTINATION_INFO: (
        'REQUIRED for destination information requests (e.g., "tell me about Paris", '
        '"best time to visit Rome")'
    ),
    ToolKind.GET_POINTS_OF_INTEREST: (
        "REQUIRED to find real places, restaurants, and attractions"
    ),
}


def build_system_prompt(
    registry: Sequence[ToolDefinition], location: Optional[Dict[str, str]] = None
) -> str:
    """Instructions, the user's location and the enumerated tool names."""
    location = location or {}
    city = location.get("city") or settings.default_city
    region = location.get("region") or settings.default_region

    available = {tool.kind for tool in registry}
    tool_lines = [
        f"{i}. {kind.value} - {_TOOL_HINTS[kind]}"
        for i, kind in enumerate((k for k in ToolKind if k in available), start=1)
    ]
    tools_block = "\n".join(tool_lines)

    return f"""You are a helpful travel planning assistant.

Your user is located in: {city}, {region}

CRITICAL: You have access to specialized tools that you MUST use for travel-related requests:

{tools_block}

IMPORTANT:
- ALWAYS use these tools for travel requests.
- NEVER respond with plain text for travel planning or destination queries.
- If user asks about a trip or destination, you MUST call the appropriate tool."""


class ModelClient(Protocol):
    def stream_step(
        self,
        system_prompt: str,
        history: Sequence[Message],
        function_declarations: Sequence[dict],
        feedback: Sequence[ToolFeedback] = (),
        temperature: float = ...,
    ) -> AsyncIterator[ModelEvent]: ...

    async def generate_json(self, prompt: str): ...


class Turn:
    """One submission's progress through the state machine."""

    def __init__(
        self,
        session_id: str,
        text: str,
        platform: Optional[Platform] = None,
        location: Optional[Dict[str, str]] = None,
    ):
        self.session_id = session_id
        self.text = text
        self.platform: Platform = platform or settings.client_platform
        self.location = location or {}
        self.state = TurnState.IDLE
        self.chat_id: Optional[str] = None
        self.result: Optional[RenderedResult] = None

    def advance(self, new_state: TurnState) -> StateChanged:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move turn from {self.state.value} to {new_state.value}"
            )
        logger.debug(f"Turn {self.session_id}: {self.state.value} -> {new_state.value}")
        self.state = new_state
        return StateChanged(state=new_state.value)


class ConversationAgent:
    """Runs user submissions against the model and the tool registry."""

    def __init__(
        self,
        llm: ModelClient,
        places: PlacesSearch,
        sessions: Optional[SessionManager] = None,
        max_steps: int = settings.max_steps,
        max_retries: int = settings.max_retries,
        temperature: float = settings.temperature,
    ):
        if max_steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {max_steps}")
        self.llm = llm
        self.executor = ToolExecutor(ItineraryPlanner(llm), places)
        self.sessions = sessions or session_manager
        self.max_steps = max_steps
        self.max_retries = max_retries
        self.temperature = temperature

    async def submit(
        self,
        session_id: str,
        text: str,
        platform: Optional[Platform] = None,
        location: Optional[Dict[str, str]] = None,
    ) -> Turn:
        """Runs a submission to completion and returns the finished turn."""
        turn = Turn(session_id, text, platform, location)
        async for _ in self.run(turn):
            pass
        return turn

    async def run(self, turn: Turn) -> AsyncIterator[TurnEvent]:
        """
        Runs a submission, yielding state changes, text deltas, the tool
        placeholder and finally the resolved result. Errors are logged and
        re-raised; the user message stays in the history.
        """
        if not turn.text or not turn.text.strip():
            raise EmptyMessageError("Message text must not be empty")

        registry = build_registry(turn.platform)
        snapshot = await self.sessions.append_message(
            turn.session_id, Message(role="user", content=turn.text)
        )
        turn.chat_id = snapshot.chat_id
        logger.info(
            f"Submission for session {turn.session_id} (chat {snapshot.chat_id}, "
            f"{len(snapshot.messages)} messages, tools: {[t.name for t in registry]})"
        )

        try:
            async for event in self._run_steps(turn, snapshot.messages, snapshot.version, registry):
                yield event
        except Exception as e:
            if turn.state not in (TurnState.DONE, TurnState.FAILED):
                turn.advance(TurnState.FAILED)
            logger.error(f"Submission for session {turn.session_id} failed: {e}", exc_info=True)
            raise

    async def _run_steps(
        self,
        turn: Turn,
        history: Sequence[Message],
        version: int,
        registry: Sequence[ToolDefinition],
    ) -> AsyncIterator[TurnEvent]:
        system_prompt = build_system_prompt(registry, turn.location)
        declarations = [tool.function_declaration() for tool in registry]
        feedback: List[ToolFeedback] = []

        for step in range(1, self.max_steps + 1):
            if turn.state is not TurnState.AWAITING_MODEL_RESPONSE:
                yield turn.advance(TurnState.AWAITING_MODEL_RESPONSE)

            text_parts: List[str] = []
            call: Optional[ToolCall] = None
            rejected: Optional[ToolFeedback] = None

            async for event in self._model_step(system_prompt, history, declarations, feedback):
                if isinstance(event, TextChunk):
                    if call or rejected:
                        continue
                    if turn.state is TurnState.AWAITING_MODEL_RESPONSE:
                        yield turn.advance(TurnState.STREAMING_TEXT)
                    text_parts.append(event.text)
                    yield TextDelta(content=event.text)
                elif isinstance(event, FunctionCall) and not (call or rejected):
                    try:
                        call = resolve_call(registry, event.name, event.args)
                    except ToolCallRejected as e:
                        logger.warning(f"Step {step}: rejected call to {event.name}: {e}")
                        rejected = ToolFeedback(call=event, error=str(e))

            if call is not None:
                async for event in self._execute_tool(turn, call, version):
                    yield event
                return

            if rejected is not None:
                feedback.append(rejected)
                continue

            text = "".join(text_parts)
            if not text.strip():
                raise ModelResponseError("Model returned an empty response")

            result = TextResult(content=text)
            await self._commit(turn, Message(role="assistant", content=text), version)
            turn.result = result
            yield Resolved(result=result)
            yield turn.advance(TurnState.DONE)
            return

        raise ToolArgumentsError(
            f"No valid tool call after {self.max_steps} steps: {feedback[-1].error}"
        )

    async def _execute_tool(
        self, turn: Turn, call: ToolCall, version: int
    ) -> AsyncIterator[TurnEvent]:
        yield turn.advance(TurnState.TOOL_EXECUTING)
        yield Pending(placeholder=call.tool.placeholder)

        result, summary = await self.executor.run(call)

        await self._commit(
            turn, Message(role="assistant", content=summary, name=call.tool.name), version
        )
        turn.result = result
        yield Resolved(result=result)
        yield turn.advance(TurnState.DONE)

    async def _model_step(
        self,
        system_prompt: str,
        history: Sequence[Message],
        declarations: Sequence[dict],
        feedback: Sequence[ToolFeedback],
    ) -> AsyncIterator[ModelEvent]:
        """One model step with retries; no retry once output has been passed on."""
        for attempt in range(self.max_retries + 1):
            emitted = False
            try:
                async for event in self.llm.stream_step(
                    system_prompt,
                    history,
                    declarations,
                    feedback,
                    temperature=self.temperature,
                ):
                    emitted = True
                    yield event
                return
            except TravelAgentError:
                raise
            except Exception as e:
                if emitted or attempt == self.max_retries:
                    raise ModelResponseError(f"Model call failed: {e}") from e
                logger.warning(
                    f"Model call failed (attempt {attempt + 1}/{self.max_retries + 1}), retrying: {e}"
                )

    async def _commit(self, turn: Turn, message: Message, version: int) -> None:
        snapshot = await self.sessions.append_message(
            turn.session_id, message, expected_version=version
        )
        logger.info(
            f"Assistant turn saved for chat {snapshot.chat_id} (version {snapshot.version})"
        )
