"""Pydantic models for chat-related API requests and responses."""

import uuid
from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from typing import Annotated, List, Literal, Optional, Tuple, Union

from travel_agent.models.travel import DestinationInfo, ItineraryData, PointOfInterest

Platform = Literal["web", "ios", "android"]


def new_id() -> str:
    """Short random identifier for chats and messages."""
    return uuid.uuid4().hex[:12]


class Message(BaseModel):
    """Data model for a single message in a chat history."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    role: Literal["user", "assistant", "system"]
    content: str
    name: Optional[str] = None  # tool that produced an assistant turn


class ConversationState(BaseModel):
    """Ordered history of one chat. Replaced as a whole, never mutated."""

    model_config = ConfigDict(frozen=True)

    chat_id: str = Field(default_factory=new_id)
    messages: Tuple[Message, ...] = ()
    version: int = 0

    def appended(self, message: Message) -> "ConversationState":
        """Returns the next state with one more message."""
        return ConversationState(
            chat_id=self.chat_id,
            messages=self.messages + (message,),
            version=self.version + 1,
        )

    def reset(self) -> "ConversationState":
        """Returns an empty state with a fresh chat id."""
        return ConversationState(version=self.version + 1)


# --- Rendered results ---


class TextResult(BaseModel):
    """Plain markdown answer from the model."""

    kind: Literal["text"] = "text"
    content: str


class ItineraryCard(BaseModel):
    """Card rendering a day-by-day itinerary."""

    kind: Literal["itinerary"] = "itinerary"
    title: str = "Your Travel Itinerary"
    data: ItineraryData


class DestinationCard(BaseModel):
    """Card rendering destination information."""

    kind: Literal["destination"] = "destination"
    title: str = "Destination Information"
    data: DestinationInfo


class MapCard(BaseModel):
    """Card rendering points of interest on a map."""

    kind: Literal["map"] = "map"
    title: str
    city: str
    points: List[PointOfInterest]


RenderedResult = Annotated[
    Union[TextResult, ItineraryCard, DestinationCard, MapCard],
    Field(discriminator="kind"),
]


class Placeholder(BaseModel):
    """Transient element shown while a tool is working. Never persisted."""

    kind: Literal["itinerary", "destination", "map"]
    title: str


# --- Turn events, streamed to subscribers ---


class StateChanged(BaseModel):
    """The turn moved to a new state."""

    type: Literal["state"] = "state"
    state: str


class TextDelta(BaseModel):
    """One incremental chunk of streamed model text."""

    type: Literal["text"] = "text"
    content: str


class Pending(BaseModel):
    """A tool has started; show its placeholder."""

    type: Literal["pending"] = "pending"
    placeholder: Placeholder


class Resolved(BaseModel):
    """The turn's final rendered result."""

    type: Literal["resolved"] = "resolved"
    result: RenderedResult


TurnEvent = Union[StateChanged, TextDelta, Pending, Resolved]


# --- HTTP bodies ---


class ChatRequest(BaseModel):
    """Request model for the main chat endpoint."""

    message: Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]
    platform: Optional[Platform] = None


class ChatResponse(BaseModel):
    """Response model for the main chat endpoint."""

    chat_id: str
    result: RenderedResult
    state: str


class ConversationResponse(BaseModel):
    """Persisted history of the current chat."""

    chat_id: str
    version: int
    messages: List[Message]


class ToolListResponse(BaseModel):
    """Tool names the model may call for a platform."""

    platform: Platform
    tools: List[str]
