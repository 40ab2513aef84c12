"""Simple tests for Pydantic models."""

import pytest
from pydantic import TypeAdapter, ValidationError
from travel_agent.config import Settings
from travel_agent.models.chat import (
    ChatRequest,
    ConversationState,
    Message,
    RenderedResult,
)


def test_message_creation():
    """Test creating a message."""
    message = Message(role="user", content="Plan a 3-day trip to Paris")
    assert message.role == "user"
    assert message.name is None
    assert len(message.id) == 12


def test_message_is_immutable():
    message = Message(role="assistant", content="Hi")
    with pytest.raises(ValidationError):
        message.content = "changed"


def test_message_rejects_unknown_role():
    with pytest.raises(ValidationError):
        Message(role="tool", content="{}")


def test_conversation_state_appends_by_replacement():
    state = ConversationState()
    message = Message(role="user", content="Hi")

    nxt = state.appended(message)

    assert state.messages == ()
    assert nxt.messages == (message,)
    assert nxt.chat_id == state.chat_id
    assert nxt.version == state.version + 1


def test_conversation_reset():
    state = ConversationState().appended(Message(role="user", content="Hi"))
    fresh = state.reset()
    assert fresh.messages == ()
    assert fresh.chat_id != state.chat_id
    assert fresh.version == state.version + 1


def test_chat_request_strips_whitespace():
    request = ChatRequest(message="  Tokyo  ")
    assert request.message == "Tokyo"
    assert request.platform is None


@pytest.mark.parametrize(
    "payload, kind",
    [
        ({"kind": "text", "content": "Hi"}, "text"),
        (
            {
                "kind": "destination",
                "data": {
                    "name": "Rome",
                    "description": "Eternal city",
                    "best_time_to_visit": "Spring",
                    "highlights": ["Colosseum"],
                    "estimated_budget": "$150-250 per day",
                },
            },
            "destination",
        ),
        ({"kind": "map", "title": "Results for cafes", "city": "cafes", "points": []}, "map"),
    ],
)
def test_rendered_result_is_tagged(payload, kind):
    result = TypeAdapter(RenderedResult).validate_python(payload)
    assert result.kind == kind


@pytest.mark.parametrize("overrides", [{"max_steps": 0}, {"max_retries": -1}])
def test_settings_reject_out_of_range_step_limits(overrides):
    with pytest.raises(ValidationError):
        Settings(
            google_api_key="key",
            google_maps_api_key="maps-key",
            client_platform="web",
            **overrides,
        )
