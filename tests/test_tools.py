"""Tests for the tool registry, schema conversion and call resolution."""

import asyncio
import pytest

from conftest import FakePlaces, ScriptedModel
from travel_agent.core.itinerary import ItineraryPlanner
from travel_agent.core.tools import (
    ToolCallRejected,
    ToolExecutor,
    ToolKind,
    build_registry,
    resolve_call,
    to_gemini_schema,
)
from travel_agent.models.travel import CreateItineraryArgs, DestinationInfoArgs


@pytest.mark.parametrize(
    "platform, expected",
    [
        ("web", ["create_itinerary", "get_destination_info"]),
        ("ios", ["get_points_of_interest", "create_itinerary", "get_destination_info"]),
        ("android", ["get_points_of_interest", "create_itinerary", "get_destination_info"]),
    ],
)
def test_registry_depends_only_on_platform(platform, expected):
    assert [tool.name for tool in build_registry(platform)] == expected
    assert build_registry(platform) == build_registry(platform)


def test_itinerary_schema_is_gemini_compatible():
    schema = to_gemini_schema(CreateItineraryArgs.model_json_schema())

    assert schema["type"] == "OBJECT"
    assert schema["required"] == ["destination", "duration"]
    assert schema["properties"]["destination"]["type"] == "STRING"

    days = schema["properties"]["days"]
    assert days["type"] == "ARRAY"
    assert days["nullable"] is True
    assert days["description"] == "Day-by-day itinerary with real places"

    day = days["items"]
    assert day["properties"]["day"]["type"] == "INTEGER"
    activity = day["properties"]["activities"]["items"]
    assert set(activity["properties"]) == {"time", "activity", "location", "notes"}
    assert activity["properties"]["notes"]["nullable"] is True

    rendered = repr(schema)
    assert "$ref" not in rendered
    assert "title" not in schema
    assert "anyOf" not in rendered


def test_function_declarations_carry_descriptions():
    for tool in build_registry("ios"):
        declaration = tool.function_declaration()
        assert declaration["name"] == tool.kind.value
        assert declaration["description"]
        assert declaration["parameters"]["type"] == "OBJECT"


def test_resolve_call_validates_arguments():
    call = resolve_call(build_registry("web"), "get_destination_info", {"name": "Rome"})
    assert call.tool.kind is ToolKind.GET_DESTINATION_INFO
    assert isinstance(call.args, DestinationInfoArgs)
    assert call.args.name == "Rome"


def test_resolve_call_accepts_float_day_numbers():
    args = {
        "destination": "Nice",
        "duration": "1 day",
        "days": [
            {
                "day": 1.0,
                "title": "Seaside",
                "activities": [
                    {"time": "10:00 AM", "activity": "Swim", "location": "Castel Plage"}
                ],
            }
        ],
    }
    call = resolve_call(build_registry("web"), "create_itinerary", args)
    assert call.args.days[0].day == 1


def test_resolve_call_rejects_unknown_tool():
    with pytest.raises(ToolCallRejected, match="Unknown tool 'book_flight'"):
        resolve_call(build_registry("web"), "book_flight", {})


def test_resolve_call_rejects_bad_arguments():
    with pytest.raises(ToolCallRejected, match="Invalid arguments for get_points_of_interest"):
        resolve_call(build_registry("ios"), "get_points_of_interest", {"poi": ""})


def test_destination_defaults_are_filled():
    executor = ToolExecutor(ItineraryPlanner(ScriptedModel()), FakePlaces())
    call = resolve_call(build_registry("web"), "get_destination_info", {"name": "Bergen"})

    card, summary = asyncio.run(executor.run(call))

    assert card.data.description == "Information about Bergen"
    assert card.data.best_time_to_visit == "Year-round"
    assert card.data.highlights == []
    assert card.data.estimated_budget == "Varies"
    assert summary.startswith("Destination info for Bergen")


def test_destination_summary_lists_highlights():
    executor = ToolExecutor(ItineraryPlanner(ScriptedModel()), FakePlaces())
    call = resolve_call(
        build_registry("web"),
        "get_destination_info",
        {"name": "Rome", "highlights": ["Colosseum", "Pantheon"]},
    )

    _, summary = asyncio.run(executor.run(call))

    assert "Colosseum, Pantheon" in summary
