"""Tool registry: the closed set of tools the model may call, and their runners."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Type

from pydantic import BaseModel, ValidationError

from travel_agent.core.errors import TravelAgentError
from travel_agent.core.itinerary import ItineraryPlanner
from travel_agent.models.chat import (
    DestinationCard,
    ItineraryCard,
    MapCard,
    Placeholder,
    Platform,
    RenderedResult,
)
from travel_agent.models.travel import (
    CreateItineraryArgs,
    DestinationInfo,
    DestinationInfoArgs,
    PointOfInterest,
    PointsOfInterestArgs,
)

logger = logging.getLogger(__name__)


class ToolKind(str, Enum):
    CREATE_ITINERARY = "create_itinerary"
    GET_DESTINATION_INFO = "get_destination_info"
    GET_POINTS_OF_INTEREST = "get_points_of_interest"


@dataclass(frozen=True)
class ToolDefinition:
    """A tool as declared to the model."""

    kind: ToolKind
    description: str
    args_model: Type[BaseModel]
    placeholder: Placeholder

    @property
    def name(self) -> str:
        return self.kind.value

    def function_declaration(self) -> Dict[str, Any]:
        """Gemini function declaration for this tool."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": to_gemini_schema(self.args_model.model_json_schema()),
        }


ITINERARY_TOOL = ToolDefinition(
    kind=ToolKind.CREATE_ITINERARY,
    description=(
        "Creates a detailed day-by-day travel itinerary for any trip planning request. "
        "Use this tool when the user asks about planning a trip, creating an itinerary, "
        "or wants to know what to do during their visit to a destination."
    ),
    args_model=CreateItineraryArgs,
    placeholder=Placeholder(kind="itinerary", title="Planning your trip..."),
)

DESTINATION_TOOL = ToolDefinition(
    kind=ToolKind.GET_DESTINATION_INFO,
    description=(
        "Provides comprehensive information about a travel destination including "
        "description, best time to visit, highlights, and budget. Use this when the "
        "user asks about a specific city or destination."
    ),
    args_model=DestinationInfoArgs,
    placeholder=Placeholder(kind="destination", title="Loading destination..."),
)

POINTS_OF_INTEREST_TOOL = ToolDefinition(
    kind=ToolKind.GET_POINTS_OF_INTEREST,
    description=(
        "Get real places and things to do from Google Places API for a location. "
        "Use this to find actual restaurants, attractions, and venues to include in "
        "the itinerary."
    ),
    args_model=PointsOfInterestArgs,
    placeholder=Placeholder(kind="map", title="Searching area..."),
)


def build_registry(platform: Platform) -> Tuple[ToolDefinition, ...]:
    """Tools available on a platform. The map feature is native only."""
    tools = []
    if platform != "web":
        tools.append(POINTS_OF_INTEREST_TOOL)
    tools.extend([ITINERARY_TOOL, DESTINATION_TOOL])
    return tuple(tools)


# --- Schema conversion ---

_GEMINI_TYPES = {
    "string": "STRING",
    "integer": "INTEGER",
    "number": "NUMBER",
    "boolean": "BOOLEAN",
    "array": "ARRAY",
    "object": "OBJECT",
}


def to_gemini_schema(
    schema: Dict[str, Any], defs: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Converts a pydantic JSON schema into the OpenAPI subset Gemini accepts:
    refs inlined, Optional[X] turned into nullable X, titles and defaults dropped.
    """
    if defs is None:
        defs = schema.get("$defs", {})

    if "$ref" in schema:
        resolved = dict(defs[schema["$ref"].split("/")[-1]])
        if "description" in schema:
            resolved["description"] = schema["description"]
        return to_gemini_schema(resolved, defs)

    if "anyOf" in schema:
        variants = [v for v in schema["anyOf"] if v.get("type") != "null"]
        if len(variants) != 1:
            raise TypeError(f"Unsupported union in tool schema: {schema['anyOf']}")
        merged = {**variants[0]}
        if "description" in schema:
            merged["description"] = schema["description"]
        converted = to_gemini_schema(merged, defs)
        converted["nullable"] = True
        return converted

    out: Dict[str, Any] = {"type": _GEMINI_TYPES[schema.get("type", "object")]}
    if "description" in schema:
        out["description"] = schema["description"]
    if out["type"] == "OBJECT":
        properties = schema.get("properties", {})
        out["properties"] = {
            key: to_gemini_schema(value, defs) for key, value in properties.items()
        }
        if schema.get("required"):
            out["required"] = list(schema["required"])
    elif out["type"] == "ARRAY":
        out["items"] = to_gemini_schema(schema.get("items", {"type": "string"}), defs)
    return out


# --- Execution ---


class ToolCallRejected(TravelAgentError):
    """The model's call does not match any tool, or its arguments don't validate."""


@dataclass(frozen=True)
class ToolCall:
    """A validated call: the tool plus its typed arguments."""

    tool: ToolDefinition
    args: BaseModel


def resolve_call(
    registry: Sequence[ToolDefinition], name: str, args: Dict[str, Any]
) -> ToolCall:
    """Matches a raw function call against the registry and validates its arguments."""
    for tool in registry:
        if tool.name == name:
            try:
                return ToolCall(tool=tool, args=tool.args_model.model_validate(args))
            except ValidationError as e:
                raise ToolCallRejected(f"Invalid arguments for {name}: {e}") from e
    available = ", ".join(tool.name for tool in registry)
    raise ToolCallRejected(f"Unknown tool '{name}'. Available tools: {available}")


class PlacesSearch(Protocol):
    async def search(self, query: str) -> List[PointOfInterest]: ...


class ToolExecutor:
    """Runs validated tool calls and renders their results."""

    def __init__(self, planner: ItineraryPlanner, places: PlacesSearch):
        self.planner = planner
        self.places = places

    async def run(self, call: ToolCall) -> Tuple[RenderedResult, str]:
        """Returns the rendered card and the text summary persisted in history."""
        kind = call.tool.kind
        logger.info(f"Running tool {kind.value} with {call.args.model_dump()}")
        if kind is ToolKind.CREATE_ITINERARY:
            return await self._create_itinerary(call.args)
        if kind is ToolKind.GET_DESTINATION_INFO:
            return self._destination_info(call.args)
        if kind is ToolKind.GET_POINTS_OF_INTEREST:
            return await self._points_of_interest(call.args)
        raise AssertionError(f"Unhandled tool kind: {kind}")

    async def _create_itinerary(
        self, args: CreateItineraryArgs
    ) -> Tuple[ItineraryCard, str]:
        data = await self.planner.complete(args.destination, args.duration, args.days)
        day_titles = "; ".join(f"Day {d.day}: {d.title}" for d in data.days)
        summary = f"Itinerary for {data.destination} ({data.duration}). {day_titles}"
        return ItineraryCard(data=data), summary

    def _destination_info(self, args: DestinationInfoArgs) -> Tuple[DestinationCard, str]:
        data = DestinationInfo(
            name=args.name,
            description=args.description or f"Information about {args.name}",
            best_time_to_visit=args.best_time_to_visit or "Year-round",
            highlights=args.highlights or [],
            estimated_budget=args.estimated_budget or "Varies",
        )
        summary = f"Destination info for {data.name}: {data.description}"
        if data.highlights:
            summary += f" Highlights: {', '.join(data.highlights)}."
        return DestinationCard(data=data), summary

    async def _points_of_interest(
        self, args: PointsOfInterestArgs
    ) -> Tuple[MapCard, str]:
        points = await self.places.search(args.poi)
        names = ", ".join(p.name for p in points[:10]) or "no results"
        summary = f"Places for '{args.poi}': {names}"
        return MapCard(title=f"Results for {args.poi}", city=args.poi, points=points), summary
