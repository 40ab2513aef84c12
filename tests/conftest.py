"""Shared fixtures: test settings, a scripted model and a fake places client."""

import asyncio
import os
import uuid

os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test-maps-key")
os.environ.setdefault("CLIENT_PLATFORM", "ios")

import pytest

from travel_agent.core.llm_client import FunctionCall, TextChunk
from travel_agent.core.session_manager import session_manager
from travel_agent.models.travel import PointOfInterest


class ScriptedModel:
    """Stands in for GeminiClient; each stream_step call plays the next script entry."""

    def __init__(self, steps=None, json_result=None, on_step=None):
        self.steps = list(steps or [])
        self.json_result = json_result
        self.on_step = on_step
        self.calls = []
        self.json_prompts = []

    async def stream_step(
        self, system_prompt, history, function_declarations, feedback=(), temperature=0.7
    ):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "history": list(history),
                "tools": [d["name"] for d in function_declarations],
                "feedback": list(feedback),
            }
        )
        if self.on_step is not None:
            await self.on_step(len(self.calls))
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        for event in step:
            if isinstance(event, Exception):
                raise event
            yield event

    async def generate_json(self, prompt):
        self.json_prompts.append(prompt)
        if isinstance(self.json_result, Exception):
            raise self.json_result
        return self.json_result


class FakePlaces:
    """Stands in for GooglePlacesClient."""

    def __init__(self, points=None, error=None):
        self.points = points or []
        self.error = error
        self.queries = []

    async def search(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.points


def itinerary_days(count, destination="Paris"):
    return [
        {
            "day": n,
            "title": f"Day {n} in {destination}",
            "activities": [
                {"time": "9:00 AM", "activity": "Louvre Museum", "location": "Rue de Rivoli"},
                {"time": "1:00 PM", "activity": "Lunch", "location": "Café de Flore"},
            ],
        }
        for n in range(1, count + 1)
    ]


def text_step(*chunks):
    return [TextChunk(chunk) for chunk in chunks]


def call_step(name, /, **args):
    return [FunctionCall(name=name, args=args)]


@pytest.fixture
def session_id():
    """A fresh session registered with the global session manager."""
    sid = uuid.uuid4().hex
    asyncio.run(session_manager.get_or_create_session(sid))
    yield sid
    asyncio.run(session_manager.destroy_session(sid))


@pytest.fixture
def sample_points():
    return [
        PointOfInterest(
            name="Louvre Museum",
            address="Rue de Rivoli, 75001 Paris",
            latitude=48.8606,
            longitude=2.3376,
            rating=4.7,
            user_ratings_total=250000,
            is_open=True,
        ),
        PointOfInterest(
            name="Musée d'Orsay",
            address="1 Rue de la Légion d'Honneur, 75007 Paris",
            latitude=48.86,
            longitude=2.3266,
            rating=4.8,
            user_ratings_total=90000,
        ),
    ]
