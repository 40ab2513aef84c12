"""Itinerary completion: duration parsing, day synthesis and the fallback template."""

import re
import logging
from typing import Any, List, Optional, Protocol, Sequence
from pydantic import TypeAdapter, ValidationError

from travel_agent.models.travel import Activity, ItineraryData, ItineraryDay

logger = logging.getLogger(__name__)

DEFAULT_TRIP_DAYS = 3
MAX_TRIP_DAYS = 30

_NUMBER_WORDS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
}

_UNIT_DAYS = {"day": 1, "week": 7, "fortnight": 14, "weekend": 2}

# Words that may sit right before a bare unit without changing its count.
_BARE_UNIT_LEADERS = {"the", "this", "next", "for", "per", "full", "whole"}

_DURATION_RE = re.compile(
    r"(?:\b(?P<count>\d+|" + "|".join(_NUMBER_WORDS) + r")[\s-]*)?"
    r"(?P<unit>days?|nights?|weeks?|fortnights?|weekends?)\b"
)

_DAYS_ADAPTER = TypeAdapter(List[ItineraryDay])


def parse_duration(duration: str) -> Optional[int]:
    """
    Number of days described by a free-text duration, or None.

    "3 days" -> 3, "1 week" -> 7, "a weekend" -> 2, "4 nights" -> 5.
    """
    text = duration.strip().lower()
    if text == "overnight":
        return 1
    if text.isdigit():
        return _clamp(int(text))

    match = _DURATION_RE.search(text)
    if not match:
        return None

    raw_count = match.group("count")
    if raw_count is None:
        # "a few days", "fifteen days": an unknown quantity, not one.
        preceding = text[: match.start()].split()
        if preceding and preceding[-1] not in _BARE_UNIT_LEADERS:
            return None
        count = 1
    elif raw_count.isdigit():
        count = int(raw_count)
    else:
        count = _NUMBER_WORDS[raw_count]

    unit = match.group("unit").rstrip("s")
    if unit == "night":
        return _clamp(count + 1)
    return _clamp(count * _UNIT_DAYS[unit])


def _clamp(days: int) -> int:
    return max(1, min(days, MAX_TRIP_DAYS))


def expected_day_count(duration: str, supplied: Optional[Sequence[ItineraryDay]]) -> int:
    """Days the itinerary must have; falls back to the supplied count, then the default."""
    parsed = parse_duration(duration)
    if parsed is not None:
        return parsed
    if supplied:
        return _clamp(len(supplied))
    return DEFAULT_TRIP_DAYS


def fallback_days(destination: str, count: int) -> List[ItineraryDay]:
    """Fixed activity skeleton, one identical template per day."""
    days = []
    for number in range(1, count + 1):
        if number == 1:
            title = f"Arrival and first look at {destination}"
        elif number == count:
            title = f"Last day in {destination}"
        else:
            title = f"Exploring {destination}"
        days.append(
            ItineraryDay(
                day=number,
                title=title,
                activities=[
                    Activity(
                        time="9:00 AM",
                        activity="Morning sightseeing",
                        location=f"{destination} city center",
                        notes="Start early to avoid the crowds",
                    ),
                    Activity(
                        time="12:30 PM",
                        activity="Lunch at a local restaurant",
                        location=destination,
                    ),
                    Activity(
                        time="3:00 PM",
                        activity="Visit a museum or landmark",
                        location=destination,
                        notes="Check opening hours and book ahead",
                    ),
                    Activity(
                        time="7:30 PM",
                        activity="Dinner featuring regional cuisine",
                        location=destination,
                    ),
                ],
            )
        )
    return days


class JsonGenerator(Protocol):
    async def generate_json(self, prompt: str) -> Any: ...


def _days_prompt(destination: str, duration: str, count: int) -> str:
    return f"""
    Create a day-by-day travel itinerary for {destination} ({duration}).

    Respond ONLY with a JSON array of exactly {count} objects, one per day, numbered 1 to {count}.
    Each object has:
    - "day": the day number
    - "title": a title/theme for the day
    - "activities": an array of objects with "time" (e.g. "9:00 AM"), "activity"
      (use real place names), "location" (a real venue) and optional "notes".
    Every day must have at least 3 activities.
    """


def _well_formed(days: Sequence[ItineraryDay], count: int) -> bool:
    return len(days) == count and all(day.activities for day in days)


def _renumbered(days: Sequence[ItineraryDay]) -> List[ItineraryDay]:
    return [day.model_copy(update={"day": i}) for i, day in enumerate(days, start=1)]


class ItineraryPlanner:
    """Completes itineraries whose days are missing or inconsistent with the duration."""

    def __init__(self, llm: JsonGenerator):
        self.llm = llm

    async def complete(
        self,
        destination: str,
        duration: str,
        days: Optional[Sequence[ItineraryDay]] = None,
    ) -> ItineraryData:
        count = expected_day_count(duration, days)

        if days and _well_formed(days, count):
            return ItineraryData(
                destination=destination, duration=duration, days=_renumbered(days)
            )

        logger.info(
            f"Itinerary for {destination} has {len(days or [])} usable days, "
            f"expected {count}; generating them"
        )
        generated = await self._generate_days(destination, duration, count)
        if generated is None:
            logger.warning(f"Using fallback itinerary template for {destination}")
            generated = fallback_days(destination, count)

        return ItineraryData(destination=destination, duration=duration, days=generated)

    async def _generate_days(
        self, destination: str, duration: str, count: int
    ) -> Optional[List[ItineraryDay]]:
        """Secondary model call; None when it fails or returns the wrong shape."""
        try:
            raw = await self.llm.generate_json(_days_prompt(destination, duration, count))
            if isinstance(raw, dict):
                raw = raw.get("days", raw)
            days = _DAYS_ADAPTER.validate_python(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Generated days for {destination} did not parse: {e}")
            return None
        except Exception as e:
            logger.error(f"Day generation for {destination} failed: {e}", exc_info=True)
            return None

        if not _well_formed(days, count):
            logger.warning(
                f"Generated {len(days)} days for {destination}, expected {count}"
            )
            return None
        return _renumbered(days)
