"""Pydantic models for the travel cards and the tool arguments that build them."""

from pydantic import BaseModel, Field
from typing import List, Optional


class Activity(BaseModel):
    """A single scheduled stop within an itinerary day."""

    time: str = Field(description="Time of activity (e.g., '9:00 AM')")
    activity: str = Field(
        description="Activity name - use real place names when possible"
    )
    location: str = Field(
        description=(
            "Specific location/venue with real place name "
            "(e.g., 'Eiffel Tower', 'Le Jules Verne Restaurant')"
        )
    )
    notes: Optional[str] = Field(
        default=None, description="Additional notes, tips, or booking information"
    )


class ItineraryDay(BaseModel):
    """One day of an itinerary."""

    day: int = Field(description="Day number")
    title: str = Field(description="Title/theme for the day")
    activities: List[Activity]


class ItineraryData(BaseModel):
    """A complete day-by-day itinerary."""

    destination: str
    duration: str
    days: List[ItineraryDay]


class DestinationInfo(BaseModel):
    """Display-ready destination facts, with defaults filled in."""

    name: str
    description: str
    best_time_to_visit: str
    highlights: List[str]
    estimated_budget: str


class PointOfInterest(BaseModel):
    """A place returned by the places lookup, mapped for the map card."""

    name: str
    address: str
    latitude: float
    longitude: float
    rating: Optional[float] = None
    user_ratings_total: int = 0
    is_open: bool = False
    icon: Optional[str] = None
    photo_url: Optional[str] = None


# --- Tool arguments, as declared to the model ---


class CreateItineraryArgs(BaseModel):
    """Arguments for the create_itinerary tool."""

    destination: str = Field(description="The destination for the trip")
    duration: str = Field(
        description="Duration of the trip (e.g., '5 days', '1 week')"
    )
    days: Optional[List[ItineraryDay]] = Field(
        default=None, description="Day-by-day itinerary with real places"
    )


class DestinationInfoArgs(BaseModel):
    """Arguments for the get_destination_info tool."""

    name: str = Field(description="Destination name")
    description: Optional[str] = Field(
        default=None,
        description="Engaging description of the destination with key facts",
    )
    best_time_to_visit: Optional[str] = Field(
        default=None, description="Best time to visit with weather info"
    )
    highlights: Optional[List[str]] = Field(
        default=None,
        description="Key highlights and must-see attractions (at least 4-5 items)",
    )
    estimated_budget: Optional[str] = Field(
        default=None,
        description=(
            "Estimated daily budget range for the trip (e.g., '$100-200 per day')"
        ),
    )


class PointsOfInterestArgs(BaseModel):
    """Arguments for the get_points_of_interest tool."""

    poi: str = Field(
        min_length=1,
        description=(
            "Specific query to send to the Google Places API. e.g. "
            '"restaurants in Paris", "museums in Amsterdam", '
            '"things to do in Las Vegas". Be specific about the type of place you want.'
        ),
    )
