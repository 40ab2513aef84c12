"""Application configuration management using Pydantic's BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """Defines all configuration settings for the API, loaded from .env file."""

    # API Keys
    google_api_key: str
    google_maps_api_key: str

    # Client platform; the points-of-interest tool is native only
    client_platform: Literal["web", "ios", "android"]

    # App settings
    debug: bool = True
    log_level: str = "INFO"

    # Gemini settings
    gemini_model: str = "gemini-2.5-flash-lite"
    temperature: float = 0.7
    max_steps: int = Field(5, ge=1)
    max_retries: int = Field(2, ge=0)

    # User location context, forwarded by the edge proxy
    location_city_header: str = "x-client-city"
    location_region_header: str = "x-client-region"
    default_city: str = "Paris"
    default_region: str = "France"

    # Google Places settings
    places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    places_timeout: float = 10.0
    places_cache_minutes: int = 10
    places_photo_max_width: int = 400

    # Session lifetimes
    session_timeout_minutes: int = 120
    idle_timeout_minutes: int = 30

    class Config:
        """Pydantic model configuration."""

        env_file = ".env"
        extra = "ignore"


settings = Settings()
