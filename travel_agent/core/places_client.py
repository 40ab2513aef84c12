"""Client for looking up points of interest with the Google Places web service."""

import httpx
from typing import Optional, Dict, Any, List
from datetime import datetime, timedelta
from travel_agent.config import settings
from travel_agent.core.errors import PlacesLookupError
from travel_agent.models.travel import PointOfInterest
import logging

logger = logging.getLogger(__name__)


class PlacesCache:
    """Simple in-memory cache for places results"""

    def __init__(self, ttl_minutes: int = 10):
        """Initializes the cache with a specified TTL."""
        self._cache: Dict[str, tuple[List[PointOfInterest], datetime]] = {}
        self.ttl = timedelta(minutes=ttl_minutes)

    def get(self, query: str) -> Optional[List[PointOfInterest]]:
        """Get cached places if not expired"""
        key = query.strip().lower()
        if key in self._cache:
            data, timestamp = self._cache[key]
            if datetime.now() - timestamp < self.ttl:
                logger.info(f"Cache hit for '{query}'")
                return data
            else:
                del self._cache[key]
        return None

    def set(self, query: str, data: List[PointOfInterest]):
        """Cache places results, dropping entries that have expired"""
        now = datetime.now()
        expired = [key for key, (_, stamp) in self._cache.items() if now - stamp >= self.ttl]
        for key in expired:
            del self._cache[key]
        self._cache[query.strip().lower()] = (data, now)

    def __len__(self) -> int:
        return len(self._cache)


class GooglePlacesClient:
    """Text search against the Places API, mapped to display-ready points."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.google_maps_api_key
        self.base_url = settings.places_base_url.rstrip("/")
        self.cache = PlacesCache(ttl_minutes=settings.places_cache_minutes)
        self._transport = transport

    async def search(self, query: str) -> List[PointOfInterest]:
        """
        Look up places for a free-text query, most reviewed first.

        Errors are not retried; they propagate to the caller.
        """
        cached = self.cache.get(query)
        if cached is not None:
            return cached

        logger.info(f"Places text search for '{query}'")
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}/textsearch/json",
                    params={"query": query, "key": self.api_key},
                    timeout=settings.places_timeout,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Places request for '{query}' failed: {e}")
            raise PlacesLookupError(f"Places request failed: {e}") from e

        status = data.get("status", "UNKNOWN_ERROR")
        if status not in ("OK", "ZERO_RESULTS"):
            message = data.get("error_message") or status
            logger.error(f"Places lookup for '{query}' failed: {message}")
            raise PlacesLookupError(f"Places lookup failed: {message}")

        points = [
            point
            for point in (self._convert_place(raw) for raw in data.get("results", []))
            if point is not None
        ]
        points.sort(key=lambda p: p.user_ratings_total, reverse=True)
        logger.info(f"Found {len(points)} places for '{query}'")

        self.cache.set(query, points)
        return points

    def _convert_place(self, raw: Dict[str, Any]) -> Optional[PointOfInterest]:
        """Converts one raw result into a PointOfInterest, or None without coordinates."""
        location = (raw.get("geometry") or {}).get("location") or {}
        if location.get("lat") is None or location.get("lng") is None:
            logger.warning(f"Skipping place without coordinates: {raw.get('name')}")
            return None

        photos = raw.get("photos") or []
        photo_reference = photos[0].get("photo_reference") if photos else None

        return PointOfInterest(
            name=raw.get("name", "Unknown place"),
            address=raw.get("formatted_address", ""),
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
            rating=raw.get("rating"),
            user_ratings_total=raw.get("user_ratings_total") or 0,
            is_open=(raw.get("opening_hours") or {}).get("open_now", False),
            icon=raw.get("icon"),
            photo_url=self.photo_url(photo_reference) if photo_reference else None,
        )

    def photo_url(self, photo_reference: str) -> str:
        """Public URL for a place photo reference."""
        params = httpx.QueryParams(
            {
                "maxwidth": settings.places_photo_max_width,
                "photo_reference": photo_reference,
                "key": self.api_key,
            }
        )
        return f"{self.base_url}/photo?{params}"
