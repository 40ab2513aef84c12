"""Tests for the Google Places client, against a mocked HTTP transport."""

import asyncio
import httpx
import pytest

from travel_agent.core.errors import PlacesLookupError
from travel_agent.core.places_client import GooglePlacesClient, PlacesCache

RESULTS = {
    "status": "OK",
    "results": [
        {
            "name": "Small Bistro",
            "formatted_address": "3 Rue Cler, Paris",
            "geometry": {"location": {"lat": 48.856, "lng": 2.306}},
            "rating": 4.5,
            "user_ratings_total": 120,
            "icon": "https://maps.gstatic.com/restaurant.png",
        },
        {
            "name": "Famous Brasserie",
            "formatted_address": "1 Boulevard Saint-Germain, Paris",
            "geometry": {"location": {"lat": 48.853, "lng": 2.333}},
            "rating": 4.2,
            "user_ratings_total": 5400,
            "opening_hours": {"open_now": True},
            "photos": [{"photo_reference": "abc123"}],
        },
        {"name": "Nowhere", "formatted_address": "Unknown"},
    ],
}


def make_client(handler):
    requests = []

    def record(request):
        requests.append(request)
        return handler(request)

    return GooglePlacesClient(transport=httpx.MockTransport(record)), requests


def test_search_maps_and_sorts_results():
    client, requests = make_client(lambda r: httpx.Response(200, json=RESULTS))

    points = asyncio.run(client.search("restaurants in Paris"))

    assert [p.name for p in points] == ["Famous Brasserie", "Small Bistro"]
    brasserie, bistro = points
    assert brasserie.is_open is True
    assert bistro.is_open is False
    assert brasserie.latitude == 48.853
    assert brasserie.longitude == 2.333
    assert "photo_reference=abc123" in brasserie.photo_url
    assert "maxwidth=400" in brasserie.photo_url
    assert bistro.photo_url is None

    assert requests[0].url.path.endswith("/textsearch/json")
    assert requests[0].url.params["query"] == "restaurants in Paris"
    assert requests[0].url.params["key"] == "test-maps-key"


def test_search_uses_cache_for_repeat_queries():
    client, requests = make_client(lambda r: httpx.Response(200, json=RESULTS))

    asyncio.run(client.search("museums in Rome"))
    asyncio.run(client.search("Museums in Rome "))

    assert len(requests) == 1


def test_zero_results_is_empty():
    client, _ = make_client(
        lambda r: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
    )
    assert asyncio.run(client.search("igloos in Sahara")) == []


def test_error_status_raises():
    client, _ = make_client(
        lambda r: httpx.Response(
            200, json={"status": "REQUEST_DENIED", "error_message": "API key invalid"}
        )
    )
    with pytest.raises(PlacesLookupError, match="API key invalid"):
        asyncio.run(client.search("cafes"))


def test_http_error_becomes_lookup_error():
    client, requests = make_client(lambda r: httpx.Response(500))
    with pytest.raises(PlacesLookupError) as exc_info:
        asyncio.run(client.search("cafes"))
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)
    assert len(requests) == 1


def test_cache_expires():
    cache = PlacesCache(ttl_minutes=0)
    cache.set("parks", [])
    assert cache.get("parks") is None


def test_cache_prunes_expired_entries_on_write():
    cache = PlacesCache(ttl_minutes=0)
    for query in ("parks", "museums", "cafes"):
        cache.set(query, [])
    assert len(cache) == 1
