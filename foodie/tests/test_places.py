from __future__ import annotations

import json

import httpx
import pytest

from foodie.errors import LocationResolutionError, RetrievalError
from foodie.places.config import PlacesConfig
from foodie.places.geocoding import LocationResolver
from foodie.places.google_places import GooglePlacesClient, normalize_place
from foodie.places.models import Coordinates, ResolvedLocation
from foodie.tests.conftest import FakeClassifier

CONFIG = PlacesConfig(api_key="google-key")
MANHATTAN = ResolvedLocation(coordinates=Coordinates(lat=40.7831, lng=-73.9712), normalized_name="Manhattan", confidence=0.9)


class FakeResolver:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[str] = []

    def resolve(self, location: str) -> ResolvedLocation:
        self.calls.append(location)
        if self.error:
            raise self.error
        return MANHATTAN


def _http(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


# ── Normalisation ────────────────────────────────────────────────────────


class TestNormalizePlace:
    def test_new_api_fields(self):
        place = normalize_place({
            "id": "abc",
            "displayName": {"text": "Joe's Pizza"},
            "rating": 4.6,
            "userRatingCount": 12000,
            "priceLevel": "PRICE_LEVEL_INEXPENSIVE",
            "formattedAddress": "7 Carmine St, New York",
            "location": {"latitude": 40.73, "longitude": -74.0},
            "currentOpeningHours": {"openNow": True},
            "types": ["pizza_restaurant", "restaurant"],
        })

        assert place.name == "Joe's Pizza"
        assert place.review_count == 12000
        assert place.price_level == 1
        assert place.coordinates == Coordinates(lat=40.73, lng=-74.0)
        assert place.open_now is True

    def test_legacy_fields(self):
        place = normalize_place({
            "place_id": "legacy-1",
            "name": "Katz's Delicatessen",
            "rating": 4.5,
            "user_ratings_total": 15000,
            "price_level": 2,
            "vicinity": "205 E Houston St",
            "geometry": {"location": {"lat": 40.72, "lng": -73.98}},
            "opening_hours": {"open_now": False},
        })

        assert place.id == "legacy-1"
        assert place.name == "Katz's Delicatessen"
        assert place.review_count == 15000
        assert place.price_level == 2
        assert place.address == "205 E Houston St"
        assert place.open_now is False

    def test_resource_name_is_not_a_display_name(self):
        place = normalize_place({"id": "x", "name": "places/ChIJ123", "formattedAddress": "12 Main St, Brooklyn"})
        assert place.name == "Restaurant at 12 Main St"

    def test_missing_values_default(self):
        place = normalize_place({"id": "x"})
        assert place.name == "Unknown Restaurant"
        assert place.rating == 0.0
        assert place.review_count == 0
        assert place.price_level is None
        assert place.coordinates is None


# ── Places search ────────────────────────────────────────────────────────


class TestGooglePlacesClient:
    def test_search_biases_on_resolved_location_and_filters_types(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append({"headers": dict(request.headers), "body": json.loads(request.content)})
            return httpx.Response(200, json={"places": [
                {"id": "1", "displayName": {"text": "Joe's Pizza"}, "types": ["restaurant"]},
                {"id": "2", "displayName": {"text": "Corner Store"}, "types": ["grocery_store"]},
            ]})

        resolver = FakeResolver()
        client = GooglePlacesClient(resolver, CONFIG, client=_http(handler))

        places = client.search("pizza", "Manhattan")

        assert [p.id for p in places] == ["1"]
        assert resolver.calls == ["Manhattan"]
        body = seen[0]["body"]
        assert body["textQuery"] == "pizza restaurants in Manhattan"
        assert body["locationBias"]["circle"]["center"]["latitude"] == 40.7831
        assert seen[0]["headers"]["x-goog-api-key"] == "google-key"

    def test_results_are_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"places": [{"id": "1", "displayName": {"text": "A"}}]})

        client = GooglePlacesClient(FakeResolver(), CONFIG, client=_http(handler))
        client.search("pizza", "Manhattan")
        client.search("Pizza", "manhattan ")

        assert len(calls) == 1
        assert client.cache.stats()["hits"] == 1

    def test_http_failure_is_a_retrieval_error(self):
        client = GooglePlacesClient(FakeResolver(), CONFIG, client=_http(lambda request: httpx.Response(503)))
        with pytest.raises(RetrievalError):
            client.search("pizza", "Manhattan")

    def test_unresolvable_location_propagates(self):
        resolver = FakeResolver(error=LocationResolutionError("nowhere"))
        client = GooglePlacesClient(resolver, CONFIG, client=_http(lambda request: httpx.Response(200, json={})))
        with pytest.raises(RetrievalError):
            client.search("pizza", "Atlantis")


# ── Geocoding ────────────────────────────────────────────────────────────


class TestLocationResolver:
    def test_google_geocoding_confidence_by_location_type(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{
                    "formatted_address": "Brooklyn, NY, USA",
                    "geometry": {"location": {"lat": 40.6782, "lng": -73.9442}, "location_type": "APPROXIMATE"},
                }],
            })

        resolved = LocationResolver(CONFIG, client=_http(handler)).resolve("Brooklyn")

        assert resolved.normalized_name == "Brooklyn, NY, USA"
        assert resolved.confidence == 0.85

    def test_falls_back_to_llm_when_geocoding_fails(self):
        llm = FakeClassifier(json_responses=[
            {"coordinates": {"lat": 40.74, "lng": -73.99}, "normalizedName": "Flatiron District", "confidence": 1.2},
        ])
        resolver = LocationResolver(
            CONFIG,
            llm=llm,
            client=_http(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})),
        )

        resolved = resolver.resolve("Flatiron")

        assert resolved.normalized_name == "Flatiron District"
        assert resolved.confidence == 0.99
        assert len(llm.json_calls) == 1

    def test_raises_when_every_strategy_fails(self):
        llm = FakeClassifier(json_responses=[{"coordinates": {"lat": 200, "lng": 0}}])
        resolver = LocationResolver(
            PlacesConfig(api_key=""),
            llm=llm,
        )
        with pytest.raises(LocationResolutionError):
            resolver.resolve("Nowhere")

    def test_resolutions_are_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{"formatted_address": "Queens", "geometry": {"location": {"lat": 40.7, "lng": -73.8}}}],
            })

        resolver = LocationResolver(CONFIG, client=_http(handler))
        first = resolver.resolve("Queens")
        second = resolver.resolve("queens")

        assert first == second
        assert len(calls) == 1
