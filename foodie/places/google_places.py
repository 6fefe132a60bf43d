from __future__ import annotations

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError

from ..chat.capabilities import LocationResolve
from ..errors import RetrievalError
from .cache import TTLCache
from .config import DEFAULT_PLACES_CONFIG, PlacesConfig
from .models import Coordinates, PlaceRecord

logger = logging.getLogger(__name__)

FIELD_MASK = ",".join([
    "places.id",
    "places.name",
    "places.displayName",
    "places.rating",
    "places.userRatingCount",
    "places.priceLevel",
    "places.location",
    "places.formattedAddress",
    "places.currentOpeningHours.openNow",
    "places.types",
])

_PRICE_LEVELS = {
    "PRICE_LEVEL_FREE": 0,
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}


# ---------------------------------------------------------------------------
# Response normalisation
# ---------------------------------------------------------------------------


def _first_present(raw: dict[str, Any], keys: list[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _place_name(raw: dict[str, Any]) -> str:
    display = raw.get("displayName")
    if isinstance(display, dict) and display.get("text"):
        return display["text"].strip()
    if isinstance(display, str) and display:
        return display.strip()
    name = raw.get("name")
    if name and not name.startswith("places/"):
        return name
    street = (raw.get("formattedAddress") or raw.get("vicinity") or "").split(",")[0].strip()
    return f"Restaurant at {street}" if street else "Unknown Restaurant"


def _price_level(raw: dict[str, Any]) -> int | None:
    value = _first_present(raw, ["priceLevel", "price_level"])
    if isinstance(value, str):
        return _PRICE_LEVELS.get(value)
    if isinstance(value, int) and 0 <= value <= 4:
        return value
    return None


def _coordinates(raw: dict[str, Any]) -> Coordinates | None:
    location = raw.get("location")
    if isinstance(location, dict) and "latitude" in location:
        lat, lng = location.get("latitude"), location.get("longitude")
    else:
        legacy = (raw.get("geometry") or {}).get("location") or {}
        lat, lng = legacy.get("lat"), legacy.get("lng")
    if lat is None or lng is None:
        return None
    try:
        return Coordinates(lat=lat, lng=lng)
    except ValidationError:
        return None


def _open_now(raw: dict[str, Any]) -> bool | None:
    hours = raw.get("currentOpeningHours")
    if isinstance(hours, dict) and "openNow" in hours:
        return bool(hours["openNow"])
    legacy = raw.get("opening_hours")
    if isinstance(legacy, dict) and "open_now" in legacy:
        return bool(legacy["open_now"])
    return None


def normalize_place(raw: dict[str, Any]) -> PlaceRecord:
    """Map one Places API item (new or legacy field names) onto a PlaceRecord."""
    try:
        rating = float(_first_present(raw, ["rating"]) or 0.0)
    except (TypeError, ValueError):
        rating = 0.0
    try:
        review_count = int(_first_present(raw, ["userRatingCount", "user_ratings_total"]) or 0)
    except (TypeError, ValueError):
        review_count = 0

    return PlaceRecord(
        id=str(_first_present(raw, ["id", "place_id"]) or _place_name(raw)),
        name=_place_name(raw),
        rating=max(0.0, min(5.0, rating)),
        review_count=max(0, review_count),
        price_level=_price_level(raw),
        address=_first_present(raw, ["formattedAddress", "vicinity"]) or "",
        coordinates=_coordinates(raw),
        open_now=_open_now(raw),
        categories=list(raw.get("types") or []),
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class GooglePlacesClient:
    def __init__(
        self,
        resolver: LocationResolve,
        config: PlacesConfig = DEFAULT_PLACES_CONFIG,
        client: httpx.Client | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self.resolver = resolver
        self.config = config
        self._client = client or httpx.Client(timeout=config.timeout)
        self.cache = cache or TTLCache(ttl=config.cache_ttl)

    def search(self, cuisine: str, location: str) -> list[PlaceRecord]:
        """Text-search restaurants; never returns more than ``config.max_results``."""
        request_dict = {"cuisine": cuisine.strip().lower(), "location": location.strip().lower()}
        cached = self.cache.get(request_dict)
        if cached is not None:
            return cached

        started = time.perf_counter()
        resolved = self.resolver.resolve(location)
        body = {
            "textQuery": f"{cuisine} restaurants in {location}",
            "maxResultCount": self.config.max_results,
            "locationBias": {
                "circle": {
                    "center": {
                        "latitude": resolved.coordinates.lat,
                        "longitude": resolved.coordinates.lng,
                    },
                    "radius": self.config.bias_radius_m,
                },
            },
        }

        try:
            resp = self._client.post(
                self.config.places_url,
                headers={
                    "Content-Type": "application/json",
                    "X-Goog-Api-Key": self.config.api_key,
                    "X-Goog-FieldMask": FIELD_MASK,
                },
                json=body,
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RetrievalError(f"Google Places search failed for {cuisine!r} in {location!r}: {exc}") from exc

        places = [
            normalize_place(item)
            for item in data.get("places") or []
            if "restaurant" in (item.get("types") or ["restaurant"])
        ][: self.config.max_results]

        logger.info(
            "Places search cuisine=%r location=%r results=%d elapsed_ms=%.1f",
            cuisine,
            location,
            len(places),
            (time.perf_counter() - started) * 1000,
        )
        self.cache.set(request_dict, places)
        return places
