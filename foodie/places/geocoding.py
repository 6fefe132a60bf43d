from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from ..errors import LocationResolutionError
from ..llm.groq_client import GroqClient
from .cache import TTLCache
from .config import DEFAULT_PLACES_CONFIG, PlacesConfig
from .models import Coordinates, ResolvedLocation

logger = logging.getLogger(__name__)

_LOCATION_TYPE_CONFIDENCE = {
    "ROOFTOP": 0.99,
    "RANGE_INTERPOLATED": 0.95,
    "GEOMETRIC_CENTER": 0.90,
    "APPROXIMATE": 0.85,
}

GEOCODE_PROMPT = """\
You are a global geography expert with knowledge of cities, neighborhoods, \
landmarks and regions worldwide.

Location query: "{location}"

Provide precise coordinates for this location and a normalized name.
Confidence levels:
- 0.95-0.99: exact address or landmark
- 0.85-0.94: city or neighborhood center
- 0.70-0.84: region or area approximation
- 0.50-0.69: country or state center"""

GEOCODE_SCHEMA = {
    "type": "object",
    "properties": {
        "coordinates": {
            "type": "object",
            "properties": {"lat": {"type": "number"}, "lng": {"type": "number"}},
            "required": ["lat", "lng"],
        },
        "normalizedName": {"type": "string"},
        "confidence": {"type": "number"},
    },
    "required": ["coordinates", "normalizedName", "confidence"],
}


class LocationResolver:
    """Turn free-text locations into coordinates.

    Tries the Google Geocoding API first and the LLM's geographic knowledge
    second. Raises ``LocationResolutionError`` only when neither produces a
    coordinate.
    """

    def __init__(
        self,
        config: PlacesConfig = DEFAULT_PLACES_CONFIG,
        llm: GroqClient | None = None,
        client: httpx.Client | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self.config = config
        self.llm = llm
        self._client = client or httpx.Client(timeout=config.timeout)
        self.cache = cache or TTLCache(ttl=config.cache_ttl)

    def resolve(self, location: str) -> ResolvedLocation:
        cache_key = {"op": "geocode", "location": location.strip().lower()}
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        result = self._geocode_with_google(location)
        if result is None:
            result = self._geocode_with_llm(location)

        logger.info(
            "Location resolved %r -> %s (%.4f, %.4f) confidence=%.2f",
            location,
            result.normalized_name,
            result.coordinates.lat,
            result.coordinates.lng,
            result.confidence,
        )
        self.cache.set(cache_key, result)
        return result

    def _geocode_with_google(self, location: str) -> ResolvedLocation | None:
        if not self.config.api_key:
            logger.info("Google Geocoding skipped: no API key")
            return None

        try:
            resp = self._client.get(
                self.config.geocoding_url,
                params={"address": location, "key": self.config.api_key},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Google Geocoding request failed: %s", exc)
            return None

        status = data.get("status")
        if status != "OK" or not data.get("results"):
            logger.warning(
                "Google Geocoding returned %s for %r: %s",
                status,
                location,
                data.get("error_message", "no results"),
            )
            return None

        best = data["results"][0]
        geometry = best.get("geometry") or {}
        point = geometry.get("location") or {}
        try:
            coordinates = Coordinates(lat=point["lat"], lng=point["lng"])
        except (KeyError, ValidationError):
            logger.warning("Google Geocoding result for %r has no usable coordinates", location)
            return None

        return ResolvedLocation(
            coordinates=coordinates,
            normalized_name=best.get("formatted_address") or location,
            confidence=_LOCATION_TYPE_CONFIDENCE.get(geometry.get("location_type"), 0.95),
        )

    def _geocode_with_llm(self, location: str) -> ResolvedLocation:
        if self.llm is None:
            raise LocationResolutionError(f"Unable to resolve location {location!r}: no geocoding strategy left")

        try:
            parsed = self.llm.classify_json(GEOCODE_PROMPT.format(location=location), GEOCODE_SCHEMA)
            point = parsed.get("coordinates") or {}
            coordinates = Coordinates(lat=point.get("lat"), lng=point.get("lng"))
        except Exception as exc:
            raise LocationResolutionError(
                f"Unable to resolve location {location!r}: all geocoding methods failed"
            ) from exc

        try:
            confidence = float(parsed.get("confidence") or 0.8)
        except (TypeError, ValueError):
            confidence = 0.8

        return ResolvedLocation(
            coordinates=coordinates,
            normalized_name=parsed.get("normalizedName") or location,
            confidence=max(0.5, min(0.99, confidence)),
        )
