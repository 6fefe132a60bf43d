"""
Place data layer.

Responsibilities:
- Define the canonical PlaceRecord shape every other layer consumes.
- Resolve free-text locations to coordinates (Google Geocoding, LLM fallback).
- Search venues with the Google Places API and normalise the response.
- Cache search and geocoding results with an owned TTL cache.
"""
