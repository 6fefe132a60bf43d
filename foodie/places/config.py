from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class PlacesConfig:
    api_key: str = os.getenv("GOOGLE_API_KEY", "")
    places_url: str = "https://places.googleapis.com/v1/places:searchText"
    geocoding_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    max_results: int = 20
    bias_radius_m: float = 2000.0
    timeout: float = 10.0
    cache_ttl: float = 300.0


DEFAULT_PLACES_CONFIG = PlacesConfig()
