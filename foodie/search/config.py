from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SearchConfig:
    api_key: str = os.getenv("SERPER_API_KEY", "")
    endpoint: str = "https://google.serper.dev/search"
    country: str = "us"
    language: str = "en"
    num_results: int = 10
    max_discussion_results: int = 5
    timeout: float = 10.0


DEFAULT_SEARCH_CONFIG = SearchConfig()
