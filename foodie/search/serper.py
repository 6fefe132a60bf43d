from __future__ import annotations

import logging
import time
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel

from ..errors import ConfigurationError, RetrievalError
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig

logger = logging.getLogger(__name__)

_PRICING_TERMS = ("price", "cost", "expensive", "cheap", "$")
_MENU_TERMS = ("menu", "order", "dish", "best", "recommend")


class SearchResult(BaseModel):
    title: str
    url: str
    snippet: str = ""
    position: int = 0
    date: str | None = None
    domain: str = "unknown"


def _extract_domain(url: str) -> str:
    host = urlparse(url).hostname
    if not host:
        return "unknown"
    return host.removeprefix("www.")


def deduplicate(results: list[SearchResult]) -> list[SearchResult]:
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if not result.url or result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return unique


class WebSearchClient:
    def __init__(
        self,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.Client(timeout=config.timeout)

    def search(self, query: str, num_results: int | None = None) -> list[SearchResult]:
        if not self.config.api_key:
            raise ConfigurationError("SERPER_API_KEY is not configured")

        started = time.perf_counter()
        try:
            resp = self._client.post(
                self.config.endpoint,
                headers={"X-API-KEY": self.config.api_key, "Content-Type": "application/json"},
                json={
                    "q": query,
                    "num": num_results or self.config.num_results,
                    "gl": self.config.country,
                    "hl": self.config.language,
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RetrievalError(f"Web search failed for {query!r}: {exc}") from exc

        results: list[SearchResult] = []
        for index, item in enumerate(data.get("organic") or []):
            link = item.get("link") or ""
            results.append(SearchResult(
                title=item.get("title") or "Source",
                url=link,
                snippet=item.get("snippet") or "",
                position=item.get("position") or index + 1,
                date=item.get("date"),
                domain=_extract_domain(link),
            ))

        logger.info(
            "Web search query=%r results=%d elapsed_ms=%.1f",
            query,
            len(results),
            (time.perf_counter() - started) * 1000,
        )
        return results

    def search_discussions(self, restaurant_name: str, location: str | None = None) -> list[SearchResult]:
        location_part = f" {location}" if location else ""
        results = self.search(f'site:reddit.com "{restaurant_name}"{location_part} restaurant review')
        reddit = [r for r in results if "reddit.com" in r.url and "/user/" not in r.url]
        return reddit[: self.config.max_discussion_results]

    def search_menu(self, restaurant_name: str) -> list[SearchResult]:
        results = self.search(f'"what to order at {restaurant_name}" menu recommendations', 15)
        return [
            r for r in results
            if any(term in f"{r.title} {r.snippet}".lower() for term in _MENU_TERMS)
        ]

    def search_pricing(self, restaurant_name: str, location: str | None = None) -> list[SearchResult]:
        location_part = f" {location}" if location else ""
        results = self.search(f'"{restaurant_name}"{location_part} expensive price cost menu prices')
        return [
            r for r in results
            if any(term in f"{r.title} {r.snippet}".lower() for term in _PRICING_TERMS)
        ]

    def search_comparison(self, first: str, second: str, location: str | None = None) -> list[SearchResult]:
        location_part = f" {location}" if location else ""
        return self.search(f'"{first}" vs "{second}"{location_part} restaurant comparison review')
