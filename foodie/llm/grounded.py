from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from pydantic import BaseModel, Field

from ..search.serper import SearchResult, WebSearchClient, deduplicate
from .groq_client import GroqClient

logger = logging.getLogger(__name__)

GROUNDED_SYSTEM_PROMPT = (
    "You are a knowledgeable restaurant assistant. Provide detailed, accurate "
    "information about restaurants, menus, reviews and locations. When web "
    "sources are provided, base your answer on them and refer to them by number. "
    "Use markdown formatting, keep paragraphs short and lead with the most "
    "important information."
)

_MAX_SOURCES = 8
_MAX_WORKERS = 4


class SourceKind(str, Enum):
    general = "general"
    discussions = "discussions"
    menu = "menu"
    pricing = "pricing"
    comparison = "comparison"


class SourceRequest(BaseModel):
    kind: SourceKind
    restaurant_names: list[str] = Field(default_factory=list)
    location: str | None = None
    query: str | None = None


class GenerationOptions(BaseModel):
    temperature: float = 0.1
    max_tokens: int = 2048
    system: str | None = None
    sources: list[SourceRequest] = Field(default_factory=list)


class Citation(BaseModel):
    url: str
    title: str = "Source"


class GroundedText(BaseModel):
    text: str
    citations: list[Citation] = Field(default_factory=list)


class GroundedGenerator:
    """Answer a prompt with Groq, grounded on web-search results when available.

    Source lookups run concurrently; a failed lookup is logged and the
    remaining results are still used. Without a search client (or when
    every lookup fails) the answer is generated without grounding.
    """

    def __init__(
        self,
        llm: GroqClient,
        web_search: WebSearchClient | None = None,
    ) -> None:
        self.llm = llm
        self.web_search = web_search

    def _fetch(self, request: SourceRequest) -> list[SearchResult]:
        ws = self.web_search
        names = request.restaurant_names
        if request.kind == SourceKind.discussions and names:
            return ws.search_discussions(names[0], request.location)
        if request.kind == SourceKind.menu and names:
            return ws.search_menu(names[0])
        if request.kind == SourceKind.pricing and names:
            return ws.search_pricing(names[0], request.location)
        if request.kind == SourceKind.comparison and len(names) >= 2:
            return ws.search_comparison(names[0], names[1], request.location)
        if request.query:
            return ws.search(request.query)
        return []

    def gather_sources(self, requests: list[SourceRequest]) -> list[SearchResult]:
        if self.web_search is None or not requests:
            return []

        collected: list[SearchResult] = []
        with ThreadPoolExecutor(max_workers=min(len(requests), _MAX_WORKERS)) as pool:
            futures = [(req, pool.submit(self._fetch, req)) for req in requests]
            for req, future in futures:
                try:
                    collected.extend(future.result())
                except Exception:
                    logger.warning("Source lookup %s failed, continuing without it", req.kind.value, exc_info=True)

        return deduplicate(collected)[:_MAX_SOURCES]

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> GroundedText:
        options = options or GenerationOptions()
        sources = self.gather_sources(options.sources)

        if sources:
            lines = ["", "## Web Sources"]
            for index, source in enumerate(sources, start=1):
                lines.append(f"[{index}] {source.title} ({source.url})\n{source.snippet}")
            full_prompt = prompt + "\n" + "\n".join(lines)
        else:
            logger.info("No grounding sources, generating from model knowledge")
            full_prompt = prompt

        text = self.llm.complete(
            full_prompt,
            system=options.system or GROUNDED_SYSTEM_PROMPT,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )
        citations = [Citation(url=s.url, title=s.title) for s in sources]
        return GroundedText(text=text, citations=citations)
