from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .chat.config import DEFAULT_CHAT_CONFIG, ChatConfig
from .errors import ConfigurationError
from .llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from .places.config import DEFAULT_PLACES_CONFIG, PlacesConfig
from .ranking.config import DEFAULT_RANKING_CONFIG, RankingConfig
from .search.config import DEFAULT_SEARCH_CONFIG, SearchConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    llm: LLMConfig = DEFAULT_LLM_CONFIG
    places: PlacesConfig = DEFAULT_PLACES_CONFIG
    search: SearchConfig = DEFAULT_SEARCH_CONFIG
    chat: ChatConfig = DEFAULT_CHAT_CONFIG
    ranking: RankingConfig = DEFAULT_RANKING_CONFIG
    session_secret: str = field(
        default_factory=lambda: os.getenv("SESSION_SECRET", "foodie-secret-change-in-production")
    )

    def require_credentials(self) -> None:
        """Raise ConfigurationError unless the LLM and Places keys are set."""
        missing = [
            name
            for name, value in (("GROQ_API_KEY", self.llm.api_key), ("GOOGLE_API_KEY", self.places.api_key))
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required credentials: {', '.join(missing)}")
        if not self.search.api_key:
            logger.warning("SERPER_API_KEY is not set, answers will not be grounded on web sources")


DEFAULT_SETTINGS = Settings()
