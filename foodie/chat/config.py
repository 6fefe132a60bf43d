from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ChatConfig:
    context_confidence_threshold: float = float(os.getenv("CONTEXT_CONFIDENCE_THRESHOLD", "0.7"))
    summary_messages: int = 5
    summary_chars: int = 200
    default_search_location: str = "Manhattan"
    default_insights_location: str = "NYC"
    default_cuisine: str = "restaurants"
    max_suggestions: int = 4
    max_conversations: int = int(os.getenv("MAX_CONVERSATIONS", "1000"))
    conversation_ttl: float = float(os.getenv("CONVERSATION_TTL", "3600"))


DEFAULT_CHAT_CONFIG = ChatConfig()
