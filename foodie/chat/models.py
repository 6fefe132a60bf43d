from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from ..places.models import PlaceRecord, ScoredPlace

MAX_RESULT_SET = 5
WELCOME_MESSAGE_ID = "welcome"


class Intent(str, Enum):
    follow_up = "follow_up"
    context_switch = "context_switch"
    restaurant_comparison = "restaurant_comparison"
    restaurant_pricing = "restaurant_pricing"
    restaurant_insights = "restaurant_insights"
    incomplete_request = "incomplete_request"
    restaurant_search = "restaurant_search"
    conversational = "conversational"


class IntentSlots(BaseModel):
    restaurant_name: str | None = None
    restaurant1: str | None = None
    restaurant2: str | None = None
    location: str | None = None
    cuisine: str | None = None
    meal_type: str | None = None
    missing_info: list[str] = Field(default_factory=list)


class IntentResult(BaseModel):
    intent: Intent
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    slots: IntentSlots = Field(default_factory=IntentSlots)
    reasoning: str = ""


class ReferenceType(str, Enum):
    restaurant_reference = "restaurant_reference"
    location_reference = "location_reference"
    comparison = "comparison"
    follow_up = "follow_up"
    none = "none"


class ExtractedContext(BaseModel):
    referenced_entity: PlaceRecord | None = None
    referenced_name: str | None = None
    implied_location: str | None = None
    previous_search: str | None = None
    comparison_targets: list[str] = Field(default_factory=list)


class ContextResolution(BaseModel):
    has_context: bool = False
    reference_type: ReferenceType = ReferenceType.none
    resolved_utterance: str
    extracted_context: ExtractedContext = Field(default_factory=ExtractedContext)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class QuickAction(BaseModel):
    text: str
    action: str


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: str
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    results: list[ScoredPlace] | None = None
    follow_ups: list[QuickAction] = Field(default_factory=list)
    intent: Intent | None = None


class ConversationState(BaseModel):
    conversation_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    messages: list[ChatMessage] = Field(default_factory=list)
    selected_entity: PlaceRecord | None = None
    last_result_set: list[ScoredPlace] = Field(default_factory=list)

    model_config = {"validate_assignment": True}

    @field_validator("last_result_set")
    @classmethod
    def _bounded_result_set(cls, value: list[ScoredPlace]) -> list[ScoredPlace]:
        if len(value) > MAX_RESULT_SET:
            raise ValueError(f"last_result_set holds at most {MAX_RESULT_SET} entries")
        return value


class TurnResult(BaseModel):
    reply: str
    follow_ups: list[QuickAction] = Field(default_factory=list)
    state: ConversationState
    intent: IntentResult | None = None
    context: ContextResolution | None = None
    results: list[ScoredPlace] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# API models
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)


class ChatResponse(BaseModel):
    conversation_id: str
    message: str
    follow_ups: list[QuickAction] = Field(default_factory=list)
    results: list[ScoredPlace] = Field(default_factory=list)
    intent: Intent | None = None
    intent_confidence: float = 0.0
    resolved_message: str | None = None


class SelectRequest(BaseModel):
    place_id: str = Field(..., min_length=1)


class SessionInfo(BaseModel):
    conversation_id: str
    message_count: int
    selected_entity: str | None = None
    last_result_set: list[str] = Field(default_factory=list)
    suggestions: list[QuickAction] = Field(default_factory=list)
