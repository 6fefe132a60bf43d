from __future__ import annotations

from typing import Any

import pytest

from foodie.analytics.store import clear_events
from foodie.chat.models import ChatMessage, ConversationState
from foodie.chat.summary import welcome_message
from foodie.errors import ClassificationError, GenerationError
from foodie.llm.grounded import Citation, GenerationOptions, GroundedText
from foodie.places.models import PlaceRecord
from foodie.ranking.scoring import detailed_score


def make_place(place_id: str, name: str, rating: float = 4.5, reviews: int = 500, **kwargs) -> PlaceRecord:
    return PlaceRecord(id=place_id, name=name, rating=rating, review_count=reviews, **kwargs)


def state_with_results(*places: PlaceRecord, selected: PlaceRecord | None = None) -> ConversationState:
    """A conversation that has already shown ``places`` after one search turn."""
    scored = [detailed_score(p) for p in places]
    return ConversationState(
        messages=[
            welcome_message(),
            ChatMessage(role="user", content="best pizza in Manhattan"),
            ChatMessage(role="assistant", content="Here are some pizza places", results=scored),
        ],
        selected_entity=selected,
        last_result_set=scored,
    )


class FakeClassifier:
    """Returns scripted responses in order; Exception items are raised instead."""

    def __init__(self, json_responses: list[Any] | None = None, text_responses: list[Any] | None = None) -> None:
        self.json_responses = list(json_responses or [])
        self.text_responses = list(text_responses or [])
        self.json_calls: list[str] = []
        self.text_calls: list[str] = []

    def classify_json(self, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        self.json_calls.append(prompt)
        if not self.json_responses:
            raise ClassificationError("no scripted JSON response")
        item = self.json_responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def classify_text(self, prompt: str) -> str:
        self.text_calls.append(prompt)
        if not self.text_responses:
            raise ClassificationError("no scripted text response")
        item = self.text_responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def call_count(self) -> int:
        return len(self.json_calls) + len(self.text_calls)


class FakeGenerator:
    def __init__(self, text: str = "Generated answer", citations: list[Citation] | None = None, error: Exception | None = None) -> None:
        self.text = text
        self.citations = citations or []
        self.error = error
        self.calls: list[tuple[str, GenerationOptions | None]] = []

    def generate(self, prompt: str, options: GenerationOptions | None = None) -> GroundedText:
        self.calls.append((prompt, options))
        if self.error:
            raise self.error
        return GroundedText(text=self.text, citations=self.citations)


class FakePlaceSearch:
    def __init__(self, places: list[PlaceRecord] | None = None, error: Exception | None = None) -> None:
        self.places = places or []
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def search(self, cuisine: str, location: str) -> list[PlaceRecord]:
        self.calls.append((cuisine, location))
        if self.error:
            raise self.error
        return list(self.places)


def intent_json(intent_type: str, confidence: float = 0.9, **extracted: Any) -> dict[str, Any]:
    return {
        "type": intent_type,
        "confidence": confidence,
        "extractedData": extracted,
        "reasoning": "scripted",
    }


@pytest.fixture(autouse=True)
def _clear_analytics():
    clear_events()
    yield
    clear_events()


@pytest.fixture
def failing_generator() -> FakeGenerator:
    return FakeGenerator(error=GenerationError("model unavailable"))
