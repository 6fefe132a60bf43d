from __future__ import annotations

from typing import Any, Protocol

from ..llm.grounded import GenerationOptions, GroundedText
from ..places.models import PlaceRecord, ResolvedLocation


class PlaceSearch(Protocol):
    def search(self, cuisine: str, location: str) -> list[PlaceRecord]: ...


class LocationResolve(Protocol):
    def resolve(self, location: str) -> ResolvedLocation: ...


class TextClassifier(Protocol):
    def classify_json(self, prompt: str, schema: dict[str, Any]) -> dict[str, Any]: ...

    def classify_text(self, prompt: str) -> str: ...


class GroundedGenerate(Protocol):
    def generate(self, prompt: str, options: GenerationOptions | None = None) -> GroundedText: ...
