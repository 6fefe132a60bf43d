from __future__ import annotations

import logging
from typing import Any

from ..errors import ClassificationError
from ..places.models import PlaceRecord
from .capabilities import TextClassifier
from .config import DEFAULT_CHAT_CONFIG, ChatConfig
from .models import ContextResolution, ConversationState, ExtractedContext, ReferenceType
from .summary import build_conversation_summary, build_focus_summary

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

CONTEXT_PROMPT = """\
You are a session context analyzer for a restaurant chatbot. Analyze the \
current user message in the context of the conversation history to detect \
follow-up questions and resolve references.

CONVERSATION HISTORY:
{history}

CURRENT USER MESSAGE: "{utterance}"

CURRENT CONTEXT:
{focus}

Analyze if the current message contains:
1. References to "this place", "it", "that restaurant", "the first one", etc.
2. Implied location from previous searches
3. Comparison requests referring to previous results
4. Follow-up questions about menu, reviews, etc.

Return JSON with:
- hasContext: boolean
- contextType: "restaurant_reference" | "location_reference" | "comparison" | "follow_up" | "none"
- resolvedMessage: the message rewritten with every reference replaced by concrete names
- extractedContext: {{referencedRestaurant, impliedLocation, previousSearch, comparisonItems}}
- confidence: number between 0 and 1

EXAMPLES:
- "What should I order there?" -> "What should I order at [RestaurantName]?"
- "Is it expensive?" -> "Is [RestaurantName] expensive?"
- "What about the second one?" -> "Tell me about [SecondRestaurantName]"
- "Compare the top 2" -> "Compare [Restaurant1] vs [Restaurant2]"
- "Any good pizza places?" (after searching Italian in Brooklyn) -> "Any good pizza places in Brooklyn?"

Be precise and only detect context when you're confident (>0.7)."""

CONTEXT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "hasContext": {"type": "boolean"},
        "contextType": {"type": "string"},
        "resolvedMessage": {"type": "string"},
        "extractedContext": {
            "type": "object",
            "properties": {
                "referencedRestaurant": {"type": "string"},
                "impliedLocation": {"type": "string"},
                "previousSearch": {"type": "string"},
                "comparisonItems": {"type": "array", "items": {"type": "string"}},
            },
        },
        "confidence": {"type": "number"},
    },
    "required": ["hasContext", "contextType", "resolvedMessage", "extractedContext", "confidence"],
}

SIMPLE_CONTEXT_PROMPT = """\
Analyze this message in context: "{utterance}"

Previous conversation: {history}

Does this message reference a previous restaurant or location? Respond with just:
- NONE if no context needed
- RESTAURANT if it references a previous restaurant
- LOCATION if it implies a previous location
- FOLLOW_UP if it's a follow-up question"""

_SIMPLE_FALLBACK_CONFIDENCE = 0.5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def find_place(name: str | None, state: ConversationState) -> PlaceRecord | None:
    """Case-insensitive substring match against the focused venue, then the last results."""
    if not name or not name.strip():
        return None
    needle = name.strip().lower()

    candidates: list[PlaceRecord] = []
    if state.selected_entity:
        candidates.append(state.selected_entity)
    candidates.extend(r.place for r in state.last_result_set)

    for place in candidates:
        haystack = place.name.lower()
        if needle in haystack or haystack in needle:
            return place
    return None


def _no_context(utterance: str) -> ContextResolution:
    return ContextResolution(has_context=False, resolved_utterance=utterance, confidence=0.0)


def _as_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip() and value.strip().lower() not in ("null", "none"):
        return value.strip()
    return None


def _interpret(
    raw: dict[str, Any],
    utterance: str,
    state: ConversationState,
    config: ChatConfig,
) -> ContextResolution:
    if "hasContext" not in raw or "contextType" not in raw:
        raise ClassificationError("Context analysis is missing required fields")

    try:
        reference_type = ReferenceType(str(raw.get("contextType")).lower())
    except ValueError:
        reference_type = ReferenceType.none

    try:
        confidence = max(0.0, min(1.0, float(raw.get("confidence") or 0.0)))
    except (TypeError, ValueError):
        confidence = 0.0

    resolved = _as_str(raw.get("resolvedMessage"))
    has_context = (
        bool(raw.get("hasContext"))
        and confidence > config.context_confidence_threshold
        and resolved is not None
    )
    if not has_context:
        return ContextResolution(
            has_context=False,
            reference_type=reference_type,
            resolved_utterance=utterance,
            confidence=confidence,
        )

    extracted = raw.get("extractedContext")
    if not isinstance(extracted, dict):
        extracted = {}
    referenced_name = _as_str(extracted.get("referencedRestaurant"))
    comparison = extracted.get("comparisonItems")
    if not isinstance(comparison, list):
        comparison = []

    return ContextResolution(
        has_context=True,
        reference_type=reference_type,
        resolved_utterance=resolved,
        extracted_context=ExtractedContext(
            referenced_entity=find_place(referenced_name, state),
            referenced_name=referenced_name,
            implied_location=_as_str(extracted.get("impliedLocation")),
            previous_search=_as_str(extracted.get("previousSearch")),
            comparison_targets=[name for name in map(_as_str, comparison) if name],
        ),
        confidence=confidence,
    )


def _simple_fallback(
    utterance: str,
    history: str,
    classifier: TextClassifier,
    config: ChatConfig,
) -> ContextResolution:
    answer = classifier.classify_text(
        SIMPLE_CONTEXT_PROMPT.format(utterance=utterance, history=history)
    ).upper()

    if "RESTAURANT" in answer:
        reference_type = ReferenceType.restaurant_reference
    elif "LOCATION" in answer:
        reference_type = ReferenceType.location_reference
    elif "FOLLOW_UP" in answer or "FOLLOW-UP" in answer:
        reference_type = ReferenceType.follow_up
    else:
        reference_type = ReferenceType.none

    # No rewrite is available from this path, so the utterance stays unresolved.
    return ContextResolution(
        has_context=(
            reference_type != ReferenceType.none
            and _SIMPLE_FALLBACK_CONFIDENCE > config.context_confidence_threshold
        ),
        reference_type=reference_type,
        resolved_utterance=utterance,
        confidence=_SIMPLE_FALLBACK_CONFIDENCE,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def resolve_context(
    utterance: str,
    state: ConversationState,
    classifier: TextClassifier,
    config: ChatConfig = DEFAULT_CHAT_CONFIG,
) -> ContextResolution:
    """Decide whether ``utterance`` refers to earlier turns and rewrite it if so.

    Never raises: structured analysis degrades to a one-word classification,
    which degrades to "no context".
    """
    if len(state.messages) <= 1:
        return _no_context(utterance)

    history = build_conversation_summary(state, config)
    prompt = CONTEXT_PROMPT.format(
        history=history,
        utterance=utterance,
        focus=build_focus_summary(state),
    )

    try:
        raw = classifier.classify_json(prompt, CONTEXT_SCHEMA)
        resolution = _interpret(raw, utterance, state, config)
    except Exception:
        logger.warning("Structured context analysis failed, trying simple classification", exc_info=True)
        try:
            resolution = _simple_fallback(utterance, history, classifier, config)
        except Exception:
            logger.warning("Simple context analysis failed, continuing without context", exc_info=True)
            return _no_context(utterance)

    logger.info(
        "Context analysis original=%r resolved=%r type=%s confidence=%.2f",
        utterance,
        resolution.resolved_utterance,
        resolution.reference_type.value,
        resolution.confidence,
    )
    return resolution
