from __future__ import annotations

import logging
from typing import Any

from .capabilities import TextClassifier
from .models import Intent, IntentResult, IntentSlots

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# LLM Prompts
# ---------------------------------------------------------------------------

INTENT_PROMPT = """\
You are an expert intent classifier for a restaurant recommendation chatbot. \
Analyze the user's message and classify their intent accurately.

{message_section}

Classify the message into exactly ONE of these intents, checking them in this priority order:

1. "follow_up" - wants MORE DETAIL or elaboration on the previous answer
   e.g. "can you elaborate?", "tell me more", "why is that?", "what do you mean?"
2. "context_switch" - changes their mind or abandons the current topic mid-conversation
   e.g. "actually I want Chinese instead", "never mind, let's try Italian", "forget that, show me sushi"
3. "restaurant_comparison" - compares 2+ specific, named restaurants
   e.g. "Katz's vs Pastrami Queen", "compare Joe's Pizza and Prince Street", "which is better: X or Y?"
4. "restaurant_pricing" - asks about cost or value of ONE specific restaurant
   e.g. "Is Per Se expensive?", "how much does dinner cost at Le Bernardin?"
5. "restaurant_insights" - wants detail (menu, opinions, reviews) about ONE specific, named restaurant
   e.g. "what should I order at Joe's Pizza?", "tell me about Katz's Deli", "is Katz's a tourist trap?"
6. "incomplete_request" - wants food or restaurants but is MISSING the cuisine or the location
   e.g. "I want pizza" (no location), "I'm hungry", "find me food", "good restaurants?"
7. "restaurant_search" - wants to FIND restaurants and gives enough detail (cuisine and/or location)
   e.g. "best pizza in Manhattan", "sushi places in Brooklyn", "good brunch spots in Soho"
8. "conversational" - everything else: greetings, thanks, help requests, non-food topics
   e.g. "hi", "thanks", "what can you do?", "how does this work?"

EXTRACT these details only when present (use null otherwise):
- restaurantName: full restaurant name, for restaurant_insights and restaurant_pricing
- restaurant1, restaurant2: the two restaurants, for restaurant_comparison only
- location: neighborhood or city
- cuisine: food type (pizza, Italian, sushi, ...)
- mealType: breakfast, brunch, lunch, dinner
- missingInfo: list of "location" and/or "cuisine", for incomplete_request only

CONFIDENCE SCORING:
- 0.95+: very clear intent with obvious keywords
- 0.85-0.94: clear intent with good context
- 0.70-0.84: probable intent with some ambiguity
- 0.50-0.69: uncertain, best guess
- below 0.50: very uncertain

Respond ONLY with JSON: {{"type": ..., "confidence": ..., "extractedData": {{...}}, "reasoning": ...}}"""

CONTEXT_SECTION = """\
RECENT CONVERSATION CONTEXT:
{context}

CURRENT USER MESSAGE: "{utterance}"

Use the conversation context to decide whether the current message is complete:
- If a location was mentioned recently, don't mark it as missing
- If a cuisine was mentioned recently, don't mark it as missing
- Only classify as "incomplete_request" if information is truly missing from recent context"""

INTENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"type": "string", "enum": [i.value for i in Intent]},
        "confidence": {"type": "number"},
        "extractedData": {
            "type": "object",
            "properties": {
                "restaurantName": {"type": "string"},
                "restaurant1": {"type": "string"},
                "restaurant2": {"type": "string"},
                "location": {"type": "string"},
                "cuisine": {"type": "string"},
                "mealType": {"type": "string"},
                "missingInfo": {"type": "array", "items": {"type": "string"}},
            },
        },
        "reasoning": {"type": "string"},
    },
    "required": ["type", "confidence", "extractedData", "reasoning"],
}

_MISSING_ALIASES = {
    "location": "location",
    "locations": "location",
    "area": "location",
    "cuisine": "cuisine",
    "cuisines": "cuisine",
    "food": "cuisine",
}


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip() and value.strip().lower() not in ("null", "none", "n/a"):
        return value.strip()
    return None


def _missing_info(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    missing: list[str] = []
    for item in value:
        slot = _MISSING_ALIASES.get(str(item).strip().lower())
        if slot and slot not in missing:
            missing.append(slot)
    return missing


def parse_intent(raw: dict[str, Any]) -> IntentResult:
    """Build an IntentResult from classifier JSON, repairing partial output."""
    raw_type = raw.get("type")
    if not raw_type:
        logger.warning("Intent response has no type, defaulting to restaurant_search")
        intent = Intent.restaurant_search
    else:
        try:
            intent = Intent(str(raw_type).strip().lower())
        except ValueError:
            logger.warning("Unknown intent type %r, treating as conversational", raw_type)
            intent = Intent.conversational

    confidence = raw.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        logger.warning("Intent response has invalid confidence %r, defaulting to 0.8", confidence)
        confidence = 0.8
    confidence = max(0.0, min(1.0, float(confidence)))

    data = raw.get("extractedData")
    if not isinstance(data, dict):
        data = {}

    slots = IntentSlots(
        restaurant_name=_text(data.get("restaurantName")),
        restaurant1=_text(data.get("restaurant1")),
        restaurant2=_text(data.get("restaurant2")),
        location=_text(data.get("location")),
        cuisine=_text(data.get("cuisine")),
        meal_type=_text(data.get("mealType")),
        missing_info=_missing_info(data.get("missingInfo")) if intent == Intent.incomplete_request else [],
    )

    return IntentResult(
        intent=intent,
        confidence=confidence,
        slots=slots,
        reasoning=_text(raw.get("reasoning")) or "Auto-classified based on partial parsing",
    )


def _fallback_intent() -> IntentResult:
    return IntentResult(
        intent=Intent.conversational,
        confidence=0.0,
        reasoning="Classification failed, defaulting to conversational",
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def classify(
    utterance: str,
    classifier: TextClassifier,
    context_summary: str | None = None,
) -> IntentResult:
    if context_summary:
        message_section = CONTEXT_SECTION.format(context=context_summary, utterance=utterance)
    else:
        message_section = f'User message: "{utterance}"'

    try:
        raw = classifier.classify_json(INTENT_PROMPT.format(message_section=message_section), INTENT_SCHEMA)
        result = parse_intent(raw)
    except Exception:
        logger.warning("Intent classification failed, using fallback", exc_info=True)
        return _fallback_intent()

    logger.info(
        "Intent classified intent=%s confidence=%.2f slots=%s",
        result.intent.value,
        result.confidence,
        result.slots.model_dump(exclude_none=True, exclude_defaults=True),
    )
    return result
