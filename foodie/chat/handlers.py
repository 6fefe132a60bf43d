from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from ..llm.grounded import Citation, GenerationOptions, SourceKind, SourceRequest
from ..places.models import PlaceRecord, ScoredPlace
from ..ranking.config import RankingConfig
from ..ranking.scoring import compare_places, explain_ranking, price_level_description, rank
from .capabilities import GroundedGenerate, PlaceSearch, TextClassifier
from .config import ChatConfig
from .context import find_place
from .models import (
    WELCOME_MESSAGE_ID,
    ContextResolution,
    ConversationState,
    Intent,
    IntentResult,
    QuickAction,
)
from .summary import get_suggestions

logger = logging.getLogger(__name__)

STAY_ON_TOPIC_SYSTEM = (
    "You are a friendly restaurant and dining assistant. Answer helpfully and "
    "concisely. If the user drifts away from food, restaurants or dining, answer "
    "briefly and steer the conversation back to finding great places to eat."
)

FORMATTING_GUIDELINES = """\
FORMATTING GUIDELINES:
- Use markdown formatting for readability
- Use emojis sparingly
- Use **bold** for key info like restaurant names, prices and ratings
- Keep paragraphs short (2-3 sentences max)
- Lead with the most important information first"""

DEFAULT_ACTIONS = [
    QuickAction(text="Find restaurants", action="best restaurants near me"),
    QuickAction(text="Pizza places", action="best pizza in Manhattan"),
    QuickAction(text="Brunch spots", action="good brunch places in Brooklyn"),
]

CUISINE_ACTIONS = [
    QuickAction(text="Pizza", action="best pizza restaurants"),
    QuickAction(text="Italian", action="Italian restaurants"),
    QuickAction(text="Asian", action="Asian restaurants"),
    QuickAction(text="Mexican", action="Mexican restaurants"),
]

_LOCATION_SUGGESTIONS = ["Manhattan", "Brooklyn", "Queens"]

_GREETING_RE = re.compile(
    r"^\s*(hi|hello|hey|howdy|hiya|good (morning|afternoon|evening))(\s+there)?\W*$", re.IGNORECASE
)
_THANKS_RE = re.compile(
    r"^\s*(thanks|thank you|thx|cheers|appreciate it)(\s+(so much|a lot|again))?\W*$", re.IGNORECASE
)
_HELP_RE = re.compile(r"\b(help|what can you do|how does this work|how do you work)\b", re.IGNORECASE)


@dataclass(frozen=True)
class Services:
    classifier: TextClassifier
    generator: GroundedGenerate
    place_search: PlaceSearch
    chat_config: ChatConfig
    ranking_config: RankingConfig


@dataclass(frozen=True)
class Turn:
    utterance: str
    original: str
    intent: IntentResult
    context: ContextResolution
    state: ConversationState


@dataclass
class HandlerOutcome:
    """What a handler wants done to the conversation; applied once by the orchestrator."""

    reply: str
    follow_ups: list[QuickAction] = field(default_factory=list)
    results: list[ScoredPlace] | None = None
    selected_entity: PlaceRecord | None = None
    update_selection: bool = False
    clear_focus: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _with_sources(text: str, citations: list[Citation]) -> str:
    if not citations:
        return text
    lines = [text, "", "### Sources"]
    for index, citation in enumerate(citations, start=1):
        lines.append(f"{index}. [{citation.title}]({citation.url})")
    return "\n".join(lines)


def _location_actions(cuisine: str) -> list[QuickAction]:
    return [
        QuickAction(text=area, action=f"best {cuisine} in {area}")
        for area in _LOCATION_SUGGESTIONS
    ]


def _insights_location(turn: Turn, services: Services) -> str:
    return (
        turn.intent.slots.location
        or turn.context.extracted_context.implied_location
        or services.chat_config.default_insights_location
    )


def _venue_facts(place: PlaceRecord | None) -> str:
    if place is None:
        return ""
    facts = [f"{place.rating}★ from {place.review_count:,} reviews"]
    if place.price_level is not None:
        facts.append(price_level_description(place.price_level))
    if place.address:
        facts.append(place.address)
    return f"\nKnown details: {'; '.join(facts)}.\n"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_context_switch(turn: Turn, services: Services) -> HandlerOutcome:
    cuisine = turn.intent.slots.cuisine
    if cuisine:
        return HandlerOutcome(
            reply=f"No problem! 🔄 Let's find you some great {cuisine} instead. Where would you like me to search?",
            follow_ups=_location_actions(cuisine),
            clear_focus=True,
        )
    return HandlerOutcome(
        reply="Of course! 🔄 What would you like to search for instead?",
        follow_ups=[
            QuickAction(text="Pizza", action="best pizza restaurants"),
            QuickAction(text="Sushi", action="best sushi restaurants"),
            QuickAction(text="Italian", action="Italian restaurants"),
            QuickAction(text="Mexican", action="Mexican restaurants"),
        ],
        clear_focus=True,
    )


def handle_incomplete_request(turn: Turn, services: Services) -> HandlerOutcome:
    cuisine = turn.intent.slots.cuisine
    missing = turn.intent.slots.missing_info

    if cuisine and "location" in missing:
        actions = _location_actions(cuisine)
        actions.append(QuickAction(text="Near me", action=f"{cuisine} restaurants near me"))
        return HandlerOutcome(
            reply=f"Great choice! 🍕 I'd love to help you find amazing {cuisine} places. Where would you like me to search? 📍",
            follow_ups=actions,
        )
    if "cuisine" in missing:
        return HandlerOutcome(
            reply="I can help you find great food! What type of cuisine are you in the mood for? 🤔",
            follow_ups=list(CUISINE_ACTIONS),
        )
    return HandlerOutcome(
        reply=(
            "I'd love to help you find great food! Could you tell me what type of cuisine "
            "you're craving and where you'd like to eat? 🍽️"
        ),
        follow_ups=[
            QuickAction(text="Pizza in Manhattan", action="best pizza in Manhattan"),
            QuickAction(text="Brunch in Brooklyn", action="good brunch in Brooklyn"),
            QuickAction(text="Italian in Queens", action="Italian restaurants in Queens"),
        ],
    )


def handle_restaurant_search(turn: Turn, services: Services) -> HandlerOutcome:
    slots = turn.intent.slots
    config = services.chat_config
    cuisine = slots.cuisine or slots.meal_type or config.default_cuisine
    location = (
        slots.location
        or turn.context.extracted_context.implied_location
        or config.default_search_location
    )

    try:
        places = services.place_search.search(cuisine, location)
    except Exception:
        logger.warning("Restaurant search failed for %r in %r", cuisine, location, exc_info=True)
        return HandlerOutcome(
            reply="I'm having trouble finding restaurants right now. Please try again in a moment.",
            follow_ups=[QuickAction(text="Try again", action=f"best {cuisine} in {location}")],
        )

    ranked = rank(places, services.ranking_config)
    if not ranked:
        return HandlerOutcome(
            reply=f"I couldn't find any {cuisine} restaurants in {location}. Try a different cuisine type or location.",
            follow_ups=list(CUISINE_ACTIONS),
        )

    prefix = "Based on our conversation, here are" if turn.context.has_context else "I found"
    lines = [f"🍽️ **{prefix} {len(ranked)} excellent {cuisine} restaurants in {location}:**", ""]
    for index, scored in enumerate(ranked, start=1):
        place = scored.place
        lines.append(f"**{index}. {place.name}** ({price_level_description(place.price_level)})")
        lines.append(f"⭐ {place.rating}★ ({place.review_count:,} reviews)")
        lines.append(f"📍 {place.address or 'Address not available'}")
        lines.append("")
    lines.append(explain_ranking(ranked, services.ranking_config))

    top = ranked[0].place
    actions = [QuickAction(text="Menu & Reddit insights", action=f"What should I order at {top.name}?")]
    if len(ranked) > 1:
        actions.append(QuickAction(
            text="⚖️ Compare top restaurants",
            action=f"Compare {ranked[0].place.name} vs {ranked[1].place.name} in {location}",
        ))

    return HandlerOutcome(
        reply="\n".join(lines),
        follow_ups=actions,
        results=ranked,
        selected_entity=top if len(ranked) == 1 else None,
        update_selection=True,
    )


def handle_restaurant_insights(turn: Turn, services: Services) -> HandlerOutcome:
    name = turn.intent.slots.restaurant_name or turn.context.extracted_context.referenced_name
    if not name:
        return HandlerOutcome(
            reply="I'd be happy to help with restaurant insights! Which restaurant are you asking about?",
            follow_ups=get_suggestions(turn.state, services.chat_config),
        )

    local = find_place(name, turn.state)
    venue = local.name if local else name
    location = _insights_location(turn, services)

    prompt = f"""\
Give me concise insights about {venue} in {location}. Keep it organized but brief (3-5 paragraphs max).
{_venue_facts(local)}
## Menu Recommendations 🍽️
- Must-try dishes and signature items, and anything to avoid
- Price range and value for money

## Community Opinions 💬
- What Reddit users and reviewers say, quoting specific comments where available
- Overall sentiment (positive/negative/mixed)

## Restaurant Overview ⭐
- Cuisine, atmosphere and service
- Best times to visit and whether reservations are needed

{FORMATTING_GUIDELINES}"""

    try:
        answer = services.generator.generate(prompt, GenerationOptions(
            max_tokens=3048,
            sources=[
                SourceRequest(kind=SourceKind.discussions, restaurant_names=[venue], location=location),
                SourceRequest(kind=SourceKind.menu, restaurant_names=[venue]),
            ],
        ))
    except Exception:
        logger.warning("Restaurant insights failed for %r", venue, exc_info=True)
        return HandlerOutcome(
            reply="I'm having trouble getting restaurant insights right now. Please try again in a moment.",
            follow_ups=[QuickAction(text="Try again", action=f"What should I order at {venue}?")],
        )

    return HandlerOutcome(
        reply=_with_sources(answer.text, answer.citations),
        follow_ups=[
            QuickAction(text="💰 Is it expensive?", action=f"Is {venue} expensive?"),
            QuickAction(text="🏪 Find similar places", action=f"restaurants similar to {venue} in {location}"),
            QuickAction(text="🆚 Compare with others", action=f"compare {venue} with similar restaurants in {location}"),
        ],
        selected_entity=local,
        update_selection=local is not None,
    )


def handle_restaurant_pricing(turn: Turn, services: Services) -> HandlerOutcome:
    name = turn.intent.slots.restaurant_name or turn.context.extracted_context.referenced_name
    if not name:
        return HandlerOutcome(
            reply="I'd be happy to help with pricing information! Which restaurant are you asking about?",
            follow_ups=get_suggestions(turn.state, services.chat_config),
        )

    local = find_place(name, turn.state)
    venue = local.name if local else name
    location = _insights_location(turn, services)

    prompt = f"""\
Is **{venue}** in {location} expensive? Keep it concise (2-3 paragraphs max).
{_venue_facts(local)}
💰 **Price Breakdown**: average cost per person, menu price ranges, comparison with similar restaurants
📊 **Value Assessment**: what reviews and Reddit say about value for money
🎯 **Bottom Line**: expensive, moderate or budget, and any times for deals

{FORMATTING_GUIDELINES}"""

    try:
        answer = services.generator.generate(prompt, GenerationOptions(
            sources=[
                SourceRequest(kind=SourceKind.discussions, restaurant_names=[venue], location=location),
                SourceRequest(kind=SourceKind.pricing, restaurant_names=[venue], location=location),
            ],
        ))
    except Exception:
        logger.warning("Pricing lookup failed for %r", venue, exc_info=True)
        return HandlerOutcome(
            reply="I'm having trouble getting pricing information right now. Please try again in a moment.",
            follow_ups=[QuickAction(text="Try again", action=f"Is {venue} expensive?")],
        )

    return HandlerOutcome(
        reply=_with_sources(answer.text, answer.citations),
        follow_ups=[
            QuickAction(text="🍽️ What to order", action=f"What should I order at {venue}?"),
            QuickAction(text="📍 Find alternatives", action=f"cheaper alternatives to {venue} in {location}"),
        ],
        selected_entity=local,
        update_selection=local is not None,
    )


def handle_restaurant_comparison(turn: Turn, services: Services) -> HandlerOutcome:
    slots = turn.intent.slots
    targets = turn.context.extracted_context.comparison_targets
    first = slots.restaurant1 or (targets[0] if len(targets) > 0 else None)
    second = slots.restaurant2 or (targets[1] if len(targets) > 1 else None)

    if not first or not second:
        return HandlerOutcome(
            reply="I'd be happy to compare restaurants! Please mention which two restaurants you'd like me to compare.",
            follow_ups=get_suggestions(turn.state, services.chat_config),
        )

    local_first = find_place(first, turn.state)
    local_second = find_place(second, turn.state)
    name_first = local_first.name if local_first else first
    name_second = local_second.name if local_second else second
    location = _insights_location(turn, services)

    prompt = f"""\
Compare **{name_first}** vs **{name_second}** in {location}. Keep it concise (3-4 paragraphs max) but informative.
{_venue_facts(local_first)}{_venue_facts(local_second)}
🆚 **Quick Comparison**: food quality, signature dishes, pricing, and who wins each category
💬 **Reddit & Review Consensus**: what people say about each, quoting opinions where available
🏆 **Bottom Line**: which one to choose and the best occasion for each

{FORMATTING_GUIDELINES}"""

    try:
        answer = services.generator.generate(prompt, GenerationOptions(
            sources=[
                SourceRequest(
                    kind=SourceKind.comparison,
                    restaurant_names=[name_first, name_second],
                    location=location,
                ),
                SourceRequest(kind=SourceKind.discussions, restaurant_names=[name_first], location=location),
                SourceRequest(kind=SourceKind.discussions, restaurant_names=[name_second], location=location),
            ],
        ))
    except Exception:
        logger.warning("Comparison failed for %r vs %r", name_first, name_second, exc_info=True)
        return HandlerOutcome(
            reply="I'm having trouble comparing restaurants right now. Please try again in a moment.",
            follow_ups=[QuickAction(text="Try again", action=f"Compare {name_first} vs {name_second}")],
        )

    reply = answer.text
    if local_first and local_second and local_first.id != local_second.id:
        reply += "\n\n### By the numbers\n" + compare_places(local_first, local_second, services.ranking_config)

    return HandlerOutcome(
        reply=_with_sources(reply, answer.citations),
        follow_ups=[
            QuickAction(text=f"🍽️ {name_first} insights", action=f"What should I order at {name_first}?"),
            QuickAction(text=f"🍽️ {name_second} insights", action=f"What should I order at {name_second}?"),
        ],
    )


def handle_follow_up(turn: Turn, services: Services) -> HandlerOutcome:
    previous = next(
        (
            m for m in reversed(turn.state.messages)
            if m.role == "assistant" and m.id != WELCOME_MESSAGE_ID
        ),
        None,
    )
    if previous is None:
        return HandlerOutcome(
            reply=(
                "I'd be happy to go into more detail! What would you like to know more about? "
                "Try asking about a specific restaurant or cuisine."
            ),
            follow_ups=list(DEFAULT_ACTIONS),
        )

    prompt = f"""\
The user asked: "{turn.utterance}"

They are asking for more detail about your previous answer:
---
{previous.content[:2000]}
---

Elaborate on that answer: explain the reasoning, add specifics and practical tips. \
Keep it to 2-4 short paragraphs.

{FORMATTING_GUIDELINES}"""

    try:
        answer = services.generator.generate(prompt, GenerationOptions(system=STAY_ON_TOPIC_SYSTEM))
    except Exception:
        logger.warning("Follow-up elaboration failed", exc_info=True)
        return HandlerOutcome(
            reply="I'm having trouble expanding on that right now. Please try again in a moment.",
            follow_ups=get_suggestions(turn.state, services.chat_config),
        )

    return HandlerOutcome(
        reply=_with_sources(answer.text, answer.citations),
        follow_ups=get_suggestions(turn.state, services.chat_config),
    )


def handle_conversational(turn: Turn, services: Services) -> HandlerOutcome:
    text = turn.original
    if _GREETING_RE.search(text):
        return HandlerOutcome(
            reply="Hi there! 👋 I'm your friendly restaurant assistant. How can I help you discover amazing food today?",
            follow_ups=[
                QuickAction(text="Find pizza places", action="best pizza in Manhattan"),
                QuickAction(text="Brunch spots", action="good brunch in Brooklyn"),
                QuickAction(text="Surprise me!", action="trending restaurants NYC"),
            ],
        )
    if _THANKS_RE.search(text):
        return HandlerOutcome(
            reply="You're welcome! 😊 Let me know whenever you want more restaurant ideas.",
            follow_ups=get_suggestions(turn.state, services.chat_config),
        )
    if _HELP_RE.search(text):
        return HandlerOutcome(
            reply=(
                "I can help you:\n"
                "• **Discover restaurants**: \"best ramen in the East Village\"\n"
                "• **Get insights**: \"what should I order at Joe's Pizza?\"\n"
                "• **Compare places**: \"Katz's vs Pastrami Queen\"\n"
                "• **Check prices**: \"is Per Se expensive?\""
            ),
            follow_ups=list(DEFAULT_ACTIONS),
        )

    prompt = f"""\
{turn.utterance}

Please provide a helpful, concise response (3-4 paragraphs max).

{FORMATTING_GUIDELINES}"""

    try:
        answer = services.generator.generate(prompt, GenerationOptions(
            system=STAY_ON_TOPIC_SYSTEM,
            sources=[SourceRequest(kind=SourceKind.general, query=turn.utterance)],
        ))
    except Exception:
        logger.warning("General response generation failed", exc_info=True)
        return HandlerOutcome(
            reply=(
                "I'm having trouble processing your request right now. "
                "Please try rephrasing your question or try again in a moment."
            ),
            follow_ups=list(DEFAULT_ACTIONS),
        )

    return HandlerOutcome(
        reply=_with_sources(answer.text, answer.citations),
        follow_ups=list(DEFAULT_ACTIONS),
    )


HANDLERS: dict[Intent, Callable[[Turn, Services], HandlerOutcome]] = {
    Intent.follow_up: handle_follow_up,
    Intent.context_switch: handle_context_switch,
    Intent.restaurant_comparison: handle_restaurant_comparison,
    Intent.restaurant_pricing: handle_restaurant_pricing,
    Intent.restaurant_insights: handle_restaurant_insights,
    Intent.incomplete_request: handle_incomplete_request,
    Intent.restaurant_search: handle_restaurant_search,
    Intent.conversational: handle_conversational,
}
