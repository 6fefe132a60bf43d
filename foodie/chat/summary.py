from __future__ import annotations

from datetime import datetime, timezone

from .config import DEFAULT_CHAT_CONFIG, ChatConfig
from .models import WELCOME_MESSAGE_ID, ChatMessage, ConversationState, QuickAction

WELCOME_TEXT = """\
🍽️ **Welcome to your personal restaurant assistant!**

I can help you discover restaurants, get menu recommendations, and find out \
what real people are saying about their dining experiences.

**Try asking me:**
• "Best Mediterranean restaurants in Flatiron"
• "What should I order at Joe's Pizza?"
• "Compare Katz's Deli vs Pastrami Queen"
• "Is Per Se expensive?"

What kind of food are you in the mood for today?"""

WELCOME_ACTIONS = [
    QuickAction(text="Best Italian in NYC", action="What are the best Italian restaurants in NYC?"),
    QuickAction(text="Budget-friendly spots", action="What are some great budget-friendly restaurants in Manhattan?"),
    QuickAction(text="Flatiron District dining", action="What are the best restaurants in Flatiron?"),
]


def welcome_message() -> ChatMessage:
    return ChatMessage(
        id=WELCOME_MESSAGE_ID,
        role="assistant",
        content=WELCOME_TEXT,
        follow_ups=list(WELCOME_ACTIONS),
    )


def build_conversation_summary(
    state: ConversationState,
    config: ChatConfig = DEFAULT_CHAT_CONFIG,
) -> str:
    """Summarise the most recent non-welcome messages for context analysis.

    Each body is cut to ``config.summary_chars`` and messages that carried a
    result list are annotated with the venue names that were shown.
    """
    recent = [m for m in state.messages if m.id != WELCOME_MESSAGE_ID][-config.summary_messages:]
    if not recent:
        return "No conversation history."

    lines: list[str] = []
    for message in recent:
        role = "USER" if message.role == "user" else "ASSISTANT"
        lines.append(f"{role}: {message.content[: config.summary_chars]}")
        if message.results:
            names = ", ".join(r.place.name for r in message.results)
            lines.append(f"[RESTAURANTS SHOWN: {names}]")
    return "\n".join(lines)


def build_focus_summary(state: ConversationState) -> str:
    lines: list[str] = []
    if state.selected_entity:
        lines.append(
            f"- Selected Restaurant: {state.selected_entity.name} ({state.selected_entity.rating}★)"
        )
    if state.last_result_set:
        names = ", ".join(r.place.name for r in state.last_result_set)
        lines.append(f"- Recent Search Results: {names}")
    return "\n".join(lines) if lines else "- No restaurant in focus"


def get_suggestions(
    state: ConversationState,
    config: ChatConfig = DEFAULT_CHAT_CONFIG,
) -> list[QuickAction]:
    suggestions: list[QuickAction] = []

    if state.selected_entity:
        suggestions.append(QuickAction(
            text="Menu & Reddit insights",
            action=f"What should I order at {state.selected_entity.name}?",
        ))

    if len(state.last_result_set) >= 2:
        first, second = state.last_result_set[0].place, state.last_result_set[1].place
        suggestions.append(QuickAction(
            text="Compare top restaurants",
            action=f"Compare {first.name} vs {second.name}",
        ))

    if not suggestions:
        suggestions = [
            QuickAction(text="Best pizza in NYC", action="What are the best pizza places in NYC?"),
            QuickAction(text="Great brunch spots", action="Where can I get great brunch in Manhattan?"),
        ]

    return suggestions[: config.max_suggestions]


def export_transcript(state: ConversationState) -> str:
    body = "\n\n".join(f"{m.role.upper()}: {m.content}" for m in state.messages)
    return (
        "Restaurant Chat Export\n"
        f"Conversation ID: {state.conversation_id}\n"
        f"Date: {datetime.now(timezone.utc).isoformat()}\n\n"
        f"{body}"
    )
