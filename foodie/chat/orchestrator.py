"""Turn orchestration for the restaurant chat assistant.

Responsibilities:
- Run one turn: context resolution, intent classification, one handler
- Apply the handler's outcome to the conversation state in a single step
- Convert any uncaught failure into a well-formed apology reply
- Record a ``turn`` analytics event per handled turn
"""

from __future__ import annotations

import logging
import time

from ..analytics.store import record_event
from ..ranking.config import DEFAULT_RANKING_CONFIG, RankingConfig
from .capabilities import GroundedGenerate, PlaceSearch, TextClassifier
from .config import DEFAULT_CHAT_CONFIG, ChatConfig
from .context import resolve_context
from .handlers import DEFAULT_ACTIONS, HANDLERS, HandlerOutcome, Services, Turn, handle_conversational
from .intent import classify
from .models import (
    MAX_RESULT_SET,
    ChatMessage,
    ContextResolution,
    ConversationState,
    IntentResult,
    TurnResult,
)
from .summary import build_conversation_summary

logger = logging.getLogger(__name__)

APOLOGY_REPLY = "I'm sorry, I encountered an error processing your request. Please try again."


class Orchestrator:
    def __init__(
        self,
        classifier: TextClassifier,
        generator: GroundedGenerate,
        place_search: PlaceSearch,
        chat_config: ChatConfig = DEFAULT_CHAT_CONFIG,
        ranking_config: RankingConfig = DEFAULT_RANKING_CONFIG,
    ) -> None:
        self.services = Services(
            classifier=classifier,
            generator=generator,
            place_search=place_search,
            chat_config=chat_config,
            ranking_config=ranking_config,
        )

    def handle_turn(self, utterance: str, state: ConversationState) -> TurnResult:
        """Process one user utterance and mutate ``state`` once at the end.

        The caller must not run two turns for the same conversation at once.
        """
        started = time.perf_counter()
        config = self.services.chat_config
        context: ContextResolution | None = None
        intent: IntentResult | None = None
        failed = False

        try:
            context = resolve_context(utterance, state, self.services.classifier, config)
            processed = context.resolved_utterance if context.has_context else utterance
            summary = build_conversation_summary(state, config) if len(state.messages) > 1 else None
            intent = classify(processed, self.services.classifier, summary)

            handler = HANDLERS.get(intent.intent, handle_conversational)
            outcome = handler(
                Turn(utterance=processed, original=utterance, intent=intent, context=context, state=state),
                self.services,
            )
        except Exception:
            logger.exception("Turn failed for conversation %s", state.conversation_id)
            failed = True
            outcome = HandlerOutcome(reply=APOLOGY_REPLY, follow_ups=list(DEFAULT_ACTIONS))

        self._apply(state, utterance, outcome, intent)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
        record_event("turn", {
            "conversation_id": state.conversation_id,
            "intent": intent.intent.value if intent else None,
            "intent_confidence": intent.confidence if intent else 0.0,
            "has_context": bool(context and context.has_context),
            "reference_type": context.reference_type.value if context else None,
            "location": intent.slots.location if intent else None,
            "cuisine": intent.slots.cuisine if intent else None,
            "results_count": len(outcome.results or []),
            "response_time_ms": elapsed_ms,
            "failed": failed,
        })
        logger.info(
            "Turn handled conversation=%s intent=%s results=%d elapsed_ms=%.1f",
            state.conversation_id,
            intent.intent.value if intent else "none",
            len(outcome.results or []),
            elapsed_ms,
        )

        return TurnResult(
            reply=outcome.reply,
            follow_ups=outcome.follow_ups,
            state=state,
            intent=intent,
            context=context,
            results=outcome.results or [],
        )

    def _apply(
        self,
        state: ConversationState,
        utterance: str,
        outcome: HandlerOutcome,
        intent: IntentResult | None,
    ) -> None:
        state.messages.append(ChatMessage(role="user", content=utterance))
        state.messages.append(ChatMessage(
            role="assistant",
            content=outcome.reply,
            results=outcome.results or None,
            follow_ups=outcome.follow_ups,
            intent=intent.intent if intent else None,
        ))

        if outcome.clear_focus:
            state.last_result_set = []
            state.selected_entity = None
            return
        if outcome.results is not None:
            state.last_result_set = outcome.results[:MAX_RESULT_SET]
        if outcome.update_selection:
            state.selected_entity = outcome.selected_entity


def select_entity(state: ConversationState, place_id: str) -> bool:
    """Focus the venue with ``place_id`` from the last result set.

    Returns False and leaves the state untouched if no such venue was shown.
    """
    for scored in state.last_result_set:
        if scored.place.id == place_id:
            state.selected_entity = scored.place
            logger.info("Selected %s for conversation %s", scored.place.name, state.conversation_id)
            return True
    return False
