from __future__ import annotations

from foodie.chat.config import ChatConfig
from foodie.chat.context import find_place, resolve_context
from foodie.chat.models import ChatMessage, ConversationState, ReferenceType
from foodie.chat.summary import build_conversation_summary, welcome_message
from foodie.errors import ClassificationError
from foodie.tests.conftest import FakeClassifier, make_place, state_with_results

JOES = make_place("joes", "Joe's Pizza", rating=4.6, reviews=12000)
PRINCE = make_place("prince", "Prince Street Pizza", rating=4.5, reviews=9000)


def _context_json(has_context=True, context_type="restaurant_reference", resolved="", confidence=0.9, **extracted):
    return {
        "hasContext": has_context,
        "contextType": context_type,
        "resolvedMessage": resolved,
        "extractedContext": extracted,
        "confidence": confidence,
    }


class TestShortCircuit:
    def test_empty_history_makes_no_calls(self):
        classifier = FakeClassifier()
        resolution = resolve_context("Is it expensive?", ConversationState(), classifier)

        assert resolution.has_context is False
        assert resolution.resolved_utterance == "Is it expensive?"
        assert classifier.call_count == 0

    def test_welcome_only_history_makes_no_calls(self):
        classifier = FakeClassifier()
        state = ConversationState(messages=[welcome_message()])

        resolution = resolve_context("best tacos", state, classifier)

        assert resolution.has_context is False
        assert classifier.call_count == 0


class TestStructuredAnalysis:
    def test_pronoun_resolves_to_selected_restaurant(self):
        state = state_with_results(JOES, selected=JOES)
        classifier = FakeClassifier(json_responses=[
            _context_json(resolved="Is Joe's Pizza expensive?", referencedRestaurant="Joe's Pizza"),
        ])

        resolution = resolve_context("Is it expensive?", state, classifier)

        assert resolution.has_context is True
        assert resolution.reference_type == ReferenceType.restaurant_reference
        assert "Joe's Pizza" in resolution.resolved_utterance
        assert resolution.extracted_context.referenced_entity == JOES
        assert "Selected Restaurant: Joe's Pizza (4.6★)" in classifier.json_calls[0]

    def test_low_confidence_keeps_original_utterance(self):
        state = state_with_results(JOES)
        classifier = FakeClassifier(json_responses=[
            _context_json(resolved="Is Joe's Pizza expensive?", confidence=0.7),
        ])

        resolution = resolve_context("Is it expensive?", state, classifier)

        assert resolution.has_context is False
        assert resolution.resolved_utterance == "Is it expensive?"

    def test_threshold_is_configurable(self):
        state = state_with_results(JOES)
        classifier = FakeClassifier(json_responses=[
            _context_json(resolved="Is Joe's Pizza expensive?", confidence=0.65),
        ])

        resolution = resolve_context("Is it expensive?", state, classifier, ChatConfig(context_confidence_threshold=0.6))

        assert resolution.has_context is True

    def test_unknown_reference_type_normalises_to_none(self):
        state = state_with_results(JOES)
        classifier = FakeClassifier(json_responses=[
            _context_json(has_context=False, context_type="sarcasm", confidence=0.2),
        ])

        resolution = resolve_context("lol", state, classifier)

        assert resolution.reference_type == ReferenceType.none

    def test_comparison_targets_from_last_results(self):
        state = state_with_results(JOES, PRINCE)
        classifier = FakeClassifier(json_responses=[
            _context_json(
                context_type="comparison",
                resolved="Compare Joe's Pizza vs Prince Street Pizza",
                comparisonItems=["Joe's Pizza", "Prince Street Pizza"],
            ),
        ])

        resolution = resolve_context("compare the top 2", state, classifier)

        assert resolution.reference_type == ReferenceType.comparison
        assert resolution.extracted_context.comparison_targets == ["Joe's Pizza", "Prince Street Pizza"]


class TestDegradation:
    def test_simple_fallback_stays_below_threshold(self):
        state = state_with_results(JOES)
        classifier = FakeClassifier(
            json_responses=[ClassificationError("malformed")],
            text_responses=["RESTAURANT"],
        )

        resolution = resolve_context("Is it expensive?", state, classifier)

        assert resolution.reference_type == ReferenceType.restaurant_reference
        assert resolution.confidence == 0.5
        assert resolution.has_context is False
        assert resolution.resolved_utterance == "Is it expensive?"

    def test_missing_fields_trigger_simple_fallback(self):
        state = state_with_results(JOES)
        classifier = FakeClassifier(json_responses=[{"confidence": 0.9}], text_responses=["NONE"])

        resolution = resolve_context("hello again", state, classifier)

        assert len(classifier.text_calls) == 1
        assert resolution.reference_type == ReferenceType.none

    def test_everything_failing_means_no_context(self):
        state = state_with_results(JOES)
        classifier = FakeClassifier(
            json_responses=[ClassificationError("down")],
            text_responses=[ClassificationError("still down")],
        )

        resolution = resolve_context("Is it expensive?", state, classifier)

        assert resolution.has_context is False
        assert resolution.confidence == 0.0
        assert resolution.resolved_utterance == "Is it expensive?"


class TestHelpers:
    def test_find_place_matches_substrings_both_ways(self):
        state = state_with_results(JOES, PRINCE)
        assert find_place("joe's", state) == JOES
        assert find_place("Prince Street Pizza SoHo", state) == PRINCE
        assert find_place("Lucali", state) is None
        assert find_place(None, state) is None

    def test_summary_is_bounded_and_annotated(self):
        state = state_with_results(JOES, PRINCE)
        for i in range(6):
            state.messages.append(ChatMessage(role="user", content="x" * 500 + str(i)))

        summary = build_conversation_summary(state)
        lines = summary.splitlines()

        assert len(lines) == 5
        assert all(len(line) <= len("USER: ") + 200 for line in lines)
        assert "Welcome" not in summary

    def test_summary_lists_shown_restaurants(self):
        summary = build_conversation_summary(state_with_results(JOES, PRINCE))
        assert "[RESTAURANTS SHOWN: Joe's Pizza, Prince Street Pizza]" in summary
