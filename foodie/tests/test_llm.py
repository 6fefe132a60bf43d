import json
from unittest.mock import MagicMock, patch

import pytest

from foodie.errors import ClassificationError, ConfigurationError, GenerationError
from foodie.llm.config import LLMConfig
from foodie.llm.groq_client import GroqClient

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@patch("foodie.llm.groq_client.Groq")
def test_classify_json_returns_parsed_object(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        json.dumps({"type": "restaurant_search", "confidence": 0.9})
    )

    result = GroqClient(ENABLED_CONFIG).classify_json("best pizza", {"type": "object"})

    assert result == {"type": "restaurant_search", "confidence": 0.9}
    kwargs = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["model"] == ENABLED_CONFIG.model


@patch("foodie.llm.groq_client.Groq")
def test_classify_json_raises_on_bad_json(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("not valid json{{{")

    with pytest.raises(ClassificationError):
        GroqClient(ENABLED_CONFIG).classify_json("best pizza", {})


@patch("foodie.llm.groq_client.Groq")
def test_classify_json_raises_on_non_object(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("[1, 2]")

    with pytest.raises(ClassificationError):
        GroqClient(ENABLED_CONFIG).classify_json("best pizza", {})


@patch("foodie.llm.groq_client.Groq")
def test_classify_json_wraps_api_errors(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    with pytest.raises(ClassificationError):
        GroqClient(ENABLED_CONFIG).classify_json("best pizza", {})


@patch("foodie.llm.groq_client.Groq")
def test_classify_text_strips_output(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("  RESTAURANT\n")

    assert GroqClient(ENABLED_CONFIG).classify_text("prompt") == "RESTAURANT"


@patch("foodie.llm.groq_client.Groq")
def test_complete_uses_system_prompt(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("Order the pastrami.")

    text = GroqClient(ENABLED_CONFIG).complete("What to order?", system="Be brief", max_tokens=100)

    assert text == "Order the pastrami."
    kwargs = mock_groq_cls.return_value.chat.completions.create.call_args.kwargs
    assert kwargs["messages"][0] == {"role": "system", "content": "Be brief"}
    assert kwargs["max_tokens"] == 100
    assert "response_format" not in kwargs


@patch("foodie.llm.groq_client.Groq")
def test_complete_raises_on_empty_output(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response("   ")

    with pytest.raises(GenerationError):
        GroqClient(ENABLED_CONFIG).complete("What to order?")


@patch("foodie.llm.groq_client.Groq")
def test_complete_wraps_api_errors(mock_groq_cls):
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("rate limited")

    with pytest.raises(GenerationError):
        GroqClient(ENABLED_CONFIG).complete("What to order?")


@patch("foodie.llm.groq_client.Groq")
def test_disabled_client_never_calls_api(mock_groq_cls):
    client = GroqClient(DISABLED_CONFIG)

    assert not client.available
    with pytest.raises(ConfigurationError):
        client.classify_json("prompt", {})
    mock_groq_cls.assert_not_called()
