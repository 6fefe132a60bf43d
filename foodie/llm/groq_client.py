from __future__ import annotations

import json
import logging
from typing import Any

from groq import Groq

from ..errors import ClassificationError, ConfigurationError, GenerationError
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = (
    "You are a precise classifier. Answer ONLY with a single valid JSON object "
    "that matches this JSON schema. Do not add commentary.\n\n"
    "Schema:\n{schema}"
)


class GroqClient:
    """Thin wrapper over the Groq chat completions API.

    ``classify_json`` and ``classify_text`` raise ``ClassificationError`` on
    API failures or unparsable output, ``complete`` raises ``GenerationError``.
    Retry and fallback policy belongs to the callers.
    """

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        self.config = config

    @property
    def available(self) -> bool:
        return self.config.enabled and bool(self.config.api_key)

    def _create(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> str:
        if not self.available:
            raise ConfigurationError("Groq API key is not configured")

        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        client = Groq(api_key=self.config.api_key, timeout=self.config.timeout)
        response = client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )
        return response.choices[0].message.content or ""

    def classify_json(self, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        messages = [
            {"role": "system", "content": JSON_SYSTEM_PROMPT.format(schema=json.dumps(schema))},
            {"role": "user", "content": prompt},
        ]
        try:
            content = self._create(
                messages,
                max_tokens=self.config.classify_max_tokens,
                temperature=0.1,
                json_mode=True,
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ClassificationError(f"Groq classification call failed: {exc}") from exc

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ClassificationError("Groq returned malformed JSON") from exc

        if not isinstance(parsed, dict):
            raise ClassificationError("Groq returned JSON that is not an object")
        return parsed

    def classify_text(self, prompt: str) -> str:
        try:
            content = self._create(
                [{"role": "user", "content": prompt}],
                max_tokens=64,
                temperature=0.1,
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise ClassificationError(f"Groq classification call failed: {exc}") from exc
        return content.strip()

    def complete(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.1,
        max_tokens: int | None = None,
    ) -> str:
        messages: list[dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            content = self._create(
                messages,
                max_tokens=max_tokens or self.config.generate_max_tokens,
                temperature=temperature,
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Groq generation call failed: {exc}") from exc

        text = content.strip()
        if not text:
            raise GenerationError("Groq returned an empty completion")
        return text
