from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from openai import OpenAI

from hireflow.config import Settings
from hireflow.types import ModelResponse

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    base_url: str
    api_key: str
    model: str
    timeout_sec: int


def _dump(response: Any, api_path: str) -> dict[str, Any]:
    raw = response.model_dump() if hasattr(response, "model_dump") else {}
    if not isinstance(raw, dict):
        raw = {"raw": raw}
    raw["api_path"] = api_path
    return raw


def responses_unsupported(exc: Exception) -> bool:
    """True when a server does not expose the Responses API at all."""
    if getattr(exc, "status_code", None) == 404:
        return True
    message = str(exc).strip().lower()
    return bool(message) and ("not found" in message or "404" in message)


class LLMProvider:
    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = OpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def complete_text(self, prompt: str, *, model: str | None = None) -> ModelResponse:
        model = model or self.config.model
        try:
            response = self.client.responses.create(
                model=model,
                input=[{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
            )
        except Exception as exc:
            if not responses_unsupported(exc):
                raise
            logger.warning(
                "Responses API unavailable provider=%s base_url=%s; using chat.completions (%s)",
                self.config.name,
                self.config.base_url,
                exc,
            )
            return self._complete_via_chat(prompt, model=model)

        text = getattr(response, "output_text", "") or ""
        return ModelResponse(content=text, raw=_dump(response, "responses"))

    def _complete_via_chat(self, prompt: str, *, model: str) -> ModelResponse:
        response = self.client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
        )
        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None) if message is not None else None
        return ModelResponse(
            content=content if isinstance(content, str) else "",
            raw=_dump(response, "chat_completions"),
        )


class ProviderPool:
    """Ordered providers for text generation: OpenAI first, then the local server."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._providers: dict[str, LLMProvider] = {}

    def _get(self, config: ProviderConfig) -> LLMProvider:
        if config.name not in self._providers:
            self._providers[config.name] = LLMProvider(config)
        return self._providers[config.name]

    def available(self) -> list[LLMProvider]:
        providers: list[LLMProvider] = []
        if self.settings.openai_api_key:
            providers.append(
                self._get(
                    ProviderConfig(
                        name="openai",
                        base_url=self.settings.openai_base_url,
                        api_key=self.settings.openai_api_key,
                        model=self.settings.openai_model_writer,
                        timeout_sec=self.settings.openai_timeout_sec,
                    )
                )
            )
        if self.settings.local_llm_enabled:
            providers.append(
                self._get(
                    ProviderConfig(
                        name="local",
                        base_url=self.settings.local_llm_base_url,
                        api_key=self.settings.local_llm_api_key,
                        model=self.settings.local_llm_model,
                        timeout_sec=self.settings.local_llm_timeout_sec,
                    )
                )
            )
        return providers
