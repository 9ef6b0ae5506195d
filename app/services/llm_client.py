"""LLM completion provider backed by Claude."""
from __future__ import annotations

import logging
from typing import Protocol

from anthropic import Anthropic

from app.config import get_settings
from app.exceptions import AIAnalysisError


logger = logging.getLogger(__name__)


class CompletionProvider(Protocol):
    """Synchronous, single-shot text completion."""

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        ...


class ClaudeCompletionProvider:
    """Runs a single Messages API call and returns the narrative text."""

    def __init__(self) -> None:
        settings = get_settings()
        self.client = Anthropic(api_key=settings.anthropic_api_key)
        self.model = settings.anthropic_model
        self.max_tokens = settings.llm_max_tokens
        self.temperature = settings.llm_temperature

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        request_payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            request_payload["system"] = system_prompt

        try:
            response = self.client.messages.create(**request_payload)
        except Exception as exc:
            logger.exception("Claude analysis request failed (model=%s)", self.model)
            raise AIAnalysisError(
                "AI analysis service is unavailable",
                details={"provider": "anthropic", "reason": type(exc).__name__},
            ) from exc

        text = "".join(getattr(block, "text", "") or "" for block in response.content or [])
        if not text.strip():
            logger.error("Claude returned an empty analysis (model=%s)", self.model)
            raise AIAnalysisError(
                "AI analysis returned an empty response",
                details={"provider": "anthropic"},
            )

        logger.debug("Claude analysis received (%d chars)", len(text))
        return text
