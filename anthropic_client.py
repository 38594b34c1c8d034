"""Anthropic Messages API backend for the generation client."""

from __future__ import annotations

import logging
import os

import anthropic

from errors import BackendRejected, BackendUnavailable
from llm_client import MAX_OUTPUT_TOKENS, REQUEST_TIMEOUT_SECONDS, TOP_K, LLMClient

LOGGER = logging.getLogger(__name__)


class AnthropicClient(LLMClient):
    """Claude backend. The system instruction goes through the dedicated system= parameter."""

    provider = "anthropic"

    def __init__(self, model: str | None = None, api_key: str | None = None, timeout: float | None = None) -> None:
        super().__init__(model or os.getenv("CLAUDE_MODEL", "claude-sonnet-4-5"))
        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise BackendRejected("ANTHROPIC_API_KEY environment variable is required")
        self.timeout = timeout or REQUEST_TIMEOUT_SECONDS
        self._client = anthropic.Anthropic(api_key=api_key, max_retries=0, timeout=self.timeout)

    def generate_text(self, prompt: str, system_instruction: str, temperature: float) -> str:
        LOGGER.debug("Calling Claude model=%s max_tokens=%s", self.model, MAX_OUTPUT_TOKENS)
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=temperature,
                top_k=TOP_K,  # no top_p: Claude rejects temperature and top_p together
                system=system_instruction,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as exc:
            raise map_anthropic_error(exc) from exc

        return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")


def map_anthropic_error(exc: Exception) -> Exception:
    """Translate an Anthropic SDK exception into the pipeline error taxonomy."""
    if isinstance(exc, anthropic.RateLimitError):
        return BackendUnavailable("Rate limit exceeded. Please try again later.", cause=exc)
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return BackendRejected("Invalid API key", cause=exc)
    if isinstance(exc, anthropic.APIConnectionError):
        return BackendUnavailable(f"Could not reach the generative service: {exc}", cause=exc)
    if isinstance(exc, anthropic.APIStatusError):
        if exc.status_code >= 500:
            return BackendUnavailable(f"Generative service error (HTTP {exc.status_code})", cause=exc)
        return BackendRejected(f"Generative service rejected the request (HTTP {exc.status_code})", cause=exc)
    return BackendUnavailable(str(exc) or "Failed to generate content", cause=exc)
