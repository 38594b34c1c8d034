"""Shared generation/validation client used by every pipeline stage.

One call = one round trip to the generative service plus extraction of the
first JSON object from its free-form reply. The client keeps no per-run state
and never retries on its own; recovery is a full re-run by the caller.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from json import JSONDecodeError
from typing import Any

import openai
from openai import OpenAI

from errors import BackendRejected, BackendUnavailable, MalformedOutput

DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
REQUEST_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
MAX_OUTPUT_TOKENS = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "4096"))
TOP_P = 0.9
TOP_K = 40

LOGGER = logging.getLogger(__name__)


class LLMClient(ABC):
    """Generative text service behind a parse-or-fail boundary."""

    provider = "base"

    def __init__(self, model: str) -> None:
        self.model = model

    @abstractmethod
    def generate_text(self, prompt: str, system_instruction: str, temperature: float) -> str:
        """Return the raw reply text, mapping service errors to the pipeline taxonomy."""

    def generate_structured(
        self,
        prompt: str,
        system_instruction: str,
        temperature: float = 0.7,
        schema_name: str = "record",
    ) -> dict[str, Any]:
        """Generate a reply and return the first JSON object found in it.

        ``schema_name`` only labels logs and error messages; the backend is not
        held to a schema, callers validate the returned dict themselves.
        """
        if not 0.0 <= temperature <= 1.0:
            raise ValueError(f"temperature must be within [0.0, 1.0], got {temperature}")

        LOGGER.info("Requesting %s from %s model=%s temperature=%s", schema_name, self.provider, self.model, temperature)
        raw = self.generate_text(prompt, system_instruction, temperature)
        if not raw or not raw.strip():
            raise MalformedOutput(f"Empty response from AI while generating {schema_name}")

        preview = raw.strip()[:300]
        LOGGER.debug("Raw %s response (%s chars): %s", schema_name, len(raw), preview)
        try:
            return extract_json_object(raw)
        except MalformedOutput as exc:
            LOGGER.warning("Invalid %s response format from AI: %s", schema_name, exc.message)
            raise MalformedOutput(f"Invalid response format from AI ({schema_name}): {exc.message}", cause=exc.cause) from exc


class OpenAIClient(LLMClient):
    """OpenAI chat-completions backend (also works with OpenAI-compatible base URLs)."""

    provider = "openai"

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(model or os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL))
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise BackendRejected("OPENAI_API_KEY environment variable is required")
        self.timeout = timeout or REQUEST_TIMEOUT_SECONDS
        self._client = OpenAI(
            api_key=api_key,
            base_url=base_url or os.getenv("OPENAI_BASE_URL") or None,
            max_retries=0,
            timeout=self.timeout,
        )

    def generate_text(self, prompt: str, system_instruction: str, temperature: float) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                top_p=TOP_P,
                max_completion_tokens=MAX_OUTPUT_TOKENS,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.OpenAIError as exc:
            raise map_openai_error(exc) from exc

        if not response.choices:
            raise MalformedOutput("OpenAI returned no choices")
        return response.choices[0].message.content or ""


def map_openai_error(exc: Exception) -> Exception:
    """Translate an OpenAI SDK exception into the pipeline error taxonomy."""
    if isinstance(exc, openai.RateLimitError):
        return BackendUnavailable("Rate limit exceeded. Please try again later.", cause=exc)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return BackendRejected("Invalid API key", cause=exc)
    if isinstance(exc, openai.APIConnectionError):
        # APITimeoutError is a subclass of APIConnectionError.
        return BackendUnavailable(f"Could not reach the generative service: {exc}", cause=exc)
    if isinstance(exc, openai.APIStatusError):
        if exc.status_code >= 500:
            return BackendUnavailable(f"Generative service error (HTTP {exc.status_code})", cause=exc)
        return BackendRejected(f"Generative service rejected the request (HTTP {exc.status_code})", cause=exc)
    return BackendUnavailable(str(exc) or "Failed to generate content", cause=exc)


def extract_json_object(content: str) -> dict[str, Any]:
    """Return the first decodable JSON object embedded in ``content``.

    Prose and markdown fences around the object are ignored. Decoding is tried
    at every ``{`` left to right, so stray braces in the prose (or an outer
    wrapper that is not valid JSON) never hide a valid object further on.
    Raises MalformedOutput when nothing decodes.
    """
    if not content or not content.strip():
        raise MalformedOutput("No JSON object found in empty output")

    try:
        parsed = json.loads(content)
    except JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    decoder = json.JSONDecoder()
    last_error: JSONDecodeError | None = None
    for index, char in enumerate(content):
        if char != "{":
            continue
        try:
            candidate, _ = decoder.raw_decode(content, index)
        except JSONDecodeError as exc:
            last_error = exc
            continue
        if isinstance(candidate, dict):
            return candidate

    if last_error is None:
        raise MalformedOutput("No JSON object found in output")
    raise MalformedOutput(
        f"Could not parse JSON object from output: {last_error.msg} "
        f"at line {last_error.lineno}, column {last_error.colno}",
        cause=last_error,
    )


def get_client(provider: str | None = None, model: str | None = None) -> LLMClient:
    """Return the configured generation client ("openai" or "anthropic")."""
    provider = (provider or os.getenv("LLM_PROVIDER") or "openai").lower().strip()
    if provider == "openai":
        return OpenAIClient(model=model)
    if provider == "anthropic":
        from anthropic_client import AnthropicClient  # noqa: PLC0415

        return AnthropicClient(model=model)
    raise ValueError(f"Unknown LLM provider: {provider}. Use one of: openai, anthropic")
