from __future__ import annotations

from unittest.mock import MagicMock, patch

import anthropic
import httpx
import pytest

from anthropic_client import AnthropicClient, map_anthropic_error
from errors import BackendRejected, BackendUnavailable
from llm_client import get_client

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls: type[anthropic.APIStatusError], status: int) -> anthropic.APIStatusError:
    return cls("boom", response=httpx.Response(status, request=_REQUEST), body=None)


def _text_block(text: str) -> MagicMock:
    block = MagicMock()
    block.type = "text"
    block.text = text
    return block


def test_anthropic_client_passes_system_and_joins_text_blocks() -> None:
    mock_client = MagicMock()
    mock_client.messages.create.return_value.content = [_text_block('{"a": '), _text_block("1}")]

    with patch("anthropic_client.anthropic.Anthropic", return_value=mock_client):
        client = AnthropicClient(api_key="test-key", model="claude-test")
        result = client.generate_structured("the prompt", "the system", temperature=0.5)

    assert result == {"a": 1}
    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["system"] == "the system"
    assert kwargs["messages"] == [{"role": "user", "content": "the prompt"}]
    assert kwargs["temperature"] == 0.5
    assert kwargs["top_k"] == 40
    assert "top_p" not in kwargs


def test_anthropic_client_default_model_sends_temperature_without_top_p() -> None:
    mock_client = MagicMock()
    mock_client.messages.create.return_value.content = [_text_block('{"ok": true}')]

    with patch.dict("os.environ", {}, clear=True), \
         patch("anthropic_client.anthropic.Anthropic", return_value=mock_client):
        client = AnthropicClient(api_key="test-key")
        client.generate_structured("p", "s", temperature=0.3)

    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-sonnet-4-5"
    assert kwargs["temperature"] == 0.3
    assert "top_p" not in kwargs


def test_anthropic_client_requires_api_key() -> None:
    with patch.dict("os.environ", {}, clear=True):
        with pytest.raises(BackendRejected, match="ANTHROPIC_API_KEY"):
            AnthropicClient()


def test_anthropic_rate_limit_is_backend_unavailable() -> None:
    mock_client = MagicMock()
    mock_client.messages.create.side_effect = _status_error(anthropic.RateLimitError, 429)

    with patch("anthropic_client.anthropic.Anthropic", return_value=mock_client):
        client = AnthropicClient(api_key="test-key")
        with pytest.raises(BackendUnavailable, match="Rate limit"):
            client.generate_structured("p", "s")


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_status_error(anthropic.AuthenticationError, 401), BackendRejected),
        (_status_error(anthropic.InternalServerError, 500), BackendUnavailable),
        (anthropic.APIConnectionError(request=_REQUEST), BackendUnavailable),
    ],
)
def test_map_anthropic_error(error: Exception, expected: type[Exception]) -> None:
    assert isinstance(map_anthropic_error(error), expected)


def test_get_client_builds_anthropic_backend() -> None:
    with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "k"}, clear=True), \
         patch("anthropic_client.anthropic.Anthropic"):
        client = get_client("anthropic")
    assert isinstance(client, AnthropicClient)
