"""Tests for OpenAI reply parsing and error mapping."""

from unittest.mock import MagicMock

import pytest

from mindmesh.integrations.openai_client import AIUnavailableError, OpenAIClient, parse_json_reply


class TestParseJsonReply:
    """Test tolerant JSON parsing of model replies."""

    def test_plain_json(self):
        assert parse_json_reply('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert parse_json_reply('```json\n{"coaching_response": "hi"}\n```') == {"coaching_response": "hi"}

    def test_bare_fence(self):
        assert parse_json_reply('```\n{"b": 2}\n```') == {"b": 2}

    def test_invalid_json_returns_none(self):
        assert parse_json_reply("Sure! Here you go: {oops") is None

    def test_non_object_returns_none(self):
        assert parse_json_reply("[1, 2, 3]") is None

    def test_empty_returns_none(self):
        assert parse_json_reply("") is None
        assert parse_json_reply(None) is None


class TestOpenAIClient:
    """Test completion calls without network access."""

    def test_missing_key_raises_unavailable(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = OpenAIClient()
        assert client.available is False
        with pytest.raises(AIUnavailableError):
            client.complete("hello")

    def test_complete_json_parses_reply(self):
        client = OpenAIClient(api_key="test-key")
        message = MagicMock()
        message.content = '```json\n{"title": "Stretch", "message": "Time to move"}\n```'
        response = MagicMock()
        response.choices = [MagicMock(message=message)]
        client.client = MagicMock()
        client.client.chat.completions.create.return_value = response

        assert client.complete_json("prompt") == {"title": "Stretch", "message": "Time to move"}
        _, kwargs = client.client.chat.completions.create.call_args
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}

    def test_transport_error_maps_to_unavailable(self):
        client = OpenAIClient(api_key="test-key")
        client.client = MagicMock()
        client.client.chat.completions.create.side_effect = ConnectionError("boom")

        with pytest.raises(AIUnavailableError):
            client.complete("prompt")
