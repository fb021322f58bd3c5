"""Tests for the OpenAI-compatible generative backend."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from hyperfy_agent.decision.backends import (
    BackendError,
    OpenAICompatibleBackend,
    extract_json_object,
)
from hyperfy_agent.decision.engine import DecisionEngine
from hyperfy_agent.errors import SchemaViolation
from hyperfy_agent.schema.synthesizer import build_action_schema


def _make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload
    return response


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestExtractJsonObject:
    def test_plain_json(self):
        assert extract_json_object('{"say": "hi"}') == {"say": "hi"}

    def test_fenced_json(self):
        text = 'Sure!\n```json\n{"say": "hi", "emote": null}\n```'
        assert extract_json_object(text) == {"say": "hi", "emote": None}

    def test_empty(self):
        with pytest.raises(BackendError) as exc_info:
            extract_json_object("  ")
        assert exc_info.value.error_code == "empty_response"

    def test_no_object(self):
        with pytest.raises(BackendError) as exc_info:
            extract_json_object("[1, 2, 3]")
        assert exc_info.value.error_code == "invalid_json_output"


class TestOpenAICompatibleBackend:
    def setup_method(self):
        self.backend = OpenAICompatibleBackend(
            model="test-model",
            base_url="http://llm.local/v1/",
            api_key="secret",
        )
        self.schema = build_action_schema(["wave"], ["player1"])

    def test_generate_object(self):
        reply = _completion('{"lookAt": null, "emote": "wave", "say": "hi", "actions": null}')
        with patch("requests.post", return_value=_make_response(payload=reply)) as post:
            result = asyncio.run(self.backend.generate_object("prompt", self.schema))

        assert result == {"lookAt": None, "emote": "wave", "say": "hi", "actions": None}
        args, kwargs = post.call_args
        assert args[0] == "http://llm.local/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"]["model"] == "test-model"
        assert kwargs["json"]["response_format"] == {"type": "json_object"}
        system, user = kwargs["json"]["messages"]
        assert '"wave"' in system["content"]
        assert user["content"] == "prompt"

    def test_no_choices_returns_none(self):
        with patch("requests.post", return_value=_make_response(payload={"choices": []})):
            assert self.backend.complete("prompt", self.schema) is None

    def test_http_error(self):
        with patch("requests.post", return_value=_make_response(status_code=503, text="busy")):
            with pytest.raises(BackendError) as exc_info:
                self.backend.complete("prompt", self.schema)
        assert exc_info.value.error_code == "http_503"

    def test_network_error(self):
        with patch("requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(BackendError) as exc_info:
                self.backend.complete("prompt", self.schema)
        assert exc_info.value.error_code == "network_error"

    def test_from_env(self):
        backend = OpenAICompatibleBackend.from_env({
            "HYPERFY_LLM_MODEL": "local-model",
            "HYPERFY_LLM_BASE_URL": "http://localhost:8080/v1",
            "OPENAI_API_KEY": "fallback-key",
            "HYPERFY_LLM_TIMEOUT_SECONDS": "5",
        })
        assert backend.model == "local-model"
        assert backend.base_url == "http://localhost:8080/v1"
        assert backend.api_key == "fallback-key"
        assert backend.timeout_seconds == 5.0

    def test_reply_without_json_returned_as_text(self):
        reply = _completion("I would wave at player1!")
        with patch("requests.post", return_value=_make_response(payload=reply)):
            assert self.backend.complete("prompt", self.schema) == "I would wave at player1!"

    def test_empty_reply_still_fails(self):
        with patch("requests.post", return_value=_make_response(payload=_completion(""))):
            with pytest.raises(BackendError) as exc_info:
                self.backend.complete("prompt", self.schema)
        assert exc_info.value.error_code == "empty_response"


class TestBackendWithDecisionEngine:
    def test_reply_without_json_is_schema_violation(self):
        backend = OpenAICompatibleBackend(base_url="http://llm.local/v1")
        schema = build_action_schema(["wave"], ["player1"])
        reply = _completion("Sure, I'll wave.")

        with patch("requests.post", return_value=_make_response(payload=reply)):
            with pytest.raises(SchemaViolation) as exc_info:
                asyncio.run(DecisionEngine().decide("prompt", schema, backend))

        assert exc_info.value.public_message == "Error in LLM response, try again"
        assert exc_info.value.context["raw"] == "Sure, I'll wave."
