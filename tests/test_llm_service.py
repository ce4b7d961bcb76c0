"""
Tests for the Ollama client

Tests cover:
- Request payload (system prompt, JSON schema format, timeout)
- Failures reported through LLMResponse instead of raised
- Connection check
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from services.llm_service import OllamaService


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def service():
    return OllamaService(base_url="http://ollama:11434/", model="test-model", timeout=7)


def ok_response(content='{"a": 1}'):
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = {"message": {"role": "assistant", "content": content}}
    return response


# =============================================================================
# CHAT TESTS
# =============================================================================

class TestChat:
    """Tests for /api/chat calls."""

    @patch("services.llm_service.requests.post")
    def test_payload(self, mock_post, service):
        """Should send model, system prompt, schema and timeout."""
        mock_post.return_value = ok_response()
        schema = {"type": "object"}

        result = service.generate_structured("hello", "nutrition_analyst", schema)

        assert result.success
        assert result.content == '{"a": 1}'
        assert result.model == "test-model"

        args, kwargs = mock_post.call_args
        assert args[0] == "http://ollama:11434/api/chat"
        payload = kwargs["json"]
        assert payload["model"] == "test-model"
        assert payload["format"] == schema
        assert payload["stream"] is False
        assert payload["messages"][0]["content"] == OllamaService.SYSTEM_PROMPTS["nutrition_analyst"]
        assert payload["messages"][1] == {"role": "user", "content": "hello"}
        assert kwargs["timeout"] == 7

    @patch("services.llm_service.requests.post")
    def test_custom_system_prompt(self, mock_post, service):
        mock_post.return_value = ok_response()
        service.chat("hi", system_prompt="Be brief.")
        payload = mock_post.call_args.kwargs["json"]
        assert payload["messages"][0]["content"] == "Be brief."
        assert "format" not in payload

    @patch("services.llm_service.requests.post")
    def test_timeout(self, mock_post, service):
        mock_post.side_effect = requests.exceptions.Timeout()
        result = service.chat("hi")
        assert not result.success
        assert "timed out" in result.error

    @patch("services.llm_service.requests.post")
    def test_connection_error(self, mock_post, service):
        mock_post.side_effect = requests.exceptions.ConnectionError()
        result = service.chat("hi")
        assert not result.success
        assert "not available" in result.error

    @patch("services.llm_service.requests.post")
    def test_http_error(self, mock_post, service):
        mock_post.return_value = MagicMock(status_code=500)
        result = service.chat("hi")
        assert not result.success
        assert "500" in result.error

    @patch("services.llm_service.requests.post")
    def test_non_json_body(self, mock_post, service):
        response = MagicMock(status_code=200)
        response.json.side_effect = ValueError("no json")
        mock_post.return_value = response
        result = service.chat("hi")
        assert not result.success


class TestCheckConnection:
    """Tests for the health probe."""

    @patch("services.llm_service.requests.get")
    def test_up(self, mock_get, service):
        mock_get.return_value = MagicMock(status_code=200)
        assert service.check_connection() is True
        assert mock_get.call_args.args[0] == "http://ollama:11434/api/tags"

    @patch("services.llm_service.requests.get")
    def test_down(self, mock_get, service):
        mock_get.side_effect = requests.exceptions.ConnectionError()
        assert service.check_connection() is False
