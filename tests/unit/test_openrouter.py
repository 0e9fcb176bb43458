"""Tests for gb9k.llm.openrouter."""

import json
from pathlib import Path

import httpx
import pytest

from gb9k.core.config import Settings
from gb9k.llm.openrouter import OpenRouterClient, OpenRouterError, OpenRouterNotAvailableError


def _client(tmp_path: Path, handler) -> OpenRouterClient:
    return OpenRouterClient("sk-test", Settings(home=tmp_path), transport=httpx.MockTransport(handler))


class TestClientInit:
    def test_requires_key(self, tmp_path: Path):
        with pytest.raises(ValueError):
            OpenRouterClient("", Settings(home=tmp_path))

    def test_headers(self, tmp_path: Path):
        client = OpenRouterClient("sk-test", Settings(home=tmp_path))
        headers = client.headers()
        assert headers["Authorization"] == "Bearer sk-test"
        assert headers["Content-Type"] == "application/json"
        assert headers["HTTP-Referer"] == "https://github.com/sosaysthecaptain/gb9k"
        assert headers["X-Title"] == "gb9k"


class TestStreamChat:
    def test_posts_stream_request_and_yields_lines(self, tmp_path: Path):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, text='data: {"a": 1}\n\ndata: [DONE]\n\n')

        client = _client(tmp_path, handler)
        msgs = [{"role": "user", "content": "hi"}]
        with client.stream_chat("openai/gpt-4o", msgs) as lines:
            received = [line for line in lines if line]

        assert received == ['data: {"a": 1}', "data: [DONE]"]
        assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {"model": "openai/gpt-4o", "messages": msgs, "stream": True}

    def test_error_status_raises_with_body(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text='{"error": "bad key"}')

        client = _client(tmp_path, handler)
        with pytest.raises(OpenRouterError) as exc_info, \
                client.stream_chat("openai/gpt-4o", []):
            pytest.fail("body must not run on error status")

        assert exc_info.value.status_code == 401
        assert "bad key" in exc_info.value.body
        assert "401" in str(exc_info.value)

    def test_connect_error_raises_not_available(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = _client(tmp_path, handler)
        with pytest.raises(OpenRouterNotAvailableError, match="not reachable"), \
                client.stream_chat("openai/gpt-4o", []):
            pass

    def test_transport_error_in_body_converted(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="data: [DONE]\n")

        client = _client(tmp_path, handler)
        with pytest.raises(OpenRouterNotAvailableError), \
                client.stream_chat("openai/gpt-4o", []):
            raise httpx.ReadError("connection reset")


class TestListModels:
    def test_returns_data(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v1/models"
            return httpx.Response(200, json={"data": [{"id": "openai/gpt-4o"}]})

        assert _client(tmp_path, handler).list_models() == [{"id": "openai/gpt-4o"}]

    def test_missing_data_key(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        assert _client(tmp_path, handler).list_models() == []

    def test_error_status_raises(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(OpenRouterError, match="500") as exc_info:
            _client(tmp_path, handler).list_models()
        assert exc_info.value.status_code == 500

    def test_connect_error(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(OpenRouterNotAvailableError):
            _client(tmp_path, handler).list_models()

    def test_invalid_json(self, tmp_path: Path):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>")

        with pytest.raises(OpenRouterError, match="Invalid models response"):
            _client(tmp_path, handler).list_models()
