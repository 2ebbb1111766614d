"""Tests for the OpenAI-compatible wire client, using httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from companion.llm.errors import (
    ApiError,
    ErrorResponse,
    RequestFailed,
    ResponseParseFailed,
)
from companion.llm.providers.openai_compat import OpenAICompatProvider
from companion.llm.types import Message


def _provider(handler, **kwargs) -> OpenAICompatProvider:
    return OpenAICompatProvider(
        url="http://infer/",
        model="test-model",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _success(content: str | None) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


MESSAGES = [Message.system("You are terse."), Message.user("2+2?")]


class TestRequest:
    async def test_posts_model_and_messages(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_success("4"))

        provider = _provider(handler)
        assert await provider.send(MESSAGES) == "4"

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://infer/v1/chat/completions"
        assert "authorization" not in request.headers
        body = json.loads(request.content)
        assert body == {
            "model": "test-model",
            "messages": [
                {"role": "system", "content": [{"type": "text", "text": "You are terse."}]},
                {"role": "user", "content": [{"type": "text", "text": "2+2?"}]},
            ],
        }

    async def test_model_override_and_api_key(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_success("ok"))

        provider = _provider(handler, api_key="sk-test")
        await provider.send(MESSAGES, model="other-model")
        assert json.loads(seen[0].content)["model"] == "other-model"
        assert seen[0].headers["authorization"] == "Bearer sk-test"

    def test_endpoint(self):
        provider = OpenAICompatProvider(url="http://localhost:8080")
        assert provider.endpoint == "http://localhost:8080/v1/chat/completions"
        assert provider.name == "openai-compat"


class TestResponse:
    async def test_empty_choices_is_empty_string(self):
        provider = _provider(lambda r: httpx.Response(200, json={"choices": []}))
        assert await provider.send(MESSAGES) == ""

    async def test_null_content_is_empty_string(self):
        provider = _provider(lambda r: httpx.Response(200, json=_success(None)))
        assert await provider.send(MESSAGES) == ""

    async def test_error_envelope_with_http_200(self):
        body = {"error": "Trying to keep the first 5406 tokens when context the overflows."}
        provider = _provider(lambda r: httpx.Response(200, json=body))
        with pytest.raises(ErrorResponse) as exc_info:
            await provider.send(MESSAGES)
        assert exc_info.value.text == body["error"]

    async def test_error_envelope_checked_before_success(self):
        body = {"error": "overloaded", "choices": [{"message": {"content": "4"}}]}
        provider = _provider(lambda r: httpx.Response(200, json=body))
        with pytest.raises(ErrorResponse):
            await provider.send(MESSAGES)

    async def test_nested_error_envelope(self):
        body = {"error": {"message": "Invalid API key", "type": "auth"}}
        provider = _provider(lambda r: httpx.Response(401, json=body))
        with pytest.raises(ErrorResponse) as exc_info:
            await provider.send(MESSAGES)
        assert exc_info.value.text == "Invalid API key"

    async def test_malformed_json(self):
        provider = _provider(lambda r: httpx.Response(502, text="<html>Bad Gateway</html>"))
        with pytest.raises(ResponseParseFailed) as exc_info:
            await provider.send(MESSAGES)
        assert exc_info.value.body == "<html>Bad Gateway</html>"

    async def test_missing_choices(self):
        provider = _provider(lambda r: httpx.Response(200, json={"id": "x"}))
        with pytest.raises(ResponseParseFailed):
            await provider.send(MESSAGES)

    async def test_malformed_choice(self):
        provider = _provider(lambda r: httpx.Response(200, json={"choices": [{}]}))
        with pytest.raises(ResponseParseFailed):
            await provider.send(MESSAGES)


class TestTransport:
    async def test_connect_error_is_request_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(handler)
        with pytest.raises(RequestFailed) as exc_info:
            await provider.send(MESSAGES)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_error_kinds_are_distinct(self):
        assert not issubclass(RequestFailed, ErrorResponse)
        assert not issubclass(ResponseParseFailed, ErrorResponse)
        for cls in (RequestFailed, ResponseParseFailed, ErrorResponse):
            assert issubclass(cls, ApiError)
