"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, vLLM, LM Studio, llama.cpp server, LocalAI, etc.

Some deployments answer errors with HTTP 200 and an ``{"error": ...}`` body,
so the error envelope is checked before the success envelope and the HTTP
status code is not consulted.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from companion.llm.errors import ErrorResponse, RequestFailed, ResponseParseFailed
from companion.llm.providers.base import Provider
from companion.llm.types import Message

logger = logging.getLogger(__name__)


class OpenAICompatProvider(Provider):
    """
    Non-streaming provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the server, e.g. ``"http://infer"`` or
        ``"http://localhost:8080"``.  ``/v1/chat/completions`` is appended.
    model:
        Default model identifier sent in the ``model`` field.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP request timeout in seconds.
    transport:
        Optional ``httpx`` transport, e.g. ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        url: str = "http://infer",
        model: str = "default",
        api_key: str = "",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return "openai-compat"

    @property
    def model(self) -> str:
        return self._model

    @property
    def endpoint(self) -> str:
        return f"{self._url}/v1/chat/completions"

    async def send(self, messages: list[Message], model: str | None = None) -> str:
        body = self._build_body(messages, model or self._model)
        headers = self._build_headers()

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(self.endpoint, json=body, headers=headers)
                text = resp.text
        except httpx.HTTPError as exc:
            raise RequestFailed(str(exc) or type(exc).__name__) from exc

        return self._parse_response(text)

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(self, messages: list[Message], model: str) -> dict:
        body = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
        }
        logger.info(
            "REQUEST: model=%s messages=%d api_key=%s...",
            model,
            len(messages),
            self._api_key[:12] if self._api_key else "(none)",
        )
        return body

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_response(text: str) -> str:
        """
        Extract the completion from a response body.

        Order matters: the error envelope wins over the success envelope.
        """
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ResponseParseFailed(str(exc), body=text) from exc

        error_text = _error_text(data)
        if error_text is not None:
            raise ErrorResponse(error_text)

        if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
            raise ResponseParseFailed("missing field `choices`", body=text)

        choices = data["choices"]
        if not choices:
            return ""

        try:
            content = choices[0]["message"]["content"]
        except (KeyError, TypeError) as exc:
            raise ResponseParseFailed(f"malformed choice: {exc}", body=text) from exc
        if content is None:
            return ""
        if not isinstance(content, str):
            raise ResponseParseFailed("`content` is not a string", body=text)
        return content


def _error_text(data: Any) -> str | None:
    """Return the provider's error message if *data* is an error envelope."""
    if not isinstance(data, dict) or "error" not in data:
        return None
    error = data["error"]
    if isinstance(error, str):
        return error
    # OpenAI proper nests the message: {"error": {"message": ..., "type": ...}}
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return None
