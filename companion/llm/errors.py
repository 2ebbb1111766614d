"""
Error taxonomy for the inference core.

Every failure a caller can see is a distinct exception class, so call sites
discriminate with ``except`` clauses rather than by inspecting messages::

    InferError
    ├── ApiError
    │   ├── RequestFailed          could not talk to the provider
    │   ├── ResponseParseFailed    provider answered with malformed JSON
    │   └── ErrorResponse          provider reported an error (text attached)
    ├── ParseError
    │   ├── MissingJson
    │   ├── InvalidJson
    │   ├── MissingReasoningSequence
    │   └── BrokenReasoningSequence
    └── ContextLengthError         classified ErrorResponse (text attached)
"""

from __future__ import annotations


class InferError(Exception):
    """Base class for every error raised by an inference call."""


# ---------------------------------------------------------------------------
# Provider / transport
# ---------------------------------------------------------------------------


class ApiError(InferError):
    """The completion endpoint could not produce a usable reply."""


class RequestFailed(ApiError):
    """Transport-level failure (connection refused, timeout, ...)."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Request failed: {message}")


class ResponseParseFailed(ApiError):
    """The provider's response body was not a well-formed envelope."""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(f"Response parsing failed: {message}")
        self.body = body


class ErrorResponse(ApiError):
    """The provider returned an error envelope."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Error response from API: {text}")
        self.text = text


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------


class ParseError(InferError):
    """The reply did not match the shape the caller asked for."""


class MissingJson(ParseError):
    def __init__(self) -> None:
        super().__init__(
            "Missing JSON in LLM reply: couldn't find an opening/closing brace pair"
        )


class InvalidJson(ParseError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid JSON: {detail}")
        self.detail = detail


class MissingReasoningSequence(ParseError):
    def __init__(self) -> None:
        super().__init__("Missing reasoning sequence")


class BrokenReasoningSequence(ParseError):
    def __init__(self) -> None:
        super().__init__("Broken reasoning sequence")


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


class ContextLengthError(InferError):
    """
    The provider rejected the prompt because it exceeds the context window.

    ``text`` is the provider's original error message, kept for diagnostics.
    """

    def __init__(self, text: str) -> None:
        super().__init__(f"Context length error: {text}")
        self.text = text
