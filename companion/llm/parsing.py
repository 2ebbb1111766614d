"""
Reply parsing -- turn free-text completions into typed values.

A *reply shape* is any object with a ``parse(reply: str)`` method.  The
built-in shapes are:

  - ``PlainText``   -- the reply untouched.
  - ``JsonObject``  -- the text between the first ``{`` and the last ``}``.
  - ``JsonArray``   -- the text between the first ``[`` and the last ``]``.
  - ``Reasoning``   -- a leading ``<think>...</think>`` block, with the
    remainder parsed by an inner shape.

Models routinely wrap JSON in prose or code fences, so the JSON shapes
bound the payload by braces instead of demanding a strict document.

Parsing is total: for any input a shape either returns a value or raises one
of the ``ParseError`` subclasses from ``companion.llm.errors``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol, TypeVar

from companion.llm.errors import (
    BrokenReasoningSequence,
    InvalidJson,
    MissingJson,
    MissingReasoningSequence,
)
from companion.llm.types import WithReasoning

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


class ReplyShape(Protocol[T_co]):
    def parse(self, reply: str) -> T_co: ...


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------


def find_and_parse_json(opening: str, closing: str, text: str) -> Any:
    """
    Decode the JSON enclosed by the first *opening* and last *closing* char.

    Raises ``MissingJson`` when either delimiter is absent (or they are out
    of order) and ``InvalidJson`` when the slice does not decode.
    """
    start = text.find(opening)
    end = text.rfind(closing)
    if start == -1 or end == -1 or end < start:
        raise MissingJson()
    try:
        return json.loads(text[start : end + 1])
    except (json.JSONDecodeError, RecursionError) as exc:
        # Deeply nested input exhausts the decoder's recursion limit.
        raise InvalidJson(str(exc)) from exc


def _build(factory: Callable[[Any], T], data: Any) -> T:
    try:
        return factory(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidJson(f"unexpected shape: {exc}") from exc


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------


class PlainText:
    """The whole reply string, untouched."""

    def parse(self, reply: str) -> str:
        return reply

    def __repr__(self) -> str:
        return "PlainText()"


PLAIN_TEXT = PlainText()


class JsonObject(Generic[T]):
    """
    A JSON object embedded somewhere in the reply.

    Parameters
    ----------
    factory:
        Optional callable that turns the decoded ``dict`` into a typed value.
        ``KeyError``, ``TypeError`` and ``ValueError`` raised by it are
        reported as ``InvalidJson``.
    """

    def __init__(self, factory: Callable[[dict], T] | None = None) -> None:
        self.factory = factory

    def parse(self, reply: str) -> Any:
        data = find_and_parse_json("{", "}", reply)
        if not isinstance(data, dict):
            raise InvalidJson(f"expected a JSON object, got {type(data).__name__}")
        if self.factory is None:
            return data
        return _build(self.factory, data)

    def __repr__(self) -> str:
        return f"JsonObject({self.factory!r})"


class JsonArray(Generic[T]):
    """
    A JSON array embedded somewhere in the reply.

    *item* converts each element, e.g. ``JsonArray(str)`` or
    ``JsonArray(SpaceObject.from_json)``.
    """

    def __init__(self, item: Callable[[Any], T] | None = None) -> None:
        self.item = item

    def parse(self, reply: str) -> list:
        data = find_and_parse_json("[", "]", reply)
        if not isinstance(data, list):
            raise InvalidJson(f"expected a JSON array, got {type(data).__name__}")
        if self.item is None:
            return data
        return [_build(self.item, element) for element in data]

    def __repr__(self) -> str:
        return f"JsonArray({self.item!r})"


class Reasoning(Generic[T]):
    """
    A reply that opens with a ``<think>`` block.

    The text up to the first ``</think>`` (trimmed) becomes the reasoning;
    the rest (trimmed) is handed to *inner*.
    """

    def __init__(self, inner: ReplyShape[T]) -> None:
        self.inner = inner

    def split(self, reply: str) -> tuple[str, str]:
        """Return ``(reasoning, answer)`` with both halves trimmed."""
        if not reply.startswith(THINK_OPEN):
            raise MissingReasoningSequence()
        reasoning, sep, answer = reply[len(THINK_OPEN) :].partition(THINK_CLOSE)
        if not sep:
            raise BrokenReasoningSequence()
        return reasoning.strip(), answer.strip()

    def parse(self, reply: str) -> WithReasoning[T]:
        reasoning, answer = self.split(reply)
        return WithReasoning(value=self.inner.parse(answer), reasoning=reasoning)

    def __repr__(self) -> str:
        return f"Reasoning({self.inner!r})"


# ---------------------------------------------------------------------------
# Common reply types
# ---------------------------------------------------------------------------


@dataclass
class YesNoReply:
    """``{"answer": true|false}``"""

    answer: bool

    @classmethod
    def from_json(cls, data: dict) -> YesNoReply:
        answer = data["answer"]
        if not isinstance(answer, bool):
            raise ValueError(f"'answer' must be a boolean, got {answer!r}")
        return cls(answer=answer)

    def __bool__(self) -> bool:
        return self.answer


YES_NO: JsonObject[YesNoReply] = JsonObject(YesNoReply.from_json)
