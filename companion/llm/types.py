"""Core types for the inference subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextPart:
    """A run of plain text inside a message."""

    text: str

    def to_dict(self) -> dict:
        return {"type": "text", "text": self.text}


# Only text today.  New part kinds join this union and every ``isinstance``
# dispatch over it (chain folding, wire serialisation, suffix injection).
ContentPart = Union[TextPart]


# ---------------------------------------------------------------------------
# Chain events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NewMessage:
    """Opens a new message; following fragments belong to it."""

    role: Role


@dataclass(frozen=True)
class ContentFragment:
    """A piece of content for the most recently opened message."""

    part: ContentPart


ChainEvent = Union[NewMessage, ContentFragment]


# ---------------------------------------------------------------------------
# Wire messages
# ---------------------------------------------------------------------------


@dataclass
class Message:
    """
    A single role-tagged message as sent to the completion endpoint.

    *content* is an ordered list of parts; the flattened projection of a
    ``Chain`` never holds two adjacent ``TextPart`` objects.
    """

    role: Role
    content: list[ContentPart] = field(default_factory=list)

    @classmethod
    def text(cls, role: Role, text: str) -> Message:
        return cls(role=role, content=[TextPart(text)])

    @classmethod
    def system(cls, text: str) -> Message:
        return cls.text(Role.SYSTEM, text)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls.text(Role.USER, text)

    @classmethod
    def assistant(cls, text: str) -> Message:
        return cls.text(Role.ASSISTANT, text)

    def append_part(self, part: ContentPart) -> None:
        """Append *part*, merging it into a trailing ``TextPart`` if possible."""
        content = self.content
        if isinstance(part, TextPart) and content and isinstance(content[-1], TextPart):
            content[-1] = TextPart(content[-1].text + part.text)
        else:
            content.append(part)

    @property
    def text_content(self) -> str:
        """All text parts joined together."""
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    def to_dict(self) -> dict:
        """Serialize to the OpenAI ``messages[]`` item shape."""
        return {
            "role": self.role.value,
            "content": [p.to_dict() for p in self.content],
        }


# ---------------------------------------------------------------------------
# Typed replies
# ---------------------------------------------------------------------------


@dataclass
class WithReasoning(Generic[T]):
    """
    A parsed reply value plus the reasoning span the model produced, if any.

    ``reasoning`` is ``None`` when no reasoning was requested or extracted.
    """

    value: T
    reasoning: str | None = None
