"""Abstract base class for completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from companion.llm.types import Message


class Provider(ABC):
    """
    A provider sends a conversation to a single completion endpoint.

    Implementations must:
      - return the first choice's text, or ``""`` when there is none;
      - raise ``ErrorResponse`` when the endpoint reports an error;
      - raise ``RequestFailed`` / ``ResponseParseFailed`` for transport and
        envelope failures.

    Providers never retry.
    """

    @abstractmethod
    async def send(self, messages: list[Message], model: str | None = None) -> str:
        """Send *messages* and return the raw completion text."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai-compat"``)."""
        ...
