"""
Forkable conversation chains.

A ``Chain`` is an append-only, reverse-linked list of ``ChainEvent`` nodes.
Nodes are immutable, so any number of chains can share a common prefix:
forking copies only the tail reference (O(1)), and appending to one branch
can never be observed from another.

Flattening into wire ``Message`` objects walks the list once from the tail,
reverses it, and folds content fragments into the message opened by the most
recent ``NewMessage`` event.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence, Union

from companion.llm.types import (
    ChainEvent,
    ContentFragment,
    ContentPart,
    Message,
    NewMessage,
    Role,
    TextPart,
)


class EmptyChainError(ValueError):
    """A content fragment was pushed before any message was opened."""


@dataclass(frozen=True)
class Client:
    """Opaque identity of a conversation participant."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class ChainNode:
    event: ChainEvent
    prev: ChainNode | None = None


PartLike = Union[str, ContentPart]


def _as_part(part: PartLike) -> ContentPart:
    if isinstance(part, str):
        return TextPart(part)
    return part


class Chain:
    """
    A conversation branch bound to a ``Client``.

    Parameters
    ----------
    client:
        The participant this conversation belongs to.
    """

    __slots__ = ("id", "client", "_tail", "_event_count", "_message_count")

    def __init__(self, client: Client) -> None:
        self.id = str(uuid.uuid4())
        self.client = client
        self._tail: ChainNode | None = None
        self._event_count = 0
        self._message_count = 0

    @classmethod
    def from_messages(cls, client: Client, messages: Iterable[Message]) -> Chain:
        """Build a chain pre-populated with *messages* in order."""
        chain = cls(client)
        for message in messages:
            chain.push_message(message.role, message.content)
        return chain

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def tail(self) -> ChainNode | None:
        return self._tail

    @property
    def event_count(self) -> int:
        return self._event_count

    @property
    def message_count(self) -> int:
        return self._message_count

    @property
    def is_empty(self) -> bool:
        return self._tail is None

    @property
    def last_role(self) -> Role | None:
        """Role of the most recently opened message, or ``None`` if empty."""
        node = self._tail
        while node is not None:
            if isinstance(node.event, NewMessage):
                return node.event.role
            node = node.prev
        return None

    def __len__(self) -> int:
        return self._message_count

    def __repr__(self) -> str:
        return (
            f"Chain(id={self.id!r}, messages={self._message_count}, "
            f"events={self._event_count})"
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def push_item(self, event: ChainEvent) -> None:
        """
        Append a single event.

        Raises ``EmptyChainError`` if the chain is empty and *event* is not
        a ``NewMessage``.
        """
        if self._tail is None and not isinstance(event, NewMessage):
            raise EmptyChainError(
                "cannot append a content fragment before any message was opened"
            )
        self._tail = ChainNode(event, self._tail)
        self._event_count += 1
        if isinstance(event, NewMessage):
            self._message_count += 1

    def push_message(self, role: Role, parts: Sequence[PartLike]) -> None:
        """Open a *role* message and append one fragment per part."""
        self.push_item(NewMessage(role))
        for part in parts:
            self.push_item(ContentFragment(_as_part(part)))

    def push_text(self, role: Role, text: str) -> None:
        self.push_message(role, [text])

    # ------------------------------------------------------------------
    # Forking
    # ------------------------------------------------------------------

    def fork(self) -> Chain:
        """
        Return a new branch sharing this chain's history.

        The fork gets a fresh id.  Subsequent appends to either chain are
        invisible to the other.
        """
        forked = Chain.__new__(Chain)
        forked.id = str(uuid.uuid4())
        forked.client = self.client
        forked._tail = self._tail
        forked._event_count = self._event_count
        forked._message_count = self._message_count
        return forked

    def __copy__(self) -> Chain:
        return self.fork()

    # ------------------------------------------------------------------
    # Flattening
    # ------------------------------------------------------------------

    def events(self) -> Iterator[ChainEvent]:
        """Return an iterator over the events, root first."""
        backwards: list[ChainEvent] = []
        node = self._tail
        while node is not None:
            backwards.append(node.event)
            node = node.prev
        return reversed(backwards)

    def as_wire_messages(self) -> list[Message]:
        """
        Flatten the chain into wire messages.

        Adjacent text fragments within one message are merged into a single
        ``TextPart``.
        """
        messages: list[Message] = []
        for event in self.events():
            if isinstance(event, NewMessage):
                messages.append(Message(role=event.role))
            elif isinstance(event, ContentFragment):
                if not messages:
                    # push_item guards against this; reaching it means a
                    # ChainNode was built by hand.
                    raise AssertionError("chain does not start with a NewMessage")
                messages[-1].append_part(event.part)
            else:
                raise TypeError(f"unknown chain event: {event!r}")
        return messages


class RootConversation:
    """
    Owns a ``Client`` together with the root ``Chain`` of its conversation.

    Call sites hold one of these as "the conversation so far" and ``fork()``
    a branch whenever they want to extend or explore it.
    """

    def __init__(self, client: Client, root: Chain) -> None:
        if root.client is not client:
            raise ValueError("root chain must belong to the given client")
        self._client = client
        self._root = root

    @classmethod
    def from_message(cls, client: Client, message: Message) -> RootConversation:
        return cls.from_messages(client, [message])

    @classmethod
    def from_messages(
        cls, client: Client, messages: Iterable[Message]
    ) -> RootConversation:
        return cls(client, Chain.from_messages(client, messages))

    @property
    def client(self) -> Client:
        return self._client

    @property
    def root(self) -> Chain:
        return self._root

    def fork(self) -> Chain:
        """Return a new branch off the seeded root."""
        return self._root.fork()
