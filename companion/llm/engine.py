"""
Inference engine -- Chain -> Provider -> reply shape.

One inference call moves through::

    assembling -> sent -> succeeded | recoverable error | fatal error

*Assembling* flattens the chain and applies per-model adjustments to the
outgoing messages only (system-role merging, reasoning toggle suffix).  A
provider ``ErrorResponse`` is the one recoverable error: the engine asks the
model, in a fresh one-shot chain, whether the error text is about context
length and raises ``ContextLengthError`` if so.  The classification call never
recovers itself, so a single round trip costs at most two requests.

Reasoning extraction follows one of three deployment-wide strategies:

  - ``native`` -- the model emits ``<think>...</think>`` itself;
  - ``forced`` -- a side branch asks for step-by-step reasoning, a second
    branch replays it as an assistant turn and asks for the answer (two
    round trips, so up to three requests when the answer call fails);
  - ``none``   -- no reasoning is extracted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from companion.config import CompanionConfig
from companion.llm.chain import Chain, Client
from companion.llm.errors import ContextLengthError, ErrorResponse, InferError
from companion.llm.parsing import PLAIN_TEXT, YES_NO, Reasoning, ReplyShape
from companion.llm.providers.base import Provider
from companion.llm.types import Message, Role, TextPart, WithReasoning
from companion.prompts.recovery import (
    FINAL_ANSWER_PROMPT,
    THINK_STEP_PROMPT,
    context_length_prompt,
    wrap_reasoning,
)
from companion.prompts.system import build_agent_system_prompt

logger = logging.getLogger(__name__)


class ReasoningStrategy(str, Enum):
    NATIVE = "native"
    FORCED = "forced"
    NONE = "none"


@dataclass
class InferSettings:
    """Runtime knobs for an ``InferenceEngine``."""

    model: str = "default"
    use_system_prompt: bool = True
    reasoning_strategy: ReasoningStrategy = ReasoningStrategy.NONE
    think_on_postfix: str = ""
    think_off_postfix: str = ""
    agent_system_prompt: str = field(default_factory=build_agent_system_prompt)

    @property
    def has_toggleable_reasoning(self) -> bool:
        return bool(self.think_on_postfix or self.think_off_postfix)

    @classmethod
    def from_config(cls, cfg: CompanionConfig) -> InferSettings:
        cfg.validate()
        llm = cfg.llm
        if llm.reasoning_strategy == "auto":
            strategy = (
                ReasoningStrategy.NATIVE if llm.has_reasoning else ReasoningStrategy.NONE
            )
        else:
            strategy = ReasoningStrategy(llm.reasoning_strategy)
        return cls(
            model=llm.model,
            use_system_prompt=llm.use_system_prompt,
            reasoning_strategy=strategy,
            think_on_postfix=llm.think_on_postfix,
            think_off_postfix=llm.think_off_postfix,
            agent_system_prompt=build_agent_system_prompt(cfg.persona),
        )


# ---------------------------------------------------------------------------
# Message assembly
# ---------------------------------------------------------------------------


def merge_system_prompt(messages: list[Message]) -> list[Message]:
    """
    Fold the first ``system`` message into the ``user`` message after it.

    For models without a system role.  A system message with no user message
    right after it is re-tagged as ``user``.
    """
    for idx, message in enumerate(messages):
        if message.role is Role.SYSTEM:
            break
    else:
        return messages

    merged = Message(role=Role.USER, content=list(messages[idx].content))
    rest = messages[idx + 1 :]
    if rest and rest[0].role is Role.USER:
        if merged.content:
            merged.append_part(TextPart("\n\n"))
        for part in rest[0].content:
            merged.append_part(part)
        rest = rest[1:]
    return messages[:idx] + [merged] + rest


def append_suffix(messages: list[Message], suffix: str) -> list[Message]:
    """Append *suffix* to the last text part of the last message."""
    if not suffix or not messages:
        return messages
    last = messages[-1]
    content = list(last.content)
    if content and isinstance(content[-1], TextPart):
        content[-1] = TextPart(content[-1].text + suffix)
    else:
        content.append(TextPart(suffix))
    return messages[:-1] + [Message(role=last.role, content=content)]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class InferenceEngine:
    """
    Runs chains against a provider and parses the replies.

    Parameters
    ----------
    provider:
        The completion endpoint.
    settings:
        Model capabilities and reasoning strategy.
    """

    def __init__(
        self,
        provider: Provider,
        settings: InferSettings | None = None,
    ) -> None:
        self.provider = provider
        self.settings = settings or InferSettings()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def infer_drop(
        self,
        chain: Chain,
        shape: ReplyShape[Any] = PLAIN_TEXT,
        want_reasoning: bool = False,
    ) -> WithReasoning[Any]:
        """One-shot inference; *chain* is not used by the caller afterwards."""
        result, _ = await self._infer(chain, shape, want_reasoning)
        return result

    async def infer_keep(
        self,
        chain: Chain,
        shape: ReplyShape[Any] = PLAIN_TEXT,
        want_reasoning: bool = False,
    ) -> WithReasoning[Any]:
        """Infer on a fork of *chain*; the chain itself stays untouched."""
        result, _ = await self._infer(chain.fork(), shape, want_reasoning)
        return result

    async def infer_push(
        self,
        chain: Chain,
        shape: ReplyShape[Any] = PLAIN_TEXT,
        want_reasoning: bool = False,
    ) -> WithReasoning[Any]:
        """
        Infer and append the assistant's answer to *chain*.

        The pushed text is the answer without any reasoning block.  Nothing
        is appended if the call or the parse fails.
        """
        result, answer = await self._infer(chain.fork(), shape, want_reasoning)
        chain.push_text(Role.ASSISTANT, answer)
        return result

    async def infer_value(
        self,
        system_prompt: str,
        prompt: str,
        shape: ReplyShape[Any] = PLAIN_TEXT,
        client: Client | None = None,
    ) -> Any:
        """Single system + user exchange; returns just the parsed value."""
        chain = Chain(client or Client())
        chain.push_text(Role.SYSTEM, system_prompt)
        chain.push_text(Role.USER, prompt)
        result = await self.infer_drop(chain, shape)
        return result.value

    async def is_context_length_error(
        self, error_text: str, client: Client | None = None
    ) -> bool:
        """
        Ask the model whether *error_text* reports a context-length overflow.

        Uses a fresh chain and the plain call path (no reasoning, no
        recovery).  Raises ``InferError`` if the classification itself fails.
        """
        chain = Chain(client or Client())
        chain.push_text(Role.SYSTEM, self.settings.agent_system_prompt)
        chain.push_text(Role.USER, context_length_prompt(error_text))

        raw = await self._complete(chain, want_reasoning=False, recover=False)
        if self.settings.reasoning_strategy is ReasoningStrategy.NATIVE:
            return bool(Reasoning(YES_NO).parse(raw).value)
        return bool(YES_NO.parse(raw))

    def assemble(self, chain: Chain, want_reasoning: bool) -> list[Message]:
        """Build the outgoing messages for *chain*; the chain is not modified."""
        messages = chain.as_wire_messages()
        if not self.settings.use_system_prompt:
            messages = merge_system_prompt(messages)
        if self.settings.has_toggleable_reasoning:
            suffix = (
                self.settings.think_on_postfix
                if want_reasoning
                else self.settings.think_off_postfix
            )
            messages = append_suffix(messages, suffix)
        return messages

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _complete(
        self, chain: Chain, want_reasoning: bool, *, recover: bool = True
    ) -> str:
        messages = self.assemble(chain, want_reasoning)
        try:
            return await self.provider.send(messages, self.settings.model)
        except ErrorResponse as err:
            if not recover:
                raise
            if await self._classify(err.text, chain.client):
                logger.info("Provider reported a context length error: %s", err.text)
                raise ContextLengthError(err.text) from err
            raise

    async def _classify(self, error_text: str, client: Client) -> bool:
        """Context-length classification that never raises."""
        try:
            return await self.is_context_length_error(error_text, client)
        except InferError as exc:
            logger.warning(
                "Context length classification failed, keeping original error: %s",
                exc,
            )
            return False

    async def _infer(
        self, chain: Chain, shape: ReplyShape[Any], want_reasoning: bool
    ) -> tuple[WithReasoning[Any], str]:
        """Return the parsed result and the answer text to record."""
        strategy = self.settings.reasoning_strategy

        if strategy is ReasoningStrategy.NATIVE:
            raw = await self._complete(chain, want_reasoning)
            reasoning, answer = Reasoning(shape).split(raw)
            value = shape.parse(answer)
            return WithReasoning(value, reasoning if want_reasoning else None), answer

        if strategy is ReasoningStrategy.FORCED and want_reasoning:
            return await self._infer_forced(chain, shape)

        raw = await self._complete(chain, want_reasoning=False)
        return WithReasoning(shape.parse(raw)), raw

    async def _infer_forced(
        self, chain: Chain, shape: ReplyShape[Any]
    ) -> tuple[WithReasoning[Any], str]:
        think = chain.fork()
        think.push_text(Role.USER, THINK_STEP_PROMPT)
        reasoning = (await self._complete(think, want_reasoning=True)).strip()

        answer_branch = chain.fork()
        answer_branch.push_text(Role.ASSISTANT, wrap_reasoning(reasoning))
        answer_branch.push_text(Role.USER, FINAL_ANSWER_PROMPT)
        raw = await self._complete(answer_branch, want_reasoning=False)

        return WithReasoning(shape.parse(raw), reasoning), raw
