"""Inference subsystem -- chains, providers, reply parsing and the engine."""

from companion.llm.chain import Chain, ChainNode, Client, EmptyChainError, RootConversation
from companion.llm.engine import InferenceEngine, InferSettings, ReasoningStrategy
from companion.llm.errors import (
    ApiError,
    BrokenReasoningSequence,
    ContextLengthError,
    ErrorResponse,
    InferError,
    InvalidJson,
    MissingJson,
    MissingReasoningSequence,
    ParseError,
    RequestFailed,
    ResponseParseFailed,
)
from companion.llm.parsing import (
    PLAIN_TEXT,
    YES_NO,
    JsonArray,
    JsonObject,
    PlainText,
    Reasoning,
    YesNoReply,
)
from companion.llm.types import (
    ContentFragment,
    Message,
    NewMessage,
    Role,
    TextPart,
    WithReasoning,
)

__all__ = [
    "ApiError",
    "BrokenReasoningSequence",
    "Chain",
    "ChainNode",
    "Client",
    "ContentFragment",
    "ContextLengthError",
    "EmptyChainError",
    "ErrorResponse",
    "InferError",
    "InferSettings",
    "InferenceEngine",
    "InvalidJson",
    "JsonArray",
    "JsonObject",
    "Message",
    "MissingJson",
    "MissingReasoningSequence",
    "NewMessage",
    "PLAIN_TEXT",
    "ParseError",
    "PlainText",
    "Reasoning",
    "ReasoningStrategy",
    "RequestFailed",
    "ResponseParseFailed",
    "Role",
    "RootConversation",
    "TextPart",
    "WithReasoning",
    "YES_NO",
    "YesNoReply",
]
