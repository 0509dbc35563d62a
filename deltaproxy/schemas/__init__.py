"""deltaproxy schema definitions.

All Pydantic v2 models shared by the streaming core, the upstream
adapters, and the HTTP surface.
"""

from deltaproxy.schemas.config import ProxyConfig, UpstreamConfig
from deltaproxy.schemas.events import (
    Complete,
    DecodedEvent,
    ErrorEvent,
    EventKind,
    Finish,
    Ignore,
    TextDelta,
)
from deltaproxy.schemas.openai import (
    ChatCompletion,
    ChatCompletionRequest,
    ChatMessage,
    ChunkChoice,
    ErrorBody,
    ErrorDetail,
    ModelCard,
    ModelList,
    OutboundChunk,
    Usage,
)

__all__ = [
    # Config
    "ProxyConfig",
    "UpstreamConfig",
    # Events
    "Complete",
    "DecodedEvent",
    "ErrorEvent",
    "EventKind",
    "Finish",
    "Ignore",
    "TextDelta",
    # OpenAI wire
    "ChatCompletion",
    "ChatCompletionRequest",
    "ChatMessage",
    "ChunkChoice",
    "ErrorBody",
    "ErrorDetail",
    "ModelCard",
    "ModelList",
    "OutboundChunk",
    "Usage",
]
