"""OpenAI Chat Completions wire schemas.

Covers the inbound request subset the proxy accepts and every object it
emits: streaming chunks, the aggregated chat.completion, the model list,
and the error envelope.
"""

from __future__ import annotations

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def epoch_seconds() -> int:
    """Current time as integer Unix seconds."""
    return int(time.time())


# ── Inbound ───────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    """One message of the inbound conversation."""

    model_config = ConfigDict(extra="allow")

    role: str = Field(description="Message author role (system, user, assistant, ...)")
    content: Any = Field(default="", description="Message text or content parts")

    @property
    def text(self) -> str:
        """Flatten the content to plain text.

        OpenAI clients may send content as a list of parts; only the
        text parts are kept.
        """
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            return "".join(
                part.get("text", "")
                for part in self.content
                if isinstance(part, dict) and part.get("type") == "text"
            )
        if self.content is None:
            return ""
        return str(self.content)


class ChatCompletionRequest(BaseModel):
    """Inbound POST /v1/chat/completions body."""

    model_config = ConfigDict(extra="allow")

    model: str | None = Field(default=None, description="Requested model (None = default)")
    messages: list[ChatMessage] = Field(default_factory=list)
    stream: bool | None = Field(
        default=None, description="Streaming unless explicitly false"
    )
    is_web_ui: bool = Field(default=False, description="Set by the bundled web console")

    @property
    def wants_stream(self) -> bool:
        return self.stream is not False


# ── Outbound: streaming ───────────────────────────────────────────


class ChunkChoice(BaseModel):
    index: int = 0
    delta: dict[str, str] = Field(default_factory=dict)
    finish_reason: str | None = None


class OutboundChunk(BaseModel, frozen=True):
    """A single chat.completion.chunk SSE record."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int = Field(default_factory=epoch_seconds)
    model: str
    choices: list[ChunkChoice]

    @property
    def content(self) -> str:
        """The delta text carried by this chunk ("" for the terminal chunk)."""
        return self.choices[0].delta.get("content", "") if self.choices else ""

    @property
    def finish_reason(self) -> str | None:
        return self.choices[0].finish_reason if self.choices else None


# ── Outbound: non-streaming ───────────────────────────────────────


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str = ""


class CompletionChoice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: str = "stop"


class Usage(BaseModel):
    """Token usage. Upstreams never report counts, so these stay zero."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletion(BaseModel):
    """A single chat.completion response object."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(default_factory=epoch_seconds)
    model: str
    choices: list[CompletionChoice]
    usage: Usage = Field(default_factory=Usage)

    @classmethod
    def from_text(cls, request_id: str, model: str, text: str) -> ChatCompletion:
        return cls(
            id=request_id,
            model=model,
            choices=[CompletionChoice(message=AssistantMessage(content=text))],
        )


# ── Models ────────────────────────────────────────────────────────


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"
    created: int = Field(default_factory=epoch_seconds)
    owned_by: str


class ModelList(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelCard] = Field(default_factory=list)


# ── Errors ────────────────────────────────────────────────────────


class ErrorDetail(BaseModel):
    message: str
    type: Literal["api_error"] = "api_error"
    code: str


class ErrorBody(BaseModel):
    """The JSON body of every non-2xx response."""

    error: ErrorDetail
