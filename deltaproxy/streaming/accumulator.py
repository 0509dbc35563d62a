"""Delta accumulator: DecodedEvents in, OpenAI SSE records out.

Holds the per-request StreamSession and enforces the stream-shape
guarantees: content chunks keep upstream order, and every stream ends
with exactly one terminal chunk followed by exactly one ``[DONE]``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from deltaproxy.schemas.events import (
    Complete,
    DecodedEvent,
    ErrorEvent,
    Finish,
    TextDelta,
)
from deltaproxy.schemas.openai import ChunkChoice, OutboundChunk, epoch_seconds

logger = logging.getLogger(__name__)

SSE_DONE = "data: [DONE]\n\n"


def new_request_id() -> str:
    return f"req-{uuid.uuid4()}"


@dataclass
class StreamSession:
    """Mutable per-request stream state. Never shared between requests."""

    model: str
    request_id: str = field(default_factory=new_request_id)
    created: int = field(default_factory=epoch_seconds)
    terminated: bool = False
    streamed: str = ""


def encode_sse(chunk: OutboundChunk) -> str:
    """Serialize one chunk as an SSE ``data:`` record."""
    return f"data: {chunk.model_dump_json()}\n\n"


def format_inline_error(message: str) -> str:
    """Render an upstream error as text appended to the assistant output."""
    return f"\n\n[Error: {message}]"


class DeltaAccumulator:
    """Re-emits decoded upstream events as chat.completion.chunk records.

    consume() is called once per decoded frame and close() once when the
    upstream body ends. Both return serialized SSE records, possibly none.
    Once the terminal sequence has been emitted every further call
    returns nothing.
    """

    def __init__(self, session: StreamSession) -> None:
        self._session = session

    @property
    def session(self) -> StreamSession:
        return self._session

    def chunk(self, content: str | None = None, finish_reason: str | None = None) -> OutboundChunk:
        """Build an OutboundChunk stamped with this session's id and model."""
        delta = {"content": content} if content is not None else {}
        return OutboundChunk(
            id=self._session.request_id,
            created=self._session.created,
            model=self._session.model,
            choices=[ChunkChoice(delta=delta, finish_reason=finish_reason)],
        )

    def consume(self, event: DecodedEvent) -> list[str]:
        if self._session.terminated:
            return []

        if isinstance(event, TextDelta):
            return [self._content(event.text)]

        if isinstance(event, Complete):
            rest = event.remainder(self._session.streamed)
            return [self._content(rest)] if rest else []

        if isinstance(event, Finish):
            return self._terminate(event.reason)

        if isinstance(event, ErrorEvent):
            logger.warning(
                "[%s] Upstream error mid-stream: %s", self._session.request_id, event.message
            )
            return [self._content(format_inline_error(event.message)), *self._terminate(None)]

        return []

    def close(self) -> list[str]:
        """Synthesize the terminal sequence if the upstream never sent one."""
        if self._session.terminated:
            return []
        logger.debug("[%s] Upstream ended without a finish event", self._session.request_id)
        return self._terminate(None)

    def _content(self, text: str) -> str:
        self._session.streamed += text
        return encode_sse(self.chunk(content=text))

    def _terminate(self, reason: str | None) -> list[str]:
        self._session.terminated = True
        return [encode_sse(self.chunk(finish_reason=reason or "stop")), SSE_DONE]
