"""Frame decoders: one upstream frame in, one DecodedEvent out.

Each upstream speaks its own JSON dialect. A decoder is the only place
that dialect is known; everything downstream works on DecodedEvents.

Decoding never raises. The ``[DONE]`` sentinel maps to Finish, anything
that is not valid JSON maps to Ignore, and a payload whose shape the
decoder does not expect maps to Ignore as well.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from deltaproxy.schemas.events import (
    Complete,
    DecodedEvent,
    ErrorEvent,
    Finish,
    Ignore,
    TextDelta,
)
from deltaproxy.streaming.lexer import UpstreamFrame

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class FrameDecoder(ABC):
    """Strategy that classifies one upstream frame.

    Subclasses implement decode_payload() against already-parsed JSON;
    decode() handles the sentinel, the JSON parse, and the no-raise
    guarantee.
    """

    name: str = ""

    def decode(self, frame: UpstreamFrame) -> DecodedEvent:
        payload = frame.payload
        if not payload:
            return Ignore(reason="empty")
        if payload == DONE_SENTINEL:
            return Finish()

        try:
            data = json.loads(payload)
        except ValueError:
            logger.debug("Ignoring malformed frame: %.80s", payload)
            return Ignore(reason="malformed")

        try:
            return self.decode_payload(data)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError):
            logger.debug("Ignoring unexpected frame shape: %.80s", payload)
            return Ignore(reason="unexpected shape")

    @abstractmethod
    def decode_payload(self, data: Any) -> DecodedEvent:
        """Classify one parsed JSON payload."""


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _error_message(value: Any, fallback: str = "Upstream error") -> str:
    """Pull a message out of a string or {"message": ...} error value."""
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict):
        message = value.get("message") or value.get("detail")
        if isinstance(message, str) and message:
            return message
    return fallback


class TextDeltaDecoder(FrameDecoder):
    """AI-SDK UI message stream (``{"type": "text-delta", "delta": ...}``)."""

    name = "text-delta"

    def decode_payload(self, data: Any) -> DecodedEvent:
        if not isinstance(data, dict):
            return Ignore(reason="not an object")

        kind = data.get("type")
        if kind == "text-delta":
            text = _text(data.get("delta"))
            return TextDelta(text=text) if text else Ignore(reason="empty delta")
        if kind == "finish":
            return Finish(reason=_text(data.get("finishReason")) or None)
        if kind == "error":
            return ErrorEvent(message=_error_message(data.get("errorText") or data.get("error")))
        return Ignore(reason=f"type {kind!r}")


class TokenDecoder(FrameDecoder):
    """Token-typed event stream (``{"type": "token", "token": ...}``).

    Also understands a ``complete`` event that carries the whole
    message in ``text`` (or ``content``).
    """

    name = "token"

    def decode_payload(self, data: Any) -> DecodedEvent:
        if not isinstance(data, dict):
            return Ignore(reason="not an object")

        kind = data.get("type")
        if kind == "token":
            text = _text(data.get("token"))
            return TextDelta(text=text) if text else Ignore(reason="empty token")
        if kind in ("done", "finish"):
            return Finish(reason=_text(data.get("reason") or data.get("finish_reason")) or None)
        if kind == "error":
            return ErrorEvent(message=_error_message(data.get("message") or data.get("error")))
        if kind == "complete":
            text = _text(data.get("text") or data.get("content"))
            return Complete(text=text) if text else Ignore(reason="empty complete")
        return Ignore(reason=f"type {kind!r}")


class OpenAIChunkDecoder(FrameDecoder):
    """OpenAI-compatible upstreams, streamed or not.

    A frame maps to exactly one event, so a chunk carrying both content
    and a finish_reason yields the content; the stream-end flush then
    supplies the terminal chunk.
    """

    name = "openai"

    def decode_payload(self, data: Any) -> DecodedEvent:
        if not isinstance(data, dict):
            return Ignore(reason="not an object")

        if data.get("error"):
            return ErrorEvent(message=_error_message(data["error"]))

        choices = data.get("choices") or []
        if not choices:
            return Ignore(reason="no choices")
        choice = choices[0]

        message = choice.get("message")
        if isinstance(message, dict):
            text = _text(message.get("content"))
            return Complete(text=text) if text else Ignore(reason="empty message")

        text = _text((choice.get("delta") or {}).get("content"))
        if text:
            return TextDelta(text=text)
        reason = choice.get("finish_reason")
        if reason:
            return Finish(reason=str(reason))
        return Ignore(reason="empty delta")


DECODERS: dict[str, type[FrameDecoder]] = {
    TextDeltaDecoder.name: TextDeltaDecoder,
    TokenDecoder.name: TokenDecoder,
    OpenAIChunkDecoder.name: OpenAIChunkDecoder,
}


def get_decoder(name: str) -> FrameDecoder:
    """Instantiate a registered decoder by name.

    Raises:
        ValueError: If no decoder is registered under ``name``.
    """
    try:
        return DECODERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown decoder {name!r} (available: {', '.join(sorted(DECODERS))})"
        ) from None
