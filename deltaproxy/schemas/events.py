"""Decoded upstream events.

Every upstream frame decodes to exactly one of these variants. The
accumulator and aggregator only ever see this closed set, so neither
has to know anything about a particular upstream's JSON schema.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field


class EventKind(StrEnum):
    """Discriminator for the DecodedEvent variants."""

    TEXT_DELTA = "text_delta"
    COMPLETE = "complete"
    FINISH = "finish"
    ERROR = "error"
    IGNORE = "ignore"


class DecodedEvent(BaseModel, frozen=True):
    """Base class for a decoded upstream frame."""

    kind: EventKind

    @property
    def is_terminal(self) -> bool:
        """True for events that end the response (Finish and ErrorEvent)."""
        return self.kind in (EventKind.FINISH, EventKind.ERROR)


class TextDelta(DecodedEvent, frozen=True):
    """A piece of assistant output to append."""

    kind: Literal[EventKind.TEXT_DELTA] = EventKind.TEXT_DELTA
    text: str = Field(min_length=1, description="Incremental assistant text")


class Complete(DecodedEvent, frozen=True):
    """An upstream payload carrying the entire assistant message at once.

    Streamed and aggregated output apply it the same way: only the part
    of the message not yet collected is added. A message that does not
    extend the collected text adds nothing.
    """

    kind: Literal[EventKind.COMPLETE] = EventKind.COMPLETE
    text: str = Field(min_length=1, description="Full assistant text")

    def remainder(self, collected: str) -> str:
        """The text still to append after ``collected`` ("" if none)."""
        if not self.text.startswith(collected):
            return ""
        return self.text[len(collected):]


class Finish(DecodedEvent, frozen=True):
    """Upstream signaled normal completion."""

    kind: Literal[EventKind.FINISH] = EventKind.FINISH
    reason: str | None = Field(
        default=None, description="Upstream finish reason (None = unspecified)"
    )


class ErrorEvent(DecodedEvent, frozen=True):
    """Upstream signaled a failure mid-stream."""

    kind: Literal[EventKind.ERROR] = EventKind.ERROR
    message: str = Field(description="Upstream error message, passed through verbatim")


class Ignore(DecodedEvent, frozen=True):
    """Frame carried nothing actionable (heartbeat, unknown type, bad JSON)."""

    kind: Literal[EventKind.IGNORE] = EventKind.IGNORE
    reason: str = Field(default="", description="Why the frame was ignored (for debug logs)")
