"""Incremental frame lexer for upstream response bodies.

Turns a sequence of raw byte chunks into discrete frames, one per
complete line. Owns the only buffering in the pipeline: the undecoded
bytes of a split multi-byte character and the current incomplete line.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import Iterable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class UpstreamFrame(BaseModel, frozen=True):
    """One line of upstream output that matched the record prefix."""

    raw: str = Field(description="The full line, without its line terminator")
    prefix: str = Field(default="", description="Record prefix the line matched")

    @property
    def payload(self) -> str:
        """The frame content after the record prefix, whitespace-trimmed."""
        return self.raw[len(self.prefix):].strip()


class FrameLexer:
    """Splits a streamed body into UpstreamFrames.

    Lines not starting with ``prefix`` are dropped, as are blank lines.
    An empty prefix forwards every non-blank line (NDJSON bodies).

    Chunk boundaries never change the output: feeding a body in one
    call or one byte at a time yields the same frames.
    """

    def __init__(self, prefix: str = "data:") -> None:
        self._prefix = prefix
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def buffered(self) -> str:
        """Text held back waiting for its line terminator."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[UpstreamFrame]:
        """Consume one body chunk and return the frames it completed."""
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._frames(lines)

    def flush(self) -> list[UpstreamFrame]:
        """Emit the trailing unterminated line, if any, as a final frame."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return self._frames(tail.split("\n"))

    def _frames(self, lines: Iterable[str]) -> list[UpstreamFrame]:
        frames: list[UpstreamFrame] = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.strip():
                continue
            if not line.startswith(self._prefix):
                logger.debug("Dropping non-frame line: %.80s", line)
                continue
            frames.append(UpstreamFrame(raw=line, prefix=self._prefix))
        return frames


def lex_body(body: bytes, prefix: str = "data:") -> list[UpstreamFrame]:
    """Lex a fully-buffered body in one call."""
    lexer = FrameLexer(prefix)
    return [*lexer.feed(body), *lexer.flush()]
