"""Non-stream aggregator: collapses decoded events into one message."""

from __future__ import annotations

from collections.abc import Iterable

from deltaproxy.errors import UpstreamStreamError
from deltaproxy.schemas.events import Complete, DecodedEvent, ErrorEvent, Finish, TextDelta
from deltaproxy.streaming.decoders import FrameDecoder
from deltaproxy.streaming.lexer import UpstreamFrame


class TextAggregator:
    """Accumulates assistant text across decoded events.

    add() returns False once no further events can change the result
    (the upstream finished), so callers may stop reading early.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._finished = False

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def finished(self) -> bool:
        return self._finished

    def add(self, event: DecodedEvent) -> bool:
        """Apply one event.

        Raises:
            UpstreamStreamError: If the event is an upstream error.
        """
        if self._finished:
            return False
        if isinstance(event, TextDelta):
            self._parts.append(event.text)
        elif isinstance(event, Complete):
            self._parts.append(event.remainder(self.text))
        elif isinstance(event, Finish):
            self._finished = True
        elif isinstance(event, ErrorEvent):
            raise UpstreamStreamError(event.message)
        return not self._finished


def aggregate(frames: Iterable[UpstreamFrame], decoder: FrameDecoder) -> str:
    """Decode every frame and return the full assistant text.

    Raises:
        UpstreamStreamError: If any frame decodes to an upstream error.
    """
    aggregator = TextAggregator()
    for frame in frames:
        if not aggregator.add(decoder.decode(frame)):
            break
    return aggregator.text
