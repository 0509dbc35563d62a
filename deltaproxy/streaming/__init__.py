"""Streaming translation core: lexer, decoders, accumulator, aggregator."""

from deltaproxy.streaming.accumulator import (
    SSE_DONE,
    DeltaAccumulator,
    StreamSession,
    encode_sse,
)
from deltaproxy.streaming.aggregator import TextAggregator, aggregate
from deltaproxy.streaming.decoders import (
    DECODERS,
    FrameDecoder,
    OpenAIChunkDecoder,
    TextDeltaDecoder,
    TokenDecoder,
    get_decoder,
)
from deltaproxy.streaming.lexer import FrameLexer, UpstreamFrame, lex_body

__all__ = [
    "DECODERS",
    "SSE_DONE",
    "DeltaAccumulator",
    "FrameDecoder",
    "FrameLexer",
    "OpenAIChunkDecoder",
    "StreamSession",
    "TextAggregator",
    "TextDeltaDecoder",
    "TokenDecoder",
    "UpstreamFrame",
    "aggregate",
    "encode_sse",
    "get_decoder",
    "lex_body",
]
