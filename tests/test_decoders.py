"""Tests for deltaproxy.streaming.decoders — frame classification."""

from __future__ import annotations

import pytest

from deltaproxy.schemas.events import (
    Complete,
    ErrorEvent,
    EventKind,
    Finish,
    Ignore,
    TextDelta,
)
from deltaproxy.streaming.decoders import (
    DECODERS,
    OpenAIChunkDecoder,
    TextDeltaDecoder,
    TokenDecoder,
    get_decoder,
)
from deltaproxy.streaming.lexer import UpstreamFrame


def _frame(payload: str, prefix: str = "data:") -> UpstreamFrame:
    return UpstreamFrame(raw=f"{prefix}{payload}", prefix=prefix)


# ══════════════════════════════════════════════════════════════════
# Shared behavior
# ══════════════════════════════════════════════════════════════════


class TestCommonDecoding:
    @pytest.mark.parametrize("name", sorted(DECODERS))
    def test_done_sentinel_is_finish(self, name):
        event = get_decoder(name).decode(_frame("[DONE]"))
        assert event == Finish()
        assert event.reason is None

    @pytest.mark.parametrize("name", sorted(DECODERS))
    def test_done_sentinel_with_space(self, name):
        assert get_decoder(name).decode(_frame(" [DONE]")) == Finish()

    @pytest.mark.parametrize("name", sorted(DECODERS))
    def test_malformed_json_is_ignored(self, name):
        event = get_decoder(name).decode(_frame("not-json"))
        assert isinstance(event, Ignore)
        assert event.reason == "malformed"

    @pytest.mark.parametrize("name", sorted(DECODERS))
    @pytest.mark.parametrize(
        "payload",
        [
            "",
            "null",
            "42",
            '"a string"',
            "[1, 2, 3]",
            "{}",
            '{"type": null}',
            '{"choices": ["x"]}',
            '{"choices": [{"delta": null}]}',
            '{"choices": [{"delta": {"content": 7}}]}',
            '{"type": "token", "token": ["x"]}',
            '{"type": "text-delta", "delta": {"x": 1}}',
            '{"truncated": ',
        ],
    )
    def test_odd_payloads_never_raise(self, name, payload):
        event = get_decoder(name).decode(_frame(payload))
        assert event.kind in set(EventKind)

    def test_unknown_decoder_name(self):
        with pytest.raises(ValueError, match="Unknown decoder"):
            get_decoder("bubble-rpc")

    def test_registry_names(self):
        assert set(DECODERS) == {"text-delta", "token", "openai"}


# ══════════════════════════════════════════════════════════════════
# Token decoder
# ══════════════════════════════════════════════════════════════════


class TestTokenDecoder:
    decoder = TokenDecoder()

    def test_token_is_text_delta(self):
        event = self.decoder.decode(_frame('{"type":"token","token":"Hel"}'))
        assert event == TextDelta(text="Hel")

    def test_whitespace_token_is_kept(self):
        event = self.decoder.decode(_frame('{"type":"token","token":" "}'))
        assert event == TextDelta(text=" ")

    def test_empty_token_is_ignored(self):
        assert isinstance(self.decoder.decode(_frame('{"type":"token","token":""}')), Ignore)

    def test_missing_token_is_ignored(self):
        assert isinstance(self.decoder.decode(_frame('{"type":"token"}')), Ignore)

    def test_done_and_finish_types(self):
        assert self.decoder.decode(_frame('{"type":"done"}')) == Finish()
        assert self.decoder.decode(_frame('{"type":"finish"}')) == Finish()

    def test_finish_reason_is_carried(self):
        event = self.decoder.decode(_frame('{"type":"done","reason":"length"}'))
        assert event == Finish(reason="length")

    def test_error_type(self):
        event = self.decoder.decode(_frame('{"type":"error","message":"quota exceeded"}'))
        assert event == ErrorEvent(message="quota exceeded")
        assert event.is_terminal

    def test_error_with_nested_object(self):
        event = self.decoder.decode(_frame('{"type":"error","error":{"message":"bad key"}}'))
        assert event == ErrorEvent(message="bad key")

    def test_error_without_message_still_surfaces(self):
        event = self.decoder.decode(_frame('{"type":"error"}'))
        assert isinstance(event, ErrorEvent)
        assert event.message

    def test_complete_payload(self):
        event = self.decoder.decode(_frame('{"type":"complete","text":"Hello"}'))
        assert event == Complete(text="Hello")

    @pytest.mark.parametrize(
        "payload", ['{"type":"complete"}', '{"type":"complete","text":""}', '{"type":"complete","text":null}']
    )
    def test_complete_without_text_is_ignored(self, payload):
        event = self.decoder.decode(_frame(payload))
        assert isinstance(event, Ignore)
        assert event.reason == "empty complete"

    def test_unknown_type_is_ignored(self):
        event = self.decoder.decode(_frame('{"type":"heartbeat"}'))
        assert isinstance(event, Ignore)
        assert not event.is_terminal

    def test_ndjson_frame_without_prefix(self):
        event = self.decoder.decode(_frame('{"type":"token","token":"x"}', prefix=""))
        assert event == TextDelta(text="x")


# ══════════════════════════════════════════════════════════════════
# AI-SDK text-delta decoder
# ══════════════════════════════════════════════════════════════════


class TestTextDeltaDecoder:
    decoder = TextDeltaDecoder()

    def test_text_delta(self):
        event = self.decoder.decode(_frame('{"type":"text-delta","id":"0","delta":"Hi"}'))
        assert event == TextDelta(text="Hi")

    def test_empty_delta_is_ignored(self):
        assert isinstance(self.decoder.decode(_frame('{"type":"text-delta","delta":""}')), Ignore)

    def test_finish(self):
        assert self.decoder.decode(_frame('{"type":"finish"}')) == Finish()

    def test_finish_with_reason(self):
        event = self.decoder.decode(_frame('{"type":"finish","finishReason":"length"}'))
        assert event == Finish(reason="length")

    def test_error_text(self):
        event = self.decoder.decode(_frame('{"type":"error","errorText":"model overloaded"}'))
        assert event == ErrorEvent(message="model overloaded")

    @pytest.mark.parametrize(
        "kind", ["start", "start-step", "text-start", "text-end", "finish-step"]
    )
    def test_lifecycle_events_are_ignored(self, kind):
        assert isinstance(self.decoder.decode(_frame(f'{{"type":"{kind}"}}')), Ignore)


# ══════════════════════════════════════════════════════════════════
# OpenAI chunk decoder
# ══════════════════════════════════════════════════════════════════


class TestOpenAIChunkDecoder:
    decoder = OpenAIChunkDecoder()

    def test_delta_content(self):
        payload = '{"choices":[{"index":0,"delta":{"content":"Hel"},"finish_reason":null}]}'
        assert self.decoder.decode(_frame(payload)) == TextDelta(text="Hel")

    def test_role_only_delta_is_ignored(self):
        payload = '{"choices":[{"index":0,"delta":{"role":"assistant"},"finish_reason":null}]}'
        assert isinstance(self.decoder.decode(_frame(payload)), Ignore)

    def test_finish_reason(self):
        payload = '{"choices":[{"index":0,"delta":{},"finish_reason":"length"}]}'
        assert self.decoder.decode(_frame(payload)) == Finish(reason="length")

    def test_content_wins_over_finish_reason(self):
        payload = '{"choices":[{"delta":{"content":"!"},"finish_reason":"stop"}]}'
        assert self.decoder.decode(_frame(payload)) == TextDelta(text="!")

    def test_error_object(self):
        payload = '{"error":{"message":"Rate limit reached","type":"requests"}}'
        assert self.decoder.decode(_frame(payload)) == ErrorEvent(message="Rate limit reached")

    def test_non_stream_message_is_complete(self):
        payload = (
            '{"object":"chat.completion","choices":[{"index":0,'
            '"message":{"role":"assistant","content":"Hello there"},"finish_reason":"stop"}]}'
        )
        assert self.decoder.decode(_frame(payload, prefix="")) == Complete(text="Hello there")

    def test_non_stream_message_without_content_is_ignored(self):
        payload = '{"choices":[{"index":0,"message":{"role":"assistant","content":null}}]}'
        assert isinstance(self.decoder.decode(_frame(payload, prefix="")), Ignore)

    def test_usage_only_chunk_is_ignored(self):
        payload = '{"choices":[],"usage":{"prompt_tokens":3,"completion_tokens":5}}'
        assert isinstance(self.decoder.decode(_frame(payload)), Ignore)
