"""Tests for deltaproxy.streaming.lexer — incremental frame splitting."""

from __future__ import annotations

from deltaproxy.streaming.lexer import FrameLexer, UpstreamFrame, lex_body

_BODY = (
    b'data:{"type":"token","token":"Hel"}\n'
    b"\n"
    b": keepalive\n"
    b'data: {"type":"token","token":"lo"}\r\n'
    b"event: message\n"
    b'data:{"type":"done"}\n'
)


def _feed_bytewise(body: bytes, prefix: str = "data:") -> list[UpstreamFrame]:
    lexer = FrameLexer(prefix)
    frames: list[UpstreamFrame] = []
    for i in range(len(body)):
        frames.extend(lexer.feed(body[i:i + 1]))
    frames.extend(lexer.flush())
    return frames


class TestFrameSplitting:
    def test_complete_lines_become_frames(self):
        lexer = FrameLexer()
        frames = lexer.feed(_BODY)
        assert [f.payload for f in frames] == [
            '{"type":"token","token":"Hel"}',
            '{"type":"token","token":"lo"}',
            '{"type":"done"}',
        ]
        assert lexer.buffered == ""

    def test_incomplete_line_is_held_back(self):
        lexer = FrameLexer()
        assert lexer.feed(b'data:{"type":"tok') == []
        assert lexer.buffered == 'data:{"type":"tok'
        frames = lexer.feed(b'en","token":"x"}\n')
        assert len(frames) == 1
        assert frames[0].payload == '{"type":"token","token":"x"}'

    def test_whole_body_and_bytewise_feed_agree(self):
        assert _feed_bytewise(_BODY) == lex_body(_BODY)

    def test_arbitrary_chunk_boundaries_agree(self):
        expected = lex_body(_BODY)
        for size in (2, 3, 5, 7, 13):
            lexer = FrameLexer()
            frames: list[UpstreamFrame] = []
            for start in range(0, len(_BODY), size):
                frames.extend(lexer.feed(_BODY[start:start + size]))
            frames.extend(lexer.flush())
            assert frames == expected, f"chunk size {size}"

    def test_crlf_terminators_are_stripped(self):
        frames = lex_body(b"data: a\r\ndata: b\r\n")
        assert [f.raw for f in frames] == ["data: a", "data: b"]
        assert [f.payload for f in frames] == ["a", "b"]

    def test_empty_chunk_is_noop(self):
        lexer = FrameLexer()
        assert lexer.feed(b"") == []
        assert lexer.buffered == ""


class TestPrefixFiltering:
    def test_non_matching_and_blank_lines_dropped(self):
        frames = lex_body(b"id: 7\nevent: delta\n\n   \nretry: 100\ndata: kept\n")
        assert [f.payload for f in frames] == ["kept"]

    def test_frame_records_its_prefix(self):
        frame = lex_body(b"data: x\n")[0]
        assert frame.prefix == "data:"
        assert frame.raw == "data: x"

    def test_empty_prefix_forwards_every_line(self):
        body = b'{"type":"token","token":"a"}\n\n{"type":"done"}\n'
        frames = lex_body(body, prefix="")
        assert [f.payload for f in frames] == ['{"type":"token","token":"a"}', '{"type":"done"}']

    def test_custom_prefix(self):
        frames = lex_body(b'0:"Hel"\n0:"lo"\nd:{"finishReason":"stop"}\n', prefix="0:")
        assert [f.payload for f in frames] == ['"Hel"', '"lo"']


class TestUtf8Boundaries:
    def test_multibyte_character_split_across_chunks(self):
        body = 'data:{"type":"token","token":"日本"}\n'.encode()
        split_at = body.index("日".encode()) + 1  # inside the 3-byte sequence
        lexer = FrameLexer()
        frames = lexer.feed(body[:split_at]) + lexer.feed(body[split_at:])
        assert len(frames) == 1
        assert "日本" in frames[0].payload
        assert "�" not in frames[0].payload

    def test_bytewise_feed_of_emoji(self):
        body = 'data: héllo 👋\n'.encode()
        frames = _feed_bytewise(body)
        assert frames[0].payload == "héllo 👋"

    def test_invalid_bytes_do_not_raise(self):
        frames = lex_body(b"data: \xff\xfe ok\n")
        assert len(frames) == 1
        assert frames[0].payload.endswith("ok")


class TestFlush:
    def test_unterminated_tail_is_emitted(self):
        lexer = FrameLexer()
        assert lexer.feed(b'data:{"type":"done"}') == []
        frames = lexer.flush()
        assert [f.payload for f in frames] == ['{"type":"done"}']
        assert lexer.buffered == ""

    def test_flush_with_nothing_buffered(self):
        lexer = FrameLexer()
        lexer.feed(b"data: a\n")
        assert lexer.flush() == []

    def test_flush_drops_non_matching_tail(self):
        lexer = FrameLexer()
        lexer.feed(b": comment without newline")
        assert lexer.flush() == []

    def test_flush_completes_dangling_multibyte_sequence(self):
        lexer = FrameLexer()
        lexer.feed(b"data: caf\xc3")
        frames = lexer.flush()
        # A truncated sequence at true end-of-stream is replaced, not raised
        assert len(frames) == 1
        assert frames[0].payload.startswith("caf")
