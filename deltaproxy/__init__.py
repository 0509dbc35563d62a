"""deltaproxy — OpenAI-compatible streaming proxy for bespoke chat upstreams."""

__version__ = "1.0.0"
