"""Abstract base class for upstream adapters.

An adapter knows one upstream service: how to turn an inbound OpenAI
chat request into that service's HTTP request, and which decoder reads
its response frames. The orchestrator interacts exclusively through
this interface and never builds upstream payloads itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from deltaproxy.schemas.config import UpstreamConfig
from deltaproxy.schemas.openai import ChatCompletionRequest
from deltaproxy.streaming.decoders import FrameDecoder, get_decoder


class UpstreamRequest(BaseModel):
    """A fully-built upstream HTTP request."""

    method: str = "POST"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = Field(default=None, description="JSON-serializable request body")


class UpstreamAdapter(ABC):
    """Interface every upstream service integration implements.

    Initialized from the [upstream] table of the proxy config. Exposes
    the frame decoder for the service and a single build_request()
    method.
    """

    name: str = ""
    default_decoder: str = ""

    def __init__(self, config: UpstreamConfig) -> None:
        self._config = config
        self._decoder = get_decoder(config.decoder or self.default_decoder)

    # ── Identity ──────────────────────────────────────────────

    @property
    def config(self) -> UpstreamConfig:
        return self._config

    @property
    def url(self) -> str:
        return self._config.url

    # ── Response handling ─────────────────────────────────────

    @property
    def decoder(self) -> FrameDecoder:
        """Decoder for this upstream's frames."""
        return self._decoder

    @property
    def frame_prefix(self) -> str:
        """Record prefix of this upstream's stream lines."""
        return self._config.frame_prefix

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    def build_request(self, request: ChatCompletionRequest, model: str) -> UpstreamRequest:
        """Translate an inbound chat request into the upstream request.

        Args:
            request: The validated inbound OpenAI chat request.
            model: The resolved model (request model or the configured default).

        Returns:
            The upstream request to send.
        """

    def base_headers(self) -> dict[str, str]:
        """Configured headers, plus the upstream credential when one is set."""
        headers = dict(self._config.headers)
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers
