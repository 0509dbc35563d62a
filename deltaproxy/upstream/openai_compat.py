"""Adapter for upstreams that already speak the OpenAI chat API."""

from __future__ import annotations

from deltaproxy.schemas.openai import ChatCompletionRequest
from deltaproxy.upstream.base import UpstreamAdapter, UpstreamRequest


class OpenAICompatibleAdapter(UpstreamAdapter):
    """Forwards the chat request as-is, with the resolved model."""

    name = "openai"
    default_decoder = "openai"

    def build_request(self, request: ChatCompletionRequest, model: str) -> UpstreamRequest:
        body = request.model_dump(exclude_none=True, exclude={"is_web_ui"})
        body["model"] = model
        body["stream"] = request.wants_stream
        headers = {"Content-Type": "application/json", **self.base_headers()}
        return UpstreamRequest(url=self.url, headers=headers, body=body)
