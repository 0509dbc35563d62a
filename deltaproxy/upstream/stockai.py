"""StockAI chat adapter.

The service exposes an AI-SDK chat endpoint: messages are sent as
``parts`` lists and the reply streams back as ``text-delta`` events.
No login is needed; the configured browser headers are enough.
"""

from __future__ import annotations

import secrets
import string

from deltaproxy.schemas.openai import ChatCompletionRequest
from deltaproxy.upstream.base import UpstreamAdapter, UpstreamRequest

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 16


def random_id(length: int = _ID_LENGTH) -> str:
    """Random alphanumeric id, the format the web client generates."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


class StockAIAdapter(UpstreamAdapter):
    name = "stockai"
    default_decoder = "text-delta"

    def build_request(self, request: ChatCompletionRequest, model: str) -> UpstreamRequest:
        messages = [
            {
                "parts": [{"type": "text", "text": message.text}],
                "id": random_id(),
                "role": message.role,
            }
            for message in request.messages
        ]
        body = {
            "model": model,
            "webSearch": False,
            "id": random_id(),
            "messages": messages,
            "trigger": "submit-message",
        }
        return UpstreamRequest(url=self.url, headers=self.base_headers(), body=body)
