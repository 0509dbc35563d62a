"""Upstream adapters and their registry."""

from __future__ import annotations

from deltaproxy.schemas.config import UpstreamConfig
from deltaproxy.upstream.base import UpstreamAdapter, UpstreamRequest
from deltaproxy.upstream.openai_compat import OpenAICompatibleAdapter
from deltaproxy.upstream.stockai import StockAIAdapter

ADAPTERS: dict[str, type[UpstreamAdapter]] = {
    StockAIAdapter.name: StockAIAdapter,
    OpenAICompatibleAdapter.name: OpenAICompatibleAdapter,
}


def create_adapter(config: UpstreamConfig) -> UpstreamAdapter:
    """Instantiate the adapter named by ``config.adapter``.

    Raises:
        ValueError: If the adapter or its decoder is unknown.
    """
    adapter_cls = ADAPTERS.get(config.adapter)
    if adapter_cls is None:
        raise ValueError(
            f"Unknown upstream adapter {config.adapter!r} "
            f"(available: {', '.join(sorted(ADAPTERS))})"
        )
    return adapter_cls(config)


__all__ = [
    "ADAPTERS",
    "OpenAICompatibleAdapter",
    "StockAIAdapter",
    "UpstreamAdapter",
    "UpstreamRequest",
    "create_adapter",
]
