"""Proxy configuration schemas.

Loaded once at startup from proxy.toml. Secrets never come from the
TOML file; the loader resolves them from the environment variables
named by the *_api_key_env fields.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class UpstreamConfig(BaseModel):
    """Where and how to reach the upstream chat service."""

    adapter: str = Field(default="stockai", description="Payload builder name")
    decoder: str = Field(
        default="", description="Decoder override (empty = adapter's default)"
    )
    url: str = Field(description="Upstream chat endpoint URL")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every upstream request"
    )
    api_key_env: str = Field(
        default="", description="Environment variable holding an upstream credential"
    )
    api_key: str = Field(default="", repr=False, description="Resolved upstream credential")
    frame_prefix: str = Field(
        default="data:", description="Record prefix of upstream frames (empty = every line)"
    )
    connect_timeout: float = Field(default=10.0, gt=0, description="Connect timeout in seconds")
    read_timeout: float = Field(
        default=60.0, gt=0, description="Timeout between upstream reads in seconds"
    )


class ProxyConfig(BaseModel):
    """Top-level proxy configuration."""

    project_name: str = Field(default="deltaproxy")
    default_model: str = Field(description="Model used when the caller sends none")
    models: list[str] = Field(default_factory=list, description="Static /v1/models list")
    owned_by: str = Field(default="deltaproxy", description="owned_by on /v1/models entries")
    api_key_env: str = Field(
        default="DELTAPROXY_API_KEY",
        description="Environment variable holding the inbound bearer secret",
    )
    api_key: str = Field(
        default="", repr=False, description="Resolved inbound secret (empty = auth disabled)"
    )
    upstream: UpstreamConfig

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)
