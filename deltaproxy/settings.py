"""Proxy configuration loader.

Loads proxy.toml into a ProxyConfig and resolves its secrets from the
environment. Called once at process start; the resulting config is
injected into the app and never mutated afterwards.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from deltaproxy.env import load_env_files, resolve_secret
from deltaproxy.schemas.config import ProxyConfig, UpstreamConfig

logger = logging.getLogger(__name__)

# Default config directory relative to the deltaproxy package
_CONFIG_DIR = Path(__file__).parent / "config"
DEFAULT_CONFIG_PATH = _CONFIG_DIR / "proxy.toml"

CONFIG_PATH_ENV = "DELTAPROXY_CONFIG"


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Pick the config file: explicit path, then $DELTAPROXY_CONFIG, then the shipped default."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Path | None = None, *, load_env: bool = True) -> ProxyConfig:
    """Load the proxy configuration from a TOML file.

    Args:
        config_path: Path to proxy.toml. Defaults to $DELTAPROXY_CONFIG,
                     then deltaproxy/config/proxy.toml.
        load_env: Seed os.environ from keys.env / .env before resolving secrets.

    Returns:
        ProxyConfig with secrets resolved from the environment.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure is invalid.
    """
    path = resolve_config_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Proxy config not found: {path}")

    with open(path, "rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e

    proxy_section = raw.get("proxy", {})
    upstream_section = raw.get("upstream")
    if not upstream_section or not isinstance(upstream_section, dict):
        raise ValueError(f"No [upstream] section found in {path}")

    # Secrets are never read from the file itself
    proxy_section.pop("api_key", None)
    upstream_section.pop("api_key", None)

    if load_env:
        load_env_files()

    try:
        upstream = UpstreamConfig(**upstream_section)
        upstream.api_key = resolve_secret(upstream.api_key_env)
        config = ProxyConfig(**proxy_section, upstream=upstream)
    except ValidationError as e:
        raise ValueError(f"Invalid proxy config in {path}: {e}") from e

    config.api_key = resolve_secret(config.api_key_env)
    if not config.auth_enabled:
        logger.warning(
            "%s is not set; inbound authentication is disabled", config.api_key_env
        )
    if config.default_model not in config.models:
        config.models.insert(0, config.default_model)

    return config
