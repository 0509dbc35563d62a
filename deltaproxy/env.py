"""Secret loading for deltaproxy.

Secrets (the inbound bearer token, upstream credentials) only ever come
from the environment. Two KEY=VALUE files can seed it, loaded with this
priority:
  1. Variables already set in the process environment
  2. ~/.deltaproxy/keys.env
  3. .env in current directory
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DELTAPROXY_HOME = Path.home() / ".deltaproxy"
KEYS_FILE = DELTAPROXY_HOME / "keys.env"


def load_env_files(files: list[Path] | None = None) -> None:
    """Load KEY=VALUE files into os.environ without overwriting.

    Args:
        files: Files to load in priority order. Defaults to
               ~/.deltaproxy/keys.env then ./.env.
    """
    if files is None:
        files = [KEYS_FILE, Path.cwd() / ".env"]
    for env_file in files:
        if not env_file.is_file():
            continue
        try:
            text = env_file.read_text(encoding="utf-8")
        except OSError:
            logger.debug("Could not read %s", env_file)
            continue
        for key, value in parse_env(text).items():
            # Empty counts as unset
            if not os.environ.get(key):
                os.environ[key] = value
                logger.debug("Loaded %s from %s", key, env_file)


def parse_env(text: str) -> dict[str, str]:
    """Parse KEY=VALUE lines, skipping blanks, comments and malformed lines."""
    pairs: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            pairs[key] = value.strip().strip("'\"")
    return pairs


def resolve_secret(env_var: str) -> str:
    """Return the value of ``env_var``, or "" when unset or unnamed."""
    if not env_var:
        return ""
    return os.environ.get(env_var, "").strip()


def mask_secret(value: str) -> str:
    """Mask a secret for display, keeping a short recognizable prefix."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "****"
    return value[:4] + "..." + value[-2:]
