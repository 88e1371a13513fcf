"""Configuration helpers: read from environment variables."""

from __future__ import annotations

import os


def get_env(name: str, default: str | None = None) -> str:
    """Get an environment variable, raising if missing and no default."""
    value = os.environ.get(name, default)
    if value is None:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


# Public IP poll (seconds)
POLL_INTERVAL = lambda: float(get_env("PROVISIONER_POLL_INTERVAL", "5"))
POLL_TIMEOUT = lambda: float(get_env("PROVISIONER_POLL_TIMEOUT", "300"))

# EC2 client
AWS_ENDPOINT_URL = lambda: get_env("PROVISIONER_AWS_ENDPOINT_URL", "") or None
AWS_CONNECT_TIMEOUT = lambda: float(get_env("PROVISIONER_AWS_CONNECT_TIMEOUT", "10"))
AWS_READ_TIMEOUT = lambda: float(get_env("PROVISIONER_AWS_READ_TIMEOUT", "30"))
AWS_MAX_ATTEMPTS = lambda: int(get_env("PROVISIONER_AWS_MAX_ATTEMPTS", "3"))
