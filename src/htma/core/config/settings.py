"""Environment-driven configuration for the HTMA interpretation server.

Each field reads the upper-cased environment variable of the same name
(``HTMA_PORT``, ``AUDIT_MAX_EVENTS``...) or a ``.env`` file. Settings only
shape how the server runs; scoring thresholds and weights are versioned
constants in the registry and are never configurable.
"""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HTMA interpretation server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Transport: ``stdio`` serves one local client and opens no socket.
    htma_transport: Literal["streamable-http", "stdio"] = "streamable-http"
    htma_host: str = "127.0.0.1"
    htma_port: int = 8001
    htma_log_level: str = "info"
    # The tools have no authentication; non-loopback binds need this opt-in.
    htma_allow_insecure_bind: bool = False

    # Audit trail
    audit_enabled: bool = True
    audit_max_events: int = 500


def get_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings()
