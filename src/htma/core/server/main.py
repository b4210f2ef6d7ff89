"""Command-line entry point: ``htma-server`` or ``python -m htma.core.server.main``.

Transport, bind address and log level come from ``htma.core.config.settings``.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from htma.core.config.settings import Settings, get_settings
from htma.core.server.app import SERVER_NAME, create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _is_loopback_host(host: str) -> bool:
    if host.lower() == "localhost":
        return True
    try:
        return ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def _check_bind(settings: Settings) -> None:
    """Refuse a network bind outside loopback unless explicitly allowed."""
    if _is_loopback_host(settings.htma_host):
        return
    if not settings.htma_allow_insecure_bind:
        raise RuntimeError(
            f"Refusing to serve HTMA tools on {settings.htma_host}: the server has "
            "no authentication. Bind to a loopback address, use HTMA_TRANSPORT=stdio, "
            "or set HTMA_ALLOW_INSECURE_BIND=true."
        )
    logger.warning("Serving on %s without authentication", settings.htma_host)


def run() -> None:
    """Start the HTMA interpretation server."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.htma_log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    if settings.htma_transport == "stdio":
        logger.info("Starting %s over stdio", SERVER_NAME)
        create_app().run(transport="stdio")
        return

    _check_bind(settings)
    logger.info("Starting %s on %s:%d", SERVER_NAME, settings.htma_host, settings.htma_port)
    create_app().run(
        transport="streamable-http",
        host=settings.htma_host,
        port=settings.htma_port,
    )


if __name__ == "__main__":
    run()
