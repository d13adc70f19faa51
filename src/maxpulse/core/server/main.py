"""MaxPulse server entry point — ``python -m maxpulse.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from maxpulse.core.config.settings import get_settings
from maxpulse.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the analysis server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.maxpulse_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    logger = logging.getLogger(__name__)
    if not settings.maxpulse_allow_insecure_bind and not _is_loopback_host(settings.maxpulse_host):
        raise RuntimeError(
            "Refusing to bind the analysis server to a non-loopback host without an auth "
            "layer. Set MAXPULSE_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting MaxPulse analysis server on %s:%d",
        settings.maxpulse_host,
        settings.maxpulse_port,
    )

    mcp = create_app(settings_override=settings)
    mcp.run(
        transport="streamable-http",
        host=settings.maxpulse_host,
        port=settings.maxpulse_port,
    )


if __name__ == "__main__":
    run()
