"""Entry point for the dose log server (``doselog-server``).

Configures logging, refuses to expose the log's edit tools beyond loopback
unless explicitly allowed, and serves the app over Streamable HTTP.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from doselog.core.config.settings import Settings, get_settings
from doselog.core.server.app import create_app

logger = logging.getLogger(__name__)


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind(settings: Settings) -> None:
    """Raise RuntimeError for a non-loopback bind without the explicit override.

    Every tool can rewrite the dose log with the configured store token, and
    nothing in front of them checks who is calling.
    """
    if settings.doselog_allow_insecure_bind or _is_loopback_host(settings.doselog_host):
        return
    raise RuntimeError(
        f"Refusing to serve the dose log on non-loopback host {settings.doselog_host!r}: "
        "any client could add or remove doses. "
        "Set DOSELOG_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def run() -> None:
    """Start the doselog MCP server."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.doselog_log_level.upper(), logging.INFO))

    check_bind(settings)
    logger.info(
        "Serving dose log %s on %s:%d (default window %d, units %s)",
        settings.doses_url,
        settings.doselog_host,
        settings.doselog_port,
        settings.default_window,
        settings.units_path or "bundled",
    )

    mcp = create_app(settings_override=settings)
    mcp.run(
        transport="streamable-http",
        host=settings.doselog_host,
        port=settings.doselog_port,
    )


if __name__ == "__main__":
    run()
