"""doselog MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from doselog.core.config.settings import Settings, get_settings
from doselog.domains.doses.commands import CommandRunner
from doselog.domains.doses.connectors import DoseStore
from doselog.domains.doses.connectors.http_store import HttpDoseStore
from doselog.domains.doses.domain_logic.unit_table import (
    UnitTable,
    default_unit_table,
    load_unit_table,
)
from doselog.domains.doses.resources.units import register_unit_resources
from doselog.domains.doses.tools.dose_log_tools import register_dose_log_tools

logger = logging.getLogger(__name__)


def create_app(
    *,
    settings_override: Settings | None = None,
    store_override: DoseStore | None = None,
    unit_table_override: UnitTable | None = None,
) -> FastMCP:
    """Create and configure the doselog MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the unit table (bundled, or UNITS_PATH)
    3. Connects the dose store (fs-over-http unless overridden)
    4. Registers all tools and resources
    """
    settings = settings_override or get_settings()

    # --- Server instance ---
    server = FastMCP(
        "doselog",
        instructions=(
            "Personal dose log. Shows filtered, windowed views of logged doses, "
            "adds and removes doses, fixes timezones, and summarises doses per "
            "substance with units normalised before summing."
        ),
    )

    # --- Unit table ---
    if unit_table_override is not None:
        table = unit_table_override
    elif settings.units_path:
        table = load_unit_table(settings.units_path)
        logger.info("Loaded unit table from %s", settings.units_path)
    else:
        table = default_unit_table()

    # --- Dose store ---
    if store_override is not None:
        store = store_override
    else:
        store = HttpDoseStore(
            settings.doses_url,
            settings.store_token,
            timeout=settings.http_timeout,
        )
        logger.info("Dose store configured for %s", settings.doses_url)
        if not settings.store_token:
            logger.warning(
                "No store token configured (STORE_TOKEN / FOH_TOKEN / FOH_SERVER_AUTH / TOKEN); "
                "commands that modify the log will fail to save"
            )

    runner = CommandRunner(store, settings, table)

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "doselog",
            "version": "0.1.0",
            "store": store.location,
            "default_window": settings.default_window,
            "default_route": settings.default_route,
        }

    register_dose_log_tools(server, runner)
    logger.info("Dose log tools registered")

    # --- Register resources ---
    register_unit_resources(server, table)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
