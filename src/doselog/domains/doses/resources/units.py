"""MCP Resources for unit table discovery."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastmcp import FastMCP

if TYPE_CHECKING:
    from doselog.domains.doses.domain_logic.unit_table import UnitTable


def register_unit_resources(mcp: FastMCP, table: UnitTable) -> None:
    """Register unit table resources on the MCP server."""

    @mcp.resource("doses://units")
    def unit_table_resource() -> str:
        """List the dosage units the statistics tools understand."""
        return json.dumps(
            {
                "canonical_unit": table.microgram.token,
                **table.describe(),
            },
            indent=2,
            ensure_ascii=False,
        )
