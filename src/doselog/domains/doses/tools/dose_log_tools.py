"""MCP tools for reading, editing and summarising the dose log.

Every tool builds one command variant and hands it to the CommandRunner.
Successful calls return the rendered text; failures return a JSON error
payload instead of raising, so a bad filter or a missing position never takes
the server down.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Callable

from fastmcp import FastMCP

from doselog.core.errors import DoseLogError
from doselog.domains.doses.commands import (
    AddCommand,
    Command,
    GetCommand,
    RemoveByPositionCommand,
    RemoveCommand,
    SaveCommand,
    StatAverageCommand,
    StatTotalCommand,
    TimezoneChangeCommand,
    TimezoneConvertCommand,
    make_view_spec,
)

if TYPE_CHECKING:
    from doselog.domains.doses.commands import CommandRunner

logger = logging.getLogger(__name__)


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def _execute(runner: CommandRunner, tool_name: str, build: Callable[[], Command]) -> str:
    try:
        result = runner.run(build())
    except DoseLogError as exc:
        logger.warning("%s failed: %s", tool_name, exc)
        return _error(str(exc))
    return result.output


def register_dose_log_tools(mcp: FastMCP, runner: CommandRunner) -> None:
    """Register dose log tools on the MCP server."""

    @mcp.tool
    def get_doses(
        filter: str = "",
        invert_filter: bool = False,
        last: int = 0,
        start_at_top: bool = False,
        reverse: bool = False,
        ignore_notes: bool = False,
        unix_time: bool = False,
        compact_time: bool = False,
        as_json: bool = False,
    ) -> str:
        """Show logged doses.

        Args:
            filter: Case-insensitive regex matched against each rendered dose line.
            invert_filter: Show doses that do NOT match ``filter``.
            last: Number of doses to show after filtering; 0 uses the default, -1 shows all.
            start_at_top: Start reading from the oldest dose instead of the newest.
            reverse: Reverse the display order.
            ignore_notes: Hide notes (applies before filtering).
            unix_time: Prefix each line with its UNIX timestamp.
            compact_time: Show UTC times as ``YYYY-MM-DD HH·MM+ZZ``.
            as_json: Return the doses as JSON instead of text lines.
        """
        return _execute(runner, "get_doses", lambda: GetCommand(
            view=make_view_spec(
                filter_pattern=filter,
                invert=invert_filter,
                window_size=last,
                start_at_top=start_at_top,
                final_reverse=reverse,
                ignore_notes=ignore_notes,
                show_unix_epoch=unix_time,
                use_compact_time_format=compact_time,
            ),
            json_output=as_json,
        ))

    @mcp.tool
    def add_dose(
        drug: str,
        dosage: str = "",
        route: str = "",
        note: str = "",
        date: str = "",
        time: str = "",
        timezone: str = "",
        filter: str = "",
        last: int = 0,
    ) -> str:
        """Log a dose and show the most recent doses, including the new one.

        Args:
            drug: Substance name (e.g., 'Caffeine', 'Alcohol').
            dosage: Amount and unit (e.g., '100mg', '2u', '0.5 mL').
            route: Route of administration. Defaults to the configured route.
            note: Optional free-text note.
            date: Date (e.g., '2026/01/15', '01-15', '0115'). Defaults to today.
            time: Time (e.g., '15:04', '3:04pm', '1504'). Defaults to now.
            timezone: IANA zone name. Defaults to the zone of the newest dose.
            filter: Filter for the echoed view; the new dose is always shown.
            last: Number of doses to echo; 0 uses the default, -1 shows all.
        """
        return _execute(runner, "add_dose", lambda: AddCommand(
            drug=drug,
            dosage=dosage,
            route=route,
            note=note,
            date=date,
            time=time,
            timezone=timezone,
            view=make_view_spec(filter_pattern=filter, window_size=last),
        ))

    @mcp.tool
    def remove_last_dose(last: int = 0) -> str:
        """Remove the most recently added dose (by position, not by time)."""
        return _execute(runner, "remove_last_dose", lambda: RemoveCommand(
            view=make_view_spec(window_size=last),
        ))

    @mcp.tool
    def remove_dose(position: int, last: int = 0) -> str:
        """Remove the dose with the given position.

        Args:
            position: The position shown in JSON output.
            last: Number of doses to echo afterwards.
        """
        return _execute(runner, "remove_dose", lambda: RemoveByPositionCommand(
            position=position,
            view=make_view_spec(window_size=last),
        ))

    @mcp.tool
    def change_timezone(
        timezone: str,
        filter: str = "",
        invert_filter: bool = False,
        last: int = 0,
    ) -> str:
        """Move the selected doses to another timezone, keeping their date and time.

        Args:
            timezone: IANA zone name (e.g., 'Europe/Berlin').
            filter: Only edit doses matching this regex.
            invert_filter: Only edit doses NOT matching ``filter``.
            last: Number of (filtered) newest doses to edit; -1 edits all.
        """
        return _execute(runner, "change_timezone", lambda: TimezoneChangeCommand(
            timezone=timezone,
            view=make_view_spec(filter_pattern=filter, invert=invert_filter, window_size=last),
        ))

    @mcp.tool
    def convert_timezone(
        timezone: str,
        filter: str = "",
        invert_filter: bool = False,
        last: int = 0,
    ) -> str:
        """Convert the selected doses into another timezone, keeping the instant.

        Args:
            timezone: IANA zone name (e.g., 'America/Toronto').
            filter: Only edit doses matching this regex.
            invert_filter: Only edit doses NOT matching ``filter``.
            last: Number of (filtered) newest doses to edit; -1 edits all.
        """
        return _execute(runner, "convert_timezone", lambda: TimezoneConvertCommand(
            timezone=timezone,
            view=make_view_spec(filter_pattern=filter, invert=invert_filter, window_size=last),
        ))

    @mcp.tool
    def save_doses() -> str:
        """Re-write doses.json and the doses.txt copy, e.g. after a manual edit."""
        return _execute(runner, "save_doses", SaveCommand)

    @mcp.tool
    def dose_stats(
        mode: str = "total",
        filter: str = "",
        invert_filter: bool = False,
        ignore_notes: bool = False,
    ) -> str:
        """Summarise doses per substance, normalising units before summing.

        Args:
            mode: 'total' for sums, 'average' for the mean amount per dose.
            filter: Only count doses matching this regex.
            invert_filter: Only count doses NOT matching ``filter``.
            ignore_notes: Hide notes before filtering.
        """
        if mode not in ("total", "average"):
            return _error(f"Unknown stats mode {mode!r}; use 'total' or 'average'")
        variant = StatAverageCommand if mode == "average" else StatTotalCommand
        return _execute(runner, "dose_stats", lambda: variant(
            view=make_view_spec(
                filter_pattern=filter,
                invert=invert_filter,
                ignore_notes=ignore_notes,
            ),
        ))
