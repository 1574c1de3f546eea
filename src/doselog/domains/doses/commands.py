"""Dose log commands — one variant per operation, and the runner that executes them.

Each command carries only the fields it needs. ``CommandRunner.run`` loads the
log once, applies the command, saves at most once and returns the rendered
output together with the resulting log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Union

from doselog.core.config.settings import Settings
from doselog.core.errors import ConfigurationError
from doselog.core.storage.models import Dose
from doselog.domains.doses.connectors import DoseStore, SaveResult
from doselog.domains.doses.domain_logic import dose_log
from doselog.domains.doses.domain_logic.formatter import render_json, render_lines, render_stats
from doselog.domains.doses.domain_logic.stats_aggregator import StatsAggregator, StatsMode
from doselog.domains.doses.domain_logic.timestamps import load_timezone, parse_dose_timestamp
from doselog.domains.doses.domain_logic.unit_table import UnitTable
from doselog.domains.doses.domain_logic.view_pipeline import (
    ViewSpec,
    build_view,
    compile_filter,
    filter_doses,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Command variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GetCommand:
    view: ViewSpec = field(default_factory=ViewSpec)
    json_output: bool = False


@dataclass(frozen=True)
class AddCommand:
    drug: str
    dosage: str = ""
    route: str = ""
    note: str = ""
    date: str = ""
    time: str = ""
    timezone: str = ""  # defaults to the newest dose's zone
    view: ViewSpec = field(default_factory=ViewSpec)
    json_output: bool = False


@dataclass(frozen=True)
class RemoveCommand:
    """Remove the dose that was added last (highest position)."""

    view: ViewSpec = field(default_factory=ViewSpec)
    json_output: bool = False


@dataclass(frozen=True)
class RemoveByPositionCommand:
    position: int
    view: ViewSpec = field(default_factory=ViewSpec)
    json_output: bool = False


@dataclass(frozen=True)
class TimezoneChangeCommand:
    """Keep the wall clock of the viewed doses, swap their zone."""

    timezone: str
    view: ViewSpec = field(default_factory=ViewSpec)
    json_output: bool = False


@dataclass(frozen=True)
class TimezoneConvertCommand:
    """Keep the instant of the viewed doses, re-express it in a new zone."""

    timezone: str
    view: ViewSpec = field(default_factory=ViewSpec)
    json_output: bool = False


@dataclass(frozen=True)
class SaveCommand:
    """Re-write both stored documents, e.g. after a manual edit."""


@dataclass(frozen=True)
class StatTotalCommand:
    view: ViewSpec = field(default_factory=ViewSpec)


@dataclass(frozen=True)
class StatAverageCommand:
    view: ViewSpec = field(default_factory=ViewSpec)


Command = Union[
    GetCommand,
    AddCommand,
    RemoveCommand,
    RemoveByPositionCommand,
    TimezoneChangeCommand,
    TimezoneConvertCommand,
    SaveCommand,
    StatTotalCommand,
    StatAverageCommand,
]


@dataclass
class CommandResult:
    """What a command hands back: display text plus the resulting log."""

    output: str
    doses: list[Dose]
    save_result: SaveResult | None = None
    bypass_position: int | None = None

    @property
    def status(self) -> str:
        if self.save_result is not None and self.save_result.partial:
            return "partial"
        return "ok"


def make_view_spec(
    *,
    filter_pattern: str = "",
    invert: bool = False,
    window_size: int = 0,
    start_at_top: bool = False,
    final_reverse: bool = False,
    ignore_notes: bool = False,
    show_unix_epoch: bool = False,
    use_compact_time_format: bool = False,
) -> ViewSpec:
    """Validate raw view options and build a ViewSpec.

    Raises:
        ConfigurationError: For a malformed pattern or invert without a pattern.
    """
    return ViewSpec(
        filter_pattern=compile_filter(filter_pattern, invert),
        invert=invert,
        window_size=window_size,
        start_at_top=start_at_top,
        final_reverse=final_reverse,
        ignore_notes=ignore_notes,
        show_unix_epoch=show_unix_epoch,
        use_compact_time_format=use_compact_time_format,
    )


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

class CommandRunner:
    """Executes commands against a DoseStore.

    Usage::

        runner = CommandRunner(store, settings, default_unit_table())
        result = runner.run(GetCommand(view=make_view_spec(window_size=5)))
        print(result.output)
    """

    def __init__(
        self,
        store: DoseStore,
        settings: Settings,
        table: UnitTable,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._table = table
        self._clock = clock
        self._handlers: dict[type, Callable[..., CommandResult]] = {
            GetCommand: self._get,
            AddCommand: self._add,
            RemoveCommand: self._remove,
            RemoveByPositionCommand: self._remove_by_position,
            TimezoneChangeCommand: self._change_timezone,
            TimezoneConvertCommand: self._convert_timezone,
            SaveCommand: self._save,
            StatTotalCommand: self._stat_total,
            StatAverageCommand: self._stat_average,
        }

    def run(self, command: Command) -> CommandResult:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise ConfigurationError(f"Not a valid command: {type(command).__name__}")
        logger.debug("Running %s", type(command).__name__)
        return handler(command, self._store.load())

    # --- display helpers ---------------------------------------------------

    def _windowed(self, view: ViewSpec) -> ViewSpec:
        if view.window_size == 0:
            return replace(view, window_size=self._settings.default_window)
        return view

    def _echo(self, doses: list[Dose], view: ViewSpec, json_output: bool) -> str:
        shown = build_view(doses, self._windowed(view))
        if json_output:
            return render_json(shown)
        return render_lines(shown, view.render_options)

    def _persist(
        self,
        doses: list[Dose],
        view: ViewSpec,
        json_output: bool,
        bypass_position: int | None = None,
    ) -> CommandResult:
        save_result = self._store.save(doses)
        if bypass_position is not None:
            view = replace(view, bypass_position=bypass_position)
        output = self._echo(doses, view, json_output)
        if save_result.partial:
            output = (
                f"Saved {', '.join(save_result.saved)} but failed to write the text copy: "
                f"{save_result.error}\n" + output
            )
        return CommandResult(
            output=output,
            doses=doses,
            save_result=save_result,
            bypass_position=bypass_position,
        )

    # --- handlers ----------------------------------------------------------

    def _get(self, command: GetCommand, doses: list[Dose]) -> CommandResult:
        return CommandResult(
            output=self._echo(doses, command.view, command.json_output),
            doses=doses,
        )

    def _add(self, command: AddCommand, doses: list[Dose]) -> CommandResult:
        if not command.drug:
            raise ConfigurationError("A drug name is required to add a dose")

        zone_name = command.timezone
        if not zone_name:
            if not doses:
                raise ConfigurationError(
                    "No timezone given and no previous dose to take one from; "
                    "set a timezone to add the first dose"
                )
            zone_name = doses[-1].timezone
        zone = load_timezone(zone_name)

        now = self._clock() if self._clock is not None else None
        timestamp = parse_dose_timestamp(command.date, command.time, zone, now)

        dose = Dose(
            position=dose_log.next_position(doses),
            timestamp=timestamp,
            timezone=zone.key,
            dosage=dose_log.normalize_dosage(command.dosage),
            drug=dose_log.case_fmt(command.drug),
            route=dose_log.case_fmt(command.route) if command.route else self._settings.default_route,
            note=command.note,
        )
        updated = dose_log.add_dose(doses, dose)
        return self._persist(updated, command.view, command.json_output, dose.position)

    def _remove(self, command: RemoveCommand, doses: list[Dose]) -> CommandResult:
        updated, _ = dose_log.remove_last_added(doses)
        return self._persist(updated, command.view, command.json_output)

    def _remove_by_position(
        self, command: RemoveByPositionCommand, doses: list[Dose]
    ) -> CommandResult:
        updated, _ = dose_log.remove_by_position(doses, command.position)
        return self._persist(updated, command.view, command.json_output)

    def _change_timezone(
        self, command: TimezoneChangeCommand, doses: list[Dose]
    ) -> CommandResult:
        zone = load_timezone(command.timezone)
        targets = build_view(doses, self._windowed(command.view))
        updated = dose_log.change_timezone(doses, targets, zone)
        return self._persist(updated, command.view, command.json_output)

    def _convert_timezone(
        self, command: TimezoneConvertCommand, doses: list[Dose]
    ) -> CommandResult:
        zone = load_timezone(command.timezone)
        targets = build_view(doses, self._windowed(command.view))
        updated = dose_log.convert_timezone(doses, targets, zone)
        return self._persist(updated, command.view, command.json_output)

    def _save(self, command: SaveCommand, doses: list[Dose]) -> CommandResult:
        save_result = self._store.save(doses)
        lines = ["Saved files:", *(f"- {url}" for url in save_result.saved)]
        if save_result.partial:
            lines.append(f"Failed to write the text copy: {save_result.error}")
        return CommandResult(
            output="\n".join(lines) + "\n",
            doses=doses,
            save_result=save_result,
        )

    def _stats(self, view: ViewSpec, doses: list[Dose], mode: StatsMode) -> CommandResult:
        rows = StatsAggregator(self._table).aggregate(filter_doses(doses, view), mode)
        return CommandResult(output=render_stats(rows), doses=doses)

    def _stat_total(self, command: StatTotalCommand, doses: list[Dose]) -> CommandResult:
        return self._stats(command.view, doses, StatsMode.TOTAL)

    def _stat_average(self, command: StatAverageCommand, doses: list[Dose]) -> CommandResult:
        return self._stats(command.view, doses, StatsMode.AVERAGE)
