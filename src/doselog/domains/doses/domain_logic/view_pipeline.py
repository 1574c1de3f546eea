"""View pipeline — orientation, filtering, windowing and final ordering.

Given the full timestamp-sorted dose list and a ``ViewSpec``, produce the
exact ordered sub-sequence to display. Every step is a pure transformation;
the input list is never mutated.

Ordering table (``start_at_top``, ``final_reverse``):

* ``(False, False)``: newest window, oldest first
* ``(False, True)``: newest window, newest first
* ``(True, False)``: oldest window, oldest first
* ``(True, True)``: oldest window, newest first
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from doselog.core.errors import ConfigurationError
from doselog.core.storage.models import Dose
from doselog.domains.doses.domain_logic.formatter import RenderOptions, render_dose


def compile_filter(pattern: str, invert: bool = False) -> re.Pattern[str] | None:
    """Compile a case-insensitive filter pattern.

    Returns None for an empty pattern.

    Raises:
        ConfigurationError: If ``invert`` is set without a pattern, or the
            pattern is not a valid regular expression.
    """
    if not pattern:
        if invert:
            raise ConfigurationError(
                "Cannot invert the filter without a filter pattern to invert"
            )
        return None
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise ConfigurationError(f"Failed to compile filter {pattern!r}: {exc}") from exc


@dataclass(frozen=True)
class ViewSpec:
    """Everything that decides which doses a view shows, and in what order."""

    filter_pattern: re.Pattern[str] | None = None
    invert: bool = False
    window_size: int = 0
    start_at_top: bool = False
    final_reverse: bool = False
    ignore_notes: bool = False
    show_unix_epoch: bool = False
    use_compact_time_format: bool = False
    bypass_position: int | None = None

    @property
    def render_options(self) -> RenderOptions:
        return RenderOptions(
            ignore_notes=self.ignore_notes,
            show_unix_epoch=self.show_unix_epoch,
            use_compact_time_format=self.use_compact_time_format,
        )


def _keep(dose: Dose, spec: ViewSpec, options: RenderOptions) -> bool:
    if spec.bypass_position is not None and dose.position == spec.bypass_position:
        return True
    matched = spec.filter_pattern.search(render_dose(dose, options)) is not None
    return spec.invert != matched


def filter_doses(doses: list[Dose], spec: ViewSpec) -> list[Dose]:
    """Orient and filter (pipeline steps 1-2), without windowing.

    Filtering matches the rendered display line, not the raw fields, so the
    rendering switches in ``spec`` change what a pattern can match.
    """
    oriented = list(reversed(doses)) if spec.start_at_top else list(doses)
    if spec.filter_pattern is None:
        return oriented

    options = spec.render_options
    return [dose for dose in oriented if _keep(dose, spec, options)]


def window(doses: list[Dose], size: int) -> list[Dose]:
    """Keep the last ``size`` doses; ``size`` <= 0 or past the end keeps all."""
    if size <= 0 or size > len(doses):
        size = len(doses)
    return doses[len(doses) - size:]


def build_view(doses: list[Dose], spec: ViewSpec) -> list[Dose]:
    """Run the full pipeline and return the doses in display order."""
    windowed = window(filter_doses(doses, spec), spec.window_size)
    if spec.start_at_top != spec.final_reverse:
        windowed.reverse()
    return windowed
