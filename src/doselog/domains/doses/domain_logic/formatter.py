"""Formatter — renders dose views and statistics tables as text."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timezone
from typing import TYPE_CHECKING

from doselog.core.storage.models import Dose

if TYPE_CHECKING:
    from doselog.domains.doses.domain_logic.stats_aggregator import StatRow

STAT_AMOUNT_WIDTH = 9


@dataclass(frozen=True)
class RenderOptions:
    """Switches that change how a dose line looks (never which doses show)."""

    ignore_notes: bool = False
    show_unix_epoch: bool = False
    use_compact_time_format: bool = False


def _compact_time(dose: Dose) -> str:
    """UTC wall clock with a middle dot, followed by the dose's hour offset."""
    utc = dose.timestamp.astimezone(timezone.utc)
    offset = dose.timestamp.utcoffset()
    minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "-" if minutes < 0 else "+"
    hours = abs(minutes) // 60
    return f"{utc.strftime('%Y-%m-%d %H·%M')}{sign}{hours:02d}"


def render_dose(dose: Dose, options: RenderOptions) -> str:
    """Render one dose as a display line.

    Plain:   ``2024/01/02 15:04 10mg Caffeine, Oral, Note: with tea``
    Compact: ``2024-01-02 14·04+01 10mg Caffeine, Oral``
    """
    note = ""
    if not options.ignore_notes and dose.note:
        note = f", Note: {dose.note}"

    dosage = f" {dose.dosage}" if dose.dosage else ""
    unix = f"{int(dose.timestamp.timestamp())} " if options.show_unix_epoch else ""

    if options.use_compact_time_format:
        stamp = _compact_time(dose)
    else:
        stamp = dose.timestamp.strftime("%Y/%m/%d %H:%M")

    return f"{unix}{stamp}{dosage} {dose.drug}, {dose.route}{note}"


def render_lines(doses: list[Dose], options: RenderOptions) -> str:
    """One rendered line per dose, each newline terminated."""
    return "".join(render_dose(dose, options) + "\n" for dose in doses)


def render_json(doses: list[Dose]) -> str:
    """Lossless JSON serialisation of an ordered dose sequence."""
    return json.dumps([dose.to_dict() for dose in doses], indent=4, ensure_ascii=False) + "\n"


def trim_decimal(value: float) -> str:
    """Two decimals with trailing zeros and point removed: 5.00 -> 5, 5.20 -> 5.2."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


def format_stat_row(row: StatRow, count_width: int, amount_width: int = STAT_AMOUNT_WIDTH) -> str:
    """Render a StatRow as ``<count> <amount+unit> <drug>`` in fixed columns.

    Widths are measured in code points, so a ``μg`` label is two columns wide
    and keeps visual alignment without a byte correction.
    """
    count = str(row.total_doses)
    count += " " * (count_width - len(count))

    amount = trim_decimal(row.total_amount) + row.unit_or_label
    amount += " " * max(amount_width - len(amount), 1)

    return count + amount + row.drug


def render_stats(rows: list[StatRow]) -> str:
    """Render ranked stat rows; the last row is the synthetic total/average."""
    if not rows:
        return ""
    count_width = len(str(rows[-1].total_doses)) + 1
    return "".join(format_stat_row(row, count_width) + "\n" for row in rows)
