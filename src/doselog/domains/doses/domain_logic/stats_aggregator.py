"""Unit-normalised statistics over a dose log.

Aggregation works in two bases that never mix:

* the canonical basis (micrograms-equivalent) for every unit with a factor
  (the weight ladder, substance units like alcohol standard drinks or GHB
  millilitres, and the microgram-default unit), and
* the volumetric basis (the unit itself) for units with no factor, such as
  a generic ``mL``.

A drug's first resolved unit decides which basis its row reports in and which
unit the canonical sum is converted back into. Only canonical amounts reach
the synthetic Total/Average row.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum

from doselog.core.storage.models import Dose
from doselog.domains.doses.domain_logic.dosage_parser import Unparseable, resolve_dosage
from doselog.domains.doses.domain_logic.unit_table import UnitSpec, UnitTable

logger = logging.getLogger(__name__)

PROMOTION_THRESHOLD = 1000


class StatsMode(Enum):
    """Whether stat rows report sums or per-dose averages."""

    TOTAL = "total"
    AVERAGE = "average"

    @property
    def synthetic_name(self) -> str:
        return "Average" if self is StatsMode.AVERAGE else "Total"


@dataclass
class StatRow:
    """One aggregated line of the statistics table."""

    drug: str
    total_doses: int = 0
    total_amount: float = 0.0
    unit: UnitSpec | None = None  # display unit, set by finalize
    original_unit: UnitSpec | None = None  # first resolved non-default unit
    unit_label: str = ""  # raw token fallback when no unit resolves
    canonical_total: float = 0.0  # micrograms-equivalent
    volume_total: float = 0.0  # in original_unit, when it has no factor
    synthetic: bool = False

    @property
    def unit_or_label(self) -> str:
        if self.unit is not None and not self.unit.is_default:
            return self.unit.token
        return self.unit_label

    @property
    def is_volumetric(self) -> bool:
        return self.original_unit is not None and self.original_unit.factor is None


def _is_greek_initial(name: str) -> bool:
    if not name:
        return False
    return unicodedata.name(name[0], "").startswith("GREEK")


def _rank_key(row: StatRow) -> tuple[int, float, bool, str]:
    return (row.total_doses, row.canonical_total, not _is_greek_initial(row.drug), row.drug)


class StatsAggregator:
    """Builds ranked StatRows from a filtered dose list.

    Usage::

        aggregator = StatsAggregator(default_unit_table())
        rows = aggregator.aggregate(doses, StatsMode.TOTAL)
        print(render_stats(rows))
    """

    def __init__(self, table: UnitTable) -> None:
        self._table = table

    def aggregate(self, doses: list[Dose], mode: StatsMode = StatsMode.TOTAL) -> list[StatRow]:
        """Aggregate ``doses`` into one row per drug plus the synthetic row.

        Windowing never applies here: callers pass every dose that survived
        the view filter.
        """
        rows: dict[str, StatRow] = {}
        synthetic = StatRow(drug=mode.synthetic_name, synthetic=True)

        for dose in doses:
            row = rows.setdefault(dose.drug, StatRow(drug=dose.drug))
            row.total_doses += 1
            synthetic.total_doses += 1
            self._accumulate(row, synthetic, dose)

        ranked = sorted(rows.values(), key=_rank_key)
        ranked.append(synthetic)

        for row in ranked:
            self._finalize(row, mode)
        return ranked

    def _accumulate(self, row: StatRow, synthetic: StatRow, dose: Dose) -> None:
        resolved = resolve_dosage(dose.dosage, row.drug, self._table)
        if isinstance(resolved, Unparseable):
            logger.debug(
                "Counting dose %d of %s without an amount: %s",
                dose.position,
                row.drug,
                resolved.reason,
            )
            return

        unit = resolved.unit
        if row.original_unit is None:
            if not row.unit_label:
                row.unit_label = resolved.unit_token
            if not unit.is_default:
                row.original_unit = unit

        if resolved.amount == 0:
            return

        micrograms = resolved.micrograms
        if micrograms is None:
            if row.is_volumetric and row.original_unit.key == unit.key:
                row.volume_total += resolved.amount
            else:
                logger.debug(
                    "Skipping %s%s for %s: no conversion into %s",
                    resolved.amount,
                    unit.token,
                    row.drug,
                    row.original_unit.token if row.original_unit else "micrograms",
                )
            return

        row.canonical_total += micrograms
        synthetic.canonical_total += micrograms
        if unit.is_default:
            if not synthetic.unit_label:
                synthetic.unit_label = resolved.unit_token
        else:
            synthetic.original_unit = self._table.microgram

    def _finalize(self, row: StatRow, mode: StatsMode) -> None:
        """Convert back into the original unit, average, then promote."""
        original = row.original_unit
        if original is None:
            row.unit = self._table.default
            row.total_amount = row.canonical_total
        elif original.factor is None:
            row.unit = original
            row.total_amount = row.volume_total
        else:
            row.unit = original
            row.total_amount = row.canonical_total / original.factor

        if mode is StatsMode.AVERAGE and row.total_doses:
            row.total_amount /= row.total_doses

        self._promote(row)

    def _promote(self, row: StatRow) -> None:
        while row.total_amount >= PROMOTION_THRESHOLD:
            larger = self._table.promote(row.unit)
            if larger is None:
                return
            row.total_amount = row.total_amount * row.unit.factor / larger.factor
            row.unit = larger


def aggregate(
    doses: list[Dose], mode: StatsMode, table: UnitTable
) -> list[StatRow]:
    """Functional shorthand for ``StatsAggregator(table).aggregate(...)``."""
    return StatsAggregator(table).aggregate(doses, mode)
