"""Unit table — maps (drug, unit token) to a micrograms-equivalent factor.

The table is data, not code: the bundled ``units/units.yaml`` holds the
weight ladder, the substance-specific overrides (alcohol standard drinks,
density-derived millilitre factors) and the generic volumetric units.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from doselog.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_DEFAULT_TABLE_PATH = Path(__file__).resolve().parent.parent / "units" / "units.yaml"

MICRO_SIGN = "\u00b5"  # micro sign
GREEK_MU = "\u03bc"  # Greek small letter mu

DEFAULT_UNIT_KEY = "default"


def normalize_unit_token(token: str) -> str:
    """Fold the micro sign into the Greek mu so both spell the same unit."""
    return token.replace(MICRO_SIGN, GREEK_MU)


@dataclass(frozen=True)
class UnitSpec:
    """A single dosage unit.

    ``factor`` is micrograms-equivalent per one unit, or ``None`` for
    volumetric/count units that have no canonical conversion.
    """

    key: str
    token: str
    factor: float | None
    weight_like: bool = False
    is_default: bool = False

    @property
    def label(self) -> str:
        return self.token


class UnitTable:
    """Resolves unit tokens, with the drug name as context."""

    def __init__(
        self,
        ladder: list[UnitSpec],
        substances: dict[tuple[str, str], UnitSpec],
        volumetric: dict[str, UnitSpec],
    ) -> None:
        self._ladder = ladder
        self._by_token = {unit.token: unit for unit in ladder}
        self._substances = substances
        self._volumetric = volumetric
        self._default = UnitSpec(
            key=DEFAULT_UNIT_KEY, token="", factor=1.0, is_default=True
        )

    @property
    def default(self) -> UnitSpec:
        return self._default

    @property
    def microgram(self) -> UnitSpec:
        return self._ladder[0]

    def ladder(self) -> list[UnitSpec]:
        """Weight units, smallest first."""
        return list(self._ladder)

    def resolve(self, drug: str, token: str) -> UnitSpec:
        """Resolve ``token`` for ``drug``.

        Unknown or empty tokens resolve to the microgram-default unit, whose
        label is the token text that was present.
        """
        token = normalize_unit_token(token)
        substance = self._substances.get((token, drug.casefold()))
        if substance is not None:
            return substance
        if token in self._by_token:
            return self._by_token[token]
        if token in self._volumetric:
            return self._volumetric[token]
        return replace(self._default, token=token)

    def promote(self, unit: UnitSpec) -> UnitSpec | None:
        """Return the next larger weight unit, or None at the top or off-ladder."""
        if not unit.weight_like:
            return None
        for index, candidate in enumerate(self._ladder[:-1]):
            if candidate.key == unit.key:
                return self._ladder[index + 1]
        return None

    def describe(self) -> dict[str, Any]:
        """Plain-dict view of the table for discovery resources."""
        return {
            "weight_ladder": [
                {"token": u.token, "factor": u.factor} for u in self._ladder
            ],
            "substances": [
                {"drug": drug, "token": token, "factor": unit.factor}
                for (token, drug), unit in sorted(self._substances.items())
            ],
            "volumetric": [{"token": u.token} for u in self._volumetric.values()],
        }


def load_unit_table(path: str | Path) -> UnitTable:
    """Parse a YAML unit table.

    Raises:
        ConfigurationError: If the file is missing or malformed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read unit table {path}: {exc}") from exc

    try:
        ladder = [
            UnitSpec(
                key=entry["key"],
                token=normalize_unit_token(entry["token"]),
                factor=float(entry["factor"]),
                weight_like=True,
            )
            for entry in data["weight_ladder"]
        ]

        substances: dict[tuple[str, str], UnitSpec] = {}
        for entry in data.get("substances", []):
            unit = UnitSpec(
                key=entry["key"],
                token=normalize_unit_token(entry["token"]),
                factor=float(entry["factor"]),
            )
            for drug in entry.get("drugs", []):
                substances[(unit.token, str(drug).casefold())] = unit

        volumetric = {
            normalize_unit_token(entry["token"]): UnitSpec(
                key=entry["key"],
                token=normalize_unit_token(entry["token"]),
                factor=None,
            )
            for entry in data.get("volumetric", [])
        }
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Malformed unit table {path}: {exc!r}") from exc

    if not ladder:
        raise ConfigurationError(f"Unit table {path} has an empty weight ladder")

    logger.debug(
        "Loaded unit table from %s (%d weight, %d substance, %d volumetric)",
        path,
        len(ladder),
        len(substances),
        len(volumetric),
    )
    return UnitTable(ladder, substances, volumetric)


@lru_cache(maxsize=1)
def default_unit_table() -> UnitTable:
    """The bundled unit table."""
    return load_unit_table(_DEFAULT_TABLE_PATH)
