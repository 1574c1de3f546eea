"""Dosage parser — splits free-text dosages like ``"10mg"`` or ``"0.5 mL"``.

One scan: a numeric literal, an optional separator run and an optional unit
token from a closed set. A dosage without a usable number is reported as an
``Unparseable`` outcome, not raised; the dose is still counted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from doselog.domains.doses.domain_logic.unit_table import (
    UnitSpec,
    UnitTable,
    normalize_unit_token,
)

# Longest tokens first so "mg" is never read as "m" + "g".
UNIT_TOKENS = ("μg", "mg", "kg", "mL", "g", "u", "x")

_NUMBER_RE = re.compile(r"[0-9.]+")
_SEPARATORS = " -_"


@dataclass(frozen=True)
class ParsedDosage:
    """A dosage split into its amount and raw unit token."""

    amount: float
    unit_token: str


@dataclass(frozen=True)
class Unparseable:
    """A dosage with no usable amount."""

    text: str
    reason: str


@dataclass(frozen=True)
class ResolvedDosage:
    """A parsed dosage whose unit has been looked up for a specific drug."""

    amount: float
    unit_token: str
    unit: UnitSpec

    @property
    def micrograms(self) -> float | None:
        """The amount in micrograms-equivalent, or None without a factor."""
        if self.unit.factor is None:
            return None
        return self.amount * self.unit.factor


def _read_unit_token(text: str, start: int) -> str:
    for token in UNIT_TOKENS:
        if text.startswith(token, start):
            return token
    return ""


def parse_dosage(text: str) -> ParsedDosage | Unparseable:
    """Extract the first ``<number>[separator]<unit>`` from ``text``."""
    text = normalize_unit_token(text or "")
    match = _NUMBER_RE.search(text)
    if match is None:
        return Unparseable(text=text, reason="no numeric amount")

    literal = match.group()
    try:
        amount = float(literal)
    except ValueError:
        return Unparseable(text=text, reason=f"invalid number {literal!r}")

    cursor = match.end()
    while cursor < len(text) and text[cursor] in _SEPARATORS:
        cursor += 1

    return ParsedDosage(amount=amount, unit_token=_read_unit_token(text, cursor))


def resolve_dosage(
    text: str, drug: str, table: UnitTable
) -> ResolvedDosage | Unparseable:
    """Parse ``text`` and resolve its unit with ``drug`` as context."""
    parsed = parse_dosage(text)
    if isinstance(parsed, Unparseable):
        return parsed
    return ResolvedDosage(
        amount=parsed.amount,
        unit_token=parsed.unit_token,
        unit=table.resolve(drug, parsed.unit_token),
    )
