"""Record mutations for the dose log: add, remove and timezone edits.

Every function takes the current list and returns a new timestamp-sorted
list; positions are never renumbered.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from doselog.core.errors import IdentityMissError
from doselog.core.storage.models import Dose

logger = logging.getLogger(__name__)


# A word may carry one apostrophe suffix ("John's"), which stays lowercase.
_WORD_RE = re.compile(r"[^\W\d_]+(['’][^\W\d_]+)?")


def _title_word(match: re.Match[str]) -> str:
    return match.group().capitalize()


def _sorted(doses: list[Dose]) -> list[Dose]:
    return sorted(doses, key=lambda d: d.timestamp)


def case_fmt(name: str) -> str:
    """Title-case a drug or route name that starts with a lowercase letter.

    Names starting with a digit, an uppercase letter or a Greek letter
    (``4-AcO-DMT``, ``MDMA``, ``α-PHP``) are kept as typed.
    """
    if not name:
        return name
    first = name[0]
    if unicodedata.name(first, "").startswith("GREEK"):
        return name
    if first != first.upper():
        return _WORD_RE.sub(_title_word, name)
    return name


def normalize_dosage(dosage: str) -> str:
    """Normalise look-alike glyphs and the ``ml`` spelling in a dosage."""
    dosage = dosage.replace("\u00b5", "\u03bc")  # micro sign -> Greek mu
    dosage = dosage.replace("\u2206", "\u0394")  # increment -> Greek delta
    if dosage.endswith("ml"):
        dosage = dosage[: -len("ml")] + "mL"
    return dosage


def next_position(doses: list[Dose]) -> int:
    """The position the next added dose receives."""
    return max((d.position for d in doses), default=-1) + 1


def position_index(doses: list[Dose]) -> dict[int, int]:
    """Map position -> list index, built once per invocation."""
    return {dose.position: index for index, dose in enumerate(doses)}


def add_dose(doses: list[Dose], dose: Dose) -> list[Dose]:
    """Insert ``dose`` and keep the list in chronological order."""
    logger.info("Adding dose %d: %s %s", dose.position, dose.dosage, dose.drug)
    return _sorted([*doses, dose])


def remove_last_added(doses: list[Dose]) -> tuple[list[Dose], Dose]:
    """Remove the dose with the highest position (the one added last).

    Raises:
        IdentityMissError: If the log is empty.
    """
    if not doses:
        raise IdentityMissError("There are no doses to remove")
    last = max(doses, key=lambda d: d.position)
    logger.info("Removing last added dose %d", last.position)
    return [d for d in doses if d is not last], last


def remove_by_position(doses: list[Dose], position: int) -> tuple[list[Dose], Dose]:
    """Remove the dose whose position is ``position``.

    Raises:
        IdentityMissError: If the log is empty or no dose has that position.
    """
    if not doses:
        raise IdentityMissError("There are no doses to remove")
    index = position_index(doses).get(position)
    if index is None:
        raise IdentityMissError(f"Couldn't find dose matching position {position}")
    removed = doses[index]
    logger.info("Removing dose %d", position)
    return doses[:index] + doses[index + 1:], removed


def _edit(
    doses: list[Dose],
    targets: list[Dose],
    zone: ZoneInfo,
    move: Callable[[datetime], datetime],
) -> list[Dose]:
    if not doses:
        raise IdentityMissError("There are no doses to modify")
    index = position_index(doses)
    edited = list(doses)
    for target in targets:
        slot = index.get(target.position)
        if slot is None:
            raise IdentityMissError(f"Couldn't find dose matching position {target.position}")
        current = edited[slot]
        edited[slot] = current.with_timestamp(move(current.timestamp), zone.key)
    logger.info("Moved %d doses to %s", len(targets), zone.key)
    return _sorted(edited)


def change_timezone(doses: list[Dose], targets: list[Dose], zone: ZoneInfo) -> list[Dose]:
    """Re-label ``targets`` as logged in ``zone``, keeping their wall clock."""

    def keep_wall_clock(ts: datetime) -> datetime:
        return ts.replace(tzinfo=zone)

    return _edit(doses, targets, zone, keep_wall_clock)


def convert_timezone(doses: list[Dose], targets: list[Dose], zone: ZoneInfo) -> list[Dose]:
    """Re-express ``targets`` in ``zone``, keeping the instant."""

    def keep_instant(ts: datetime) -> datetime:
        return ts.astimezone(zone)

    return _edit(doses, targets, zone, keep_instant)
