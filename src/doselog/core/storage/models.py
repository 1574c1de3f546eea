"""Data models for the persisted dose log."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

# RFC 3339 timestamps written by other tools may carry nanoseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, accepting ``Z`` and over-long fractions."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(dt: datetime) -> str:
    """Format an aware datetime as RFC 3339 with its own offset."""
    return dt.isoformat()


@dataclass
class Dose:
    """A single logged dose.

    ``position`` is the stable identity of the record: it is assigned once
    when the dose is added and never reused, while the list itself is kept
    sorted by ``timestamp``.
    """

    position: int
    timestamp: datetime  # aware, in the offset the dose was logged in
    timezone: str = ""  # IANA zone name
    dosage: str = ""
    drug: str = ""
    route: str = ""
    note: str = ""

    @property
    def date(self) -> str:
        return self.timestamp.strftime("%Y/%m/%d")

    @property
    def time(self) -> str:
        return self.timestamp.strftime("%H:%M")

    def with_timestamp(self, timestamp: datetime, zone_name: str) -> Dose:
        """Return a copy moved to ``timestamp`` in zone ``zone_name``."""
        return replace(self, timestamp=timestamp, timezone=zone_name)

    def to_dict(self) -> dict[str, Any]:
        """Convert the dose to the dict stored in ``doses.json``.

        Empty text fields are omitted; ``position`` is always present.
        """
        data: dict[str, Any] = {
            "position": self.position,
            "timestamp": format_timestamp(self.timestamp),
        }
        optional = {
            "timezone": self.timezone,
            "date": self.date,
            "time": self.time,
            "dosage": self.dosage,
            "drug": self.drug,
            "roa": self.route,
            "note": self.note,
        }
        data.update({key: value for key, value in optional.items() if value})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dose:
        """Build a dose from its stored dict form.

        Raises:
            KeyError: If ``position`` or ``timestamp`` is missing.
            ValueError: If the timestamp cannot be parsed.
        """
        return cls(
            position=int(data["position"]),
            timestamp=parse_timestamp(data["timestamp"]),
            timezone=data.get("timezone", ""),
            dosage=data.get("dosage", ""),
            drug=data.get("drug", ""),
            route=data.get("roa", ""),
            note=data.get("note", ""),
        )
