"""Free-text date and time parsing for newly added doses."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from doselog.core.errors import ConfigurationError

DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y", "%Y%m%d")
TIME_FORMATS = ("%I:%M%p", "%H:%M", "%H%M")


def load_timezone(name: str) -> ZoneInfo:
    """Load an IANA timezone.

    Raises:
        ConfigurationError: If ``name`` is empty or not a known zone.
    """
    if not name:
        raise ConfigurationError("No timezone given")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Failed to load timezone {name!r}: {exc}") from exc


def _parse_first(text: str, formats: tuple[str, ...], what: str) -> datetime:
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ConfigurationError(
        f"Failed to parse {what} {text!r} using layouts: {', '.join(formats)}"
    )


def parse_dose_timestamp(
    date_text: str,
    time_text: str,
    zone: ZoneInfo,
    now: datetime | None = None,
) -> datetime:
    """Combine optional date and time strings into an aware datetime.

    ``MM-DD`` and ``MMDD`` get the current year; an empty date means today
    and an empty time means the current minute, both in ``zone``.
    """
    now = (now or datetime.now(zone)).astimezone(zone)

    date_text = date_text.strip()
    if len(date_text) == 5:
        date_text = f"{now.year}-{date_text}"
    elif len(date_text) == 4:
        date_text = f"{now.year}{date_text}"
    if date_text:
        day = _parse_first(date_text, DATE_FORMATS, "date").date()
    else:
        day = now.date()

    time_text = time_text.strip()
    if time_text:
        clock = _parse_first(time_text, TIME_FORMATS, "time").time()
    else:
        clock = now.time().replace(second=0, microsecond=0)

    return datetime.combine(day, clock, tzinfo=zone)
