"""Shared test fixtures for doselog tests."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "STORE_TOKEN", "FOH_TOKEN", "FOH_SERVER_AUTH", "TOKEN", "UNITS_PATH",
        "DOSELOG_HOST", "DOSELOG_PORT", "DOSELOG_ALLOW_INSECURE_BIND",
        "DEFAULT_WINDOW", "DEFAULT_ROUTE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DOSES_URL", "http://files.test/media/doses.json")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from doselog.core.config.settings import Settings  # noqa: E402
from doselog.core.storage.models import Dose  # noqa: E402
from doselog.domains.doses.commands import CommandRunner  # noqa: E402
from doselog.domains.doses.connectors.memory_store import InMemoryDoseStore  # noqa: E402
from doselog.domains.doses.domain_logic.unit_table import (  # noqa: E402
    UnitTable,
    default_unit_table,
)

UTC = ZoneInfo("UTC")
TORONTO = ZoneInfo("America/Toronto")


def make_dose(
    position: int,
    when: str,
    drug: str = "Caffeine",
    dosage: str = "100mg",
    route: str = "Oral",
    note: str = "",
    zone: ZoneInfo = UTC,
) -> Dose:
    """Create a test dose; ``when`` is ``YYYY-MM-DD HH:MM`` wall clock in ``zone``."""
    timestamp = datetime.strptime(when, "%Y-%m-%d %H:%M").replace(tzinfo=zone)
    return Dose(
        position=position,
        timestamp=timestamp,
        timezone=zone.key,
        dosage=dosage,
        drug=drug,
        route=route,
        note=note,
    )


@pytest.fixture
def sample_doses() -> list[Dose]:
    """Six doses in chronological order; position 5 is a backdated insert."""
    return [
        make_dose(0, "2026-01-01 08:00", "Caffeine", "100mg"),
        make_dose(5, "2026-01-01 20:00", "Alcohol", "2u", note="with dinner"),
        make_dose(1, "2026-01-02 08:30", "Caffeine", "150mg"),
        make_dose(2, "2026-01-02 12:00", "Ibuprofen", "400mg"),
        make_dose(3, "2026-01-03 09:00", "Caffeine", "", note="forgot amount"),
        make_dose(4, "2026-01-03 22:00", "Melatonin", "300μg", route="Sublingual"),
    ]


@pytest.fixture
def unit_table() -> UnitTable:
    return default_unit_table()


@pytest.fixture
def settings() -> Settings:
    return Settings(store_token="test-token", default_window=5, default_route="Oral")


@pytest.fixture
def memory_store(sample_doses) -> InMemoryDoseStore:
    return InMemoryDoseStore(sample_doses)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 1, 4, 10, 15, 42, tzinfo=UTC)


@pytest.fixture
def runner(memory_store, settings, unit_table, fixed_now) -> CommandRunner:
    return CommandRunner(memory_store, settings, unit_table, clock=lambda: fixed_now)
