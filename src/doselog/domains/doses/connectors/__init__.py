"""Dose log connectors — abstraction layer for retrieving and persisting the log."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from doselog.core.storage.models import Dose
from doselog.domains.doses.domain_logic.formatter import render_json, render_lines
from doselog.domains.doses.domain_logic.view_pipeline import ViewSpec, build_view

# The human-readable copy lists every dose newest first in compact time.
TEXT_COPY_VIEW = ViewSpec(
    start_at_top=True,
    final_reverse=True,
    use_compact_time_format=True,
)


@dataclass
class SaveResult:
    """Outcome of persisting the log.

    The JSON document is authoritative. ``partial`` means it was written but
    the text copy was not, so the stored state has already changed.
    """

    saved: list[str] = field(default_factory=list)
    partial: bool = False
    error: str = ""

    @property
    def status(self) -> str:
        return "partial" if self.partial else "saved"


def render_documents(doses: list[Dose]) -> tuple[str, str]:
    """Render the authoritative JSON document and the text copy."""
    text = render_lines(build_view(doses, TEXT_COPY_VIEW), TEXT_COPY_VIEW.render_options)
    return render_json(doses), text


@runtime_checkable
class DoseStore(Protocol):
    """Where the dose log lives between invocations.

    Commands call these methods without knowing whether the log sits behind
    an HTTP file server or in memory.
    """

    def load(self) -> list[Dose]:
        """Return every dose, sorted by timestamp."""
        ...

    def save(self, doses: list[Dose]) -> SaveResult:
        """Persist the full log (JSON first, then the text copy)."""
        ...

    @property
    def location(self) -> str:
        """Human-readable location of the log, for status output."""
        ...
