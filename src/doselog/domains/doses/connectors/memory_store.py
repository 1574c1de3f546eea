"""In-memory dose store — keeps the log and its rendered documents in memory."""

from __future__ import annotations

import logging

from doselog.core.storage.models import Dose
from doselog.domains.doses.connectors import SaveResult, render_documents

logger = logging.getLogger(__name__)


class InMemoryDoseStore:
    """DoseStore that never leaves the process.

    ``documents`` holds the last rendered JSON and text copies, keyed by
    name, so callers can inspect exactly what a real store would receive.
    """

    def __init__(self, doses: list[Dose] | None = None, *, fail_text_copy: bool = False) -> None:
        self._doses = sorted(doses or [], key=lambda d: d.timestamp)
        self._fail_text_copy = fail_text_copy
        self.documents: dict[str, str] = {}
        self.save_count = 0

    @property
    def location(self) -> str:
        return "memory://doses.json"

    def load(self) -> list[Dose]:
        return list(self._doses)

    def save(self, doses: list[Dose]) -> SaveResult:
        json_doc, text_doc = render_documents(doses)
        self._doses = list(doses)
        self.documents["doses.json"] = json_doc
        self.save_count += 1
        result = SaveResult(saved=["memory://doses.json"])

        if self._fail_text_copy:
            result.partial = True
            result.error = "text copy disabled"
            return result

        self.documents["doses.txt"] = text_doc
        result.saved.append("memory://doses.txt")
        logger.debug("Stored %d doses in memory", len(doses))
        return result
