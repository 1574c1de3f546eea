"""HTTP file-store connector — the dose log as ``doses.json`` on a file server.

Reads with a plain GET. Writes POST a form field ``content`` to the
``public/media/`` variant of the URL, authenticated by an ``Auth`` header.
The JSON document is written first; the ``.txt`` copy is only attempted once
the JSON write succeeded.
"""

from __future__ import annotations

import json
import logging
from contextlib import nullcontext

import httpx

from doselog.core.errors import StoreError
from doselog.core.storage.models import Dose
from doselog.domains.doses.connectors import SaveResult, render_documents

logger = logging.getLogger(__name__)


def publish_url(url: str) -> str:
    """The upload URL for a served ``media/`` path."""
    return url.replace("media/", "public/media/", 1)


def text_copy_url(url: str) -> str:
    return url.removesuffix(".json") + ".txt"


class HttpDoseStore:
    """DoseStore backed by an fs-over-http style file server.

    Without an injected ``client`` each load or save opens its own
    ``httpx.Client`` and closes it when done; an injected client belongs to
    the caller and is left open.

    Usage::

        store = HttpDoseStore("http://localhost:6010/media/doses.json", token="...")
        doses = store.load()
        result = store.save(doses)
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout = timeout
        self._client = client

    @property
    def location(self) -> str:
        return self._url

    def _session(self) -> httpx.Client | nullcontext[httpx.Client]:
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self._timeout)

    def load(self) -> list[Dose]:
        """GET the JSON log.

        Raises:
            StoreError: On transport errors, non-200 responses or bad JSON.
        """
        try:
            with self._session() as client:
                response = client.get(self._url)
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to read doses from {self._url}: {exc}") from exc

        if response.status_code != 200:
            raise StoreError(
                f"Reading {self._url} returned status {response.status_code}: "
                f"{response.text[:200]}"
            )

        try:
            raw = response.json()
            doses = [Dose.from_dict(item) for item in raw or []]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"Failed to decode doses from {self._url}: {exc}") from exc

        logger.info("Loaded %d doses from %s", len(doses), self._url)
        return sorted(doses, key=lambda d: d.timestamp)

    def save(self, doses: list[Dose]) -> SaveResult:
        """POST the JSON document, then the text copy.

        Raises:
            StoreError: If no token is configured or the JSON write fails.
                A failed text write is reported as a partial SaveResult.
        """
        if not self._token:
            raise StoreError("No store token configured; refusing to save")

        json_doc, text_doc = render_documents(doses)
        result = SaveResult()

        with self._session() as client:
            result.saved.append(self._post(client, json_doc, self._url))

            try:
                result.saved.append(self._post(client, text_doc, text_copy_url(self._url)))
            except StoreError as exc:
                logger.warning("Saved %s but not the text copy: %s", self._url, exc)
                result.partial = True
                result.error = str(exc)

        logger.info("Saved %d doses to %s", len(doses), ", ".join(result.saved))
        return result

    def _post(self, client: httpx.Client, content: str, url: str) -> str:
        target = publish_url(url)
        try:
            response = client.post(
                target,
                data={"content": content},
                headers={"Auth": self._token},
            )
        except httpx.HTTPError as exc:
            raise StoreError(f"Failed to post to {target}: {exc}") from exc

        if response.status_code != 200:
            raise StoreError(
                f"Posting to {target} returned status {response.status_code}: "
                f"{response.text[:200]}"
            )
        return target
