"""OCLC Classify bibliographic lookup client."""

from __future__ import annotations

import logging

import requests

REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)


class ClassifyClient:
    """Look up an ISBN or title and return the raw XML response body."""

    def __init__(
        self,
        host: str = "classify.oclc.org",
        port: int = 80,
        path: str = "/classify2/Classify",
        session: requests.Session | None = None,
    ) -> None:
        scheme = "https" if port == 443 else "http"
        netloc = host if port in (80, 443) else f"{host}:{port}"
        if not path.startswith("/"):
            path = f"/{path}"
        self.url = f"{scheme}://{netloc}{path}"
        self._session = session or requests.Session()

    def lookup(self, isbn: str) -> str | None:
        """Return the response body for isbn, or None on any request failure."""
        try:
            response = self._session.get(
                self.url,
                params={"isbn": isbn, "summary": "true"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("Classify lookup failed for isbn=%s: %s", isbn, exc)
            return None

        return response.text

    def lookup_title(self, title: str) -> str | None:
        """Like lookup(), but search by title."""
        try:
            response = self._session.get(
                self.url,
                params={"title": title, "summary": "true"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("Classify lookup failed for title=%r: %s", title, exc)
            return None

        return response.text
