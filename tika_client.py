"""Apache Tika text-extraction client."""

from __future__ import annotations

import logging

import requests

REQUEST_TIMEOUT_SECONDS = 120

LOGGER = logging.getLogger(__name__)


class TikaClient:
    """Extract plain text and document metadata via a Tika server."""

    def __init__(self, host: str = "localhost", port: int = 9998, session: requests.Session | None = None) -> None:
        self.base_url = f"http://{host}:{port}"
        self._session = session or requests.Session()

    def extract_text(self, data: bytes, mime_type: str) -> str:
        """Return the extracted text, or "" when Tika fails or finds nothing."""
        try:
            response = self._session.put(
                f"{self.base_url}/tika",
                data=data,
                headers={"Content-Type": mime_type, "Accept": "text/plain"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("Tika extraction failed (%s): %s", mime_type, exc)
            return ""

        # Tika replies in UTF-8 but omits the charset, which requests would read as ISO-8859-1.
        return response.content.decode("utf-8", errors="replace")

    def extract_metadata(self, data: bytes, mime_type: str) -> dict[str, object]:
        """Return the document metadata Tika reports, or {} on failure."""
        try:
            response = self._session.put(
                f"{self.base_url}/meta",
                data=data,
                headers={"Content-Type": mime_type, "Accept": "application/json"},
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            LOGGER.warning("Tika metadata extraction failed (%s): %s", mime_type, exc)
            return {}

        if not isinstance(payload, dict):
            return {}
        return payload
