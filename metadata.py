"""Normalize Classify XML responses into bibliographic records, and pick ISBNs and titles out of Tika metadata."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from isbn import parse_isbn
from models import BibliographicRecord
from scanner import scan

LOGGER = logging.getLogger(__name__)

# Classify work attributes: lyr / hyr are the earliest and latest known
# publication years across the work's editions.
_AUTHOR_ATTR = "author"
_TITLE_ATTR = "title"
_LOW_YEAR_ATTR = "lyr"
_HIGH_YEAR_ATTR = "hyr"

# Tika metadata keys, most specific first.
_IDENTIFIER_KEYS = ("dc:identifier", "Identifier", "identifier", "isbn", "ISBN", "xmp:Identifier")
_TITLE_KEYS = ("dc:title", "title", "pdf:docinfo:title", "Title")


def normalize(body: str) -> set[BibliographicRecord]:
    """Parse a lookup response body into a set of records.

    Accepts either a single direct ``work`` element or a ``works`` container
    of them. The ``isbn`` and ``filepath`` fields are left blank for the
    caller to stamp. Unparsable documents produce an empty set.
    """
    if not body or not body.strip():
        return set()

    try:
        root = ET.fromstring(body)
    except ET.ParseError as exc:
        LOGGER.debug("Could not parse lookup response XML: %s", exc)
        return set()

    records: set[BibliographicRecord] = set()
    for work in _find_works(root):
        record = _parse_work(work)
        if record is not None:
            records.add(record)

    LOGGER.debug("Normalized %s record(s) from lookup response", len(records))
    return records


def _find_works(root: ET.Element) -> list[ET.Element]:
    if _local_name(root.tag) == "work":
        return [root]

    direct = [child for child in root if _local_name(child.tag) == "work"]
    if direct:
        return direct[:1]

    for child in root:
        if _local_name(child.tag) == "works":
            return [work for work in child if _local_name(work.tag) == "work"]
    return []


def _parse_work(work: ET.Element) -> BibliographicRecord | None:
    author = (work.get(_AUTHOR_ATTR) or "").strip()
    title = (work.get(_TITLE_ATTR) or "").strip()
    if not author and not title:
        LOGGER.debug("Skipping work element with neither author nor title")
        return None

    return BibliographicRecord(
        author=author,
        title=title,
        low_year=_parse_year(work.get(_LOW_YEAR_ATTR)),
        high_year=_parse_year(work.get(_HIGH_YEAR_ATTR)),
    )


def _parse_year(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(raw.strip())
    except ValueError:
        LOGGER.debug("Unparsable year attribute %r, defaulting to 0", raw)
        return 0


def _local_name(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def isbns_from_document_metadata(document_metadata: dict[str, object]) -> set[str]:
    """Collect valid ISBNs from a Tika ``/meta`` JSON object's identifier fields."""
    found: set[str] = set()
    for key in _IDENTIFIER_KEYS:
        for value in _as_strings(document_metadata.get(key)):
            for candidate in scan(value):
                isbn = parse_isbn(candidate)
                if isbn is not None:
                    found.add(isbn.text)
    return found


def title_from_document_metadata(document_metadata: dict[str, object]) -> str:
    """Return the first non-blank title field, or ""."""
    for key in _TITLE_KEYS:
        for value in _as_strings(document_metadata.get(key)):
            if value.strip():
                return value.strip()
    return ""


def _as_strings(value: object) -> list[str]:
    # Tika reports repeated keys as JSON arrays.
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []
