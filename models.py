"""Shared typed models for the scanner pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class Isbn:
    """Validated ISBN: cleaned text plus its unsigned integer value."""

    text: str
    value: int


@dataclass(frozen=True, slots=True)
class BibliographicRecord:
    """One normalized work returned by the lookup service.

    Equality and hashing cover every field, so value-equal records collapse
    when gathered in a set.
    """

    author: str
    title: str
    low_year: int = 0
    high_year: int = 0
    isbn: str = ""
    filepath: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BibliographicRecord:
        return cls(
            author=str(data.get("author") or ""),
            title=str(data.get("title") or ""),
            low_year=_as_int(data.get("low_year")),
            high_year=_as_int(data.get("high_year")),
            isbn=str(data.get("isbn") or ""),
            filepath=str(data.get("filepath") or ""),
        )


class FileOutcome(str, Enum):
    """Terminal state of one file's trip through the pipeline."""

    RECORDED = "recorded"
    SKIPPED_ALREADY_PROCESSED = "skipped_already_processed"
    SKIPPED_UNKNOWN_TYPE = "skipped_unknown_type"
    SKIPPED_UNREADABLE = "skipped_unreadable"
    SKIPPED_NO_TEXT = "skipped_no_text"
    SKIPPED_NO_CANDIDATES = "skipped_no_candidates"
    SKIPPED_NO_VALID_ISBNS = "skipped_no_valid_isbns"
    SKIPPED_NO_RECORDS = "skipped_no_records"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FileResult:
    """Chosen record for a file (None when the file was skipped)."""

    filepath: str
    outcome: FileOutcome
    record: BibliographicRecord | None = None


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
