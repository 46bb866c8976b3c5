"""Thread-safe result sink and JSON catalog persistence."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from json import JSONDecodeError
from pathlib import Path
from typing import Iterable

from models import BibliographicRecord

CATALOG_OUTPUT_PATH = os.getenv("CATALOG_OUTPUT_PATH", "catalog.json")

LOGGER = logging.getLogger(__name__)

CATALOG_FIELDS = [
    "filepath",
    "isbn",
    "author",
    "title",
    "low_year",
    "high_year",
]


class CatalogSink:
    """Collects records from many worker threads behind a single lock."""

    def __init__(self, initial: Iterable[BibliographicRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: list[BibliographicRecord] = list(initial)

    def append(self, record: BibliographicRecord) -> None:
        with self._lock:
            self._records.append(record)

    def drain(self) -> list[BibliographicRecord]:
        """Return a stable copy of everything collected so far."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def snapshot(self, path: str | Path | None = None) -> list[BibliographicRecord]:
        """Persist the current contents and return what was written."""
        records = self.drain()
        save_catalog(records, path)
        return records


def load_catalog(path: str | Path | None = None) -> list[BibliographicRecord]:
    """Load a prior run's catalog; a missing or unreadable file yields []."""
    catalog_path = Path(path or CATALOG_OUTPUT_PATH)
    if not catalog_path.exists():
        return []

    try:
        with catalog_path.open(encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, JSONDecodeError) as exc:
        LOGGER.warning("Ignoring unreadable catalog %s: %s", catalog_path, exc)
        return []

    if not isinstance(payload, list):
        LOGGER.warning("Ignoring catalog %s: expected a JSON array", catalog_path)
        return []

    records = [BibliographicRecord.from_dict(item) for item in payload if isinstance(item, dict)]
    LOGGER.info("Loaded %s record(s) from %s", len(records), catalog_path)
    return records


def processed_paths(records: Iterable[BibliographicRecord]) -> frozenset[str]:
    """Absolute paths of every cataloged file, however they were first written."""
    return frozenset(str(Path(record.filepath).resolve()) for record in records if record.filepath)


def save_catalog(records: Iterable[BibliographicRecord], path: str | Path | None = None) -> None:
    """Atomically overwrite the catalog with records.

    Rows are sorted so an unchanged catalog is rewritten byte-for-byte.
    """
    catalog_path = Path(path or CATALOG_OUTPUT_PATH)
    rows = [_to_row(record) for record in records]
    rows.sort(key=lambda row: tuple(str(row[field]) for field in CATALOG_FIELDS))

    directory = catalog_path.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{catalog_path.name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(rows, fh, indent=2, ensure_ascii=False)
            fh.write("\n")
        os.replace(tmp_name, catalog_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    LOGGER.info("Wrote %s record(s) to %s", len(rows), catalog_path)


def _to_row(record: BibliographicRecord) -> dict[str, object]:
    data = record.to_dict()
    return {field: data[field] for field in CATALOG_FIELDS}
