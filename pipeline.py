"""Concurrent per-file pipeline: extract, scan, validate, look up, select, record."""

from __future__ import annotations

import logging
import os
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Protocol

from catalog_sink import CatalogSink
from config import Settings
from isbn import parse_isbn
from matching import FilenameDistanceStrategy, MatchStrategy, select_best_match
from metadata import isbns_from_document_metadata, normalize, title_from_document_metadata
from models import BibliographicRecord, FileOutcome, FileResult
from organizer import FileOrganizer
from rate_limiter import RateLimited
from scanner import scan

PROGRESS_INTERVAL = 50


class TextExtractor(Protocol):
    def extract_text(self, data: bytes, mime_type: str) -> str:
        ...

    def extract_metadata(self, data: bytes, mime_type: str) -> dict[str, object]:
        ...


class MetadataLookup(Protocol):
    def lookup(self, isbn: str) -> str | None:
        ...

    def lookup_title(self, title: str) -> str | None:
        ...


class AtomicCounter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class RunContext:
    """Everything a worker needs, passed explicitly instead of living in globals."""

    settings: Settings
    mime_types: dict[str, str]
    extractor: TextExtractor
    lookup: RateLimited[MetadataLookup]
    sink: CatalogSink
    catalog_path: Path
    processed: frozenset[str] = frozenset()
    cancel_event: threading.Event = field(default_factory=threading.Event)
    organized: AtomicCounter = field(default_factory=AtomicCounter)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    strategy: MatchStrategy = field(default_factory=FilenameDistanceStrategy)
    organizer: FileOrganizer | None = None
    _snapshot_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _cancel_snapshot_written: bool = field(default=False, repr=False)

    def snapshot_on_cancel(self) -> None:
        """Write the catalog once for the first worker that notices cancellation."""
        with self._snapshot_lock:
            if self._cancel_snapshot_written:
                return
            self._cancel_snapshot_written = True
            self.logger.warning("Cancellation requested, writing catalog snapshot")
            self.sink.snapshot(self.catalog_path)


@dataclass
class RunSummary:
    total: int
    outcomes: Counter = field(default_factory=Counter)
    organized: int = 0
    records: list[BibliographicRecord] = field(default_factory=list)

    @property
    def recorded(self) -> int:
        return self.outcomes[FileOutcome.RECORDED]


def discover_files(directory: str | Path, exclude: Iterable[str | Path] = ()) -> list[Path]:
    """Recursively list regular files under directory as absolute paths, skipping excluded ones."""
    root = Path(directory)
    excluded = [Path(p).resolve() for p in exclude]
    files: list[Path] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        resolved = path.resolve()
        if any(resolved == ex or ex in resolved.parents for ex in excluded):
            continue
        files.append(resolved)
    files.sort()
    return files


class _Cancelled(Exception):
    pass


def _lookup_isbns(isbns: Iterable[str], filepath: str, context: RunContext) -> set[BibliographicRecord]:
    records: set[BibliographicRecord] = set()
    for isbn in isbns:
        if context.cancel_event.is_set():
            context.logger.info("Cancelled before looking up %s for %s", isbn, filepath)
            raise _Cancelled

        body = context.lookup.use(lambda client: client.lookup(isbn))
        if body is None:
            continue

        found = normalize(body)
        if not found:
            context.logger.debug("No records for %s with %s", filepath, isbn)
        records.update(replace(record, isbn=isbn, filepath=filepath) for record in found)
    return records


def _lookup_from_document_metadata(
    data: bytes,
    mime_type: str,
    tried: set[str],
    filepath: str,
    context: RunContext,
) -> set[BibliographicRecord]:
    """Fall back on the document's own metadata: embedded ISBNs, then its title.

    A title lookup only counts when some valid ISBN is known for the file,
    since every cataloged record must carry one.
    """
    log = context.logger
    document_metadata = context.extractor.extract_metadata(data, mime_type)
    if not document_metadata:
        return set()

    embedded = isbns_from_document_metadata(document_metadata) - tried
    if embedded:
        log.debug("%s metadata ISBNs: %s", filepath, sorted(embedded))
        records = _lookup_isbns(sorted(embedded), filepath, context)
        if records:
            return records

    known = sorted(tried | embedded)
    title = title_from_document_metadata(document_metadata)
    if not title or not known:
        return set()

    if context.cancel_event.is_set():
        raise _Cancelled
    log.debug("%s looking up metadata title %r", filepath, title)
    body = context.lookup.use(lambda client: client.lookup_title(title))
    if body is None:
        return set()
    return {replace(record, isbn=known[0], filepath=filepath) for record in normalize(body)}


def process_file(path: Path, context: RunContext) -> FileResult:
    """Run one file through every stage, falling back on document metadata when the text yields nothing."""
    try:
        return _process_file(path, context)
    except _Cancelled:
        return FileResult(str(path.resolve()), FileOutcome.CANCELLED)


def _process_file(path: Path, context: RunContext) -> FileResult:
    log = context.logger
    filepath = str(path.resolve())

    if filepath in context.processed:
        log.debug("Already cataloged, skipping %s", filepath)
        return FileResult(filepath, FileOutcome.SKIPPED_ALREADY_PROCESSED)

    extension = path.suffix.lower().lstrip(".")
    mime_type = context.mime_types.get(extension)
    if mime_type is None:
        log.warning("Unknown file type %r, skipping %s", extension, filepath)
        return FileResult(filepath, FileOutcome.SKIPPED_UNKNOWN_TYPE)

    try:
        data = path.read_bytes()
    except OSError as exc:
        log.warning("Could not read %s: %s", filepath, exc)
        return FileResult(filepath, FileOutcome.SKIPPED_UNREADABLE)

    isbns: list[str] = []
    records: set[BibliographicRecord] = set()
    text = context.extractor.extract_text(data, mime_type)
    if not text:
        log.info("%s got no text", filepath)
        outcome = FileOutcome.SKIPPED_NO_TEXT
    else:
        log.debug("%s extracted %s characters", filepath, len(text))
        candidates = scan(text, context.settings.max_chars)
        if not candidates:
            log.info("%s had no ISBN candidates", filepath)
            outcome = FileOutcome.SKIPPED_NO_CANDIDATES
        else:
            log.debug("%s found %s candidate(s)", filepath, len(candidates))
            isbns = sorted({isbn.text for isbn in map(parse_isbn, candidates) if isbn is not None})
            if not isbns:
                log.info("%s had no valid ISBNs", filepath)
                outcome = FileOutcome.SKIPPED_NO_VALID_ISBNS
            else:
                log.debug("%s valid ISBNs: %s", filepath, isbns)
                records = _lookup_isbns(isbns, filepath, context)
                outcome = FileOutcome.SKIPPED_NO_RECORDS

    if not records:
        records = _lookup_from_document_metadata(data, mime_type, set(isbns), filepath, context)
    if not records:
        if outcome is FileOutcome.SKIPPED_NO_RECORDS:
            log.info("Could not find any records for %s", filepath)
        return FileResult(filepath, outcome)

    best = select_best_match(records, path.name, context.strategy)
    if best is None or not best.isbn:
        log.error("Best match for %s carries no ISBN, dropping file", filepath)
        return FileResult(filepath, FileOutcome.FAILED)

    context.sink.append(best)
    log.info("Recorded %s as %r by %r (isbn=%s)", filepath, best.title, best.author, best.isbn)

    if context.organizer is not None:
        try:
            context.organizer.organize(best)
            context.organized.increment()
        except OSError as exc:
            log.warning("Could not organize %s: %s", filepath, exc)

    return FileResult(filepath, FileOutcome.RECORDED, best)


def run_pipeline(files: list[Path], context: RunContext) -> RunSummary:
    """Process files across a worker pool, then persist the full catalog once."""
    log = context.logger
    summary = RunSummary(total=len(files))
    workers = max(1, min(context.settings.workers, os.cpu_count() or 1))
    log.info("Processing %s file(s) with %s worker(s)", len(files), workers)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(_run_one, path, context): path for path in files}
        for done, future in enumerate(as_completed(futures), start=1):
            result = future.result()
            summary.outcomes[result.outcome] += 1
            if done % PROGRESS_INTERVAL == 0:
                log.info("Progress: %s/%s files", done, len(files))

    summary.records = context.sink.snapshot(context.catalog_path)
    summary.organized = context.organized.value
    log.info(
        "Run complete. recorded=%s organized=%s outcomes=%s",
        summary.recorded,
        summary.organized,
        {outcome.value: count for outcome, count in summary.outcomes.items()},
    )
    return summary


def _run_one(path: Path, context: RunContext) -> FileResult:
    if context.cancel_event.is_set():
        context.snapshot_on_cancel()
        return FileResult(str(path.resolve()), FileOutcome.CANCELLED)

    try:
        return process_file(path, context)
    except Exception as exc:  # one bad file must not take down the run
        context.logger.exception("Failed processing %s: %s", path, exc)
        return FileResult(str(path.resolve()), FileOutcome.FAILED)
