"""Best-match selection among the candidate records found for one file."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Protocol

from models import BibliographicRecord


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance with unit-cost insert, delete and substitute."""
    if not a:
        return len(b)
    if not b:
        return len(a)

    costs = list(range(len(b) + 1))
    for i, a_char in enumerate(a):
        corner = costs[0]
        costs[0] = i + 1
        for j, b_char in enumerate(b):
            upper = costs[j + 1]
            if a_char == b_char:
                costs[j + 1] = corner
            else:
                costs[j + 1] = 1 + min(upper, corner, costs[j])
            corner = upper
    return costs[len(b)]


def ordered_candidates(candidates: Iterable[BibliographicRecord]) -> list[BibliographicRecord]:
    """Put candidates in a stable order so ties resolve the same way every run."""
    return sorted(
        set(candidates),
        key=lambda r: (r.isbn, r.title, r.author, r.low_year, r.high_year, r.filepath),
    )


class MatchStrategy(Protocol):
    """Chooses one record out of several (always called with two or more)."""

    def choose(self, candidates: list[BibliographicRecord], filename: str) -> BibliographicRecord:
        ...


class FilenameDistanceStrategy:
    """Pick the record whose title is closest to the bare filename."""

    def choose(self, candidates: list[BibliographicRecord], filename: str) -> BibliographicRecord:
        stem = Path(filename).stem
        # min() keeps the first of equally-distant candidates.
        return min(candidates, key=lambda r: levenshtein_distance(r.title, stem))


class FirstCandidateStrategy:
    def choose(self, candidates: list[BibliographicRecord], filename: str) -> BibliographicRecord:
        return candidates[0]


class MostRecentYearStrategy:
    """Prefer the work with the latest known publication year."""

    def choose(self, candidates: list[BibliographicRecord], filename: str) -> BibliographicRecord:
        best = candidates[0]
        for record in candidates[1:]:
            if record.high_year > best.high_year:
                best = record
        return best


STRATEGIES: dict[str, type] = {
    "filename": FilenameDistanceStrategy,
    "first": FirstCandidateStrategy,
    "recent": MostRecentYearStrategy,
}


def select_best_match(
    candidates: Iterable[BibliographicRecord],
    filename: str,
    strategy: MatchStrategy | None = None,
) -> BibliographicRecord | None:
    """Return the single best record for filename, or None when there are none."""
    ordered = ordered_candidates(candidates)
    if not ordered:
        return None
    if len(ordered) == 1:
        return ordered[0]
    return (strategy or FilenameDistanceStrategy()).choose(ordered, filename)
