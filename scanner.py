"""Pattern-based ISBN candidate extraction from raw document text."""

from __future__ import annotations

import re

DEFAULT_MAX_CHARS = 20_000

# Runs of digits, dashes and whitespace closed by a digit or X. Hyphenated
# ISBNs and OCR output with stray spacing both come out as one candidate.
ISBN_CANDIDATE_PATTERN = re.compile(r"[0-9\-\s]+[0-9X]")


def scan(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> set[str]:
    """Return the distinct candidate strings in the first max_chars of text."""
    if not text or max_chars <= 0:
        return set()
    return {match.group(0) for match in ISBN_CANDIDATE_PATTERN.finditer(text[:max_chars])}
