"""ISBN-10 / ISBN-13 checksum validation."""

from __future__ import annotations

import logging
import re

from models import Isbn

LOGGER = logging.getLogger(__name__)

_NON_ISBN_CHARS = re.compile(r"[^0-9X]")
_ALL_ONE_CHAR = re.compile(r"^(.)\1+$")

# Seen often enough in front matter templates to be treated as noise.
_PLACEHOLDERS: frozenset[str] = frozenset({"0123456789"})


def clean_isbn(raw: str) -> str:
    """Drop every character that cannot appear in an ISBN."""
    return _NON_ISBN_CHARS.sub("", raw)


def validate(raw: str) -> tuple[bool, int]:
    """Validate a raw candidate string.

    Returns ``(True, value)`` for a valid ISBN-10 or ISBN-13, where ``value``
    is the cleaned string read as an unsigned integer, and ``(False, 0)``
    otherwise. A terminal ``X`` contributes 10 in the units position.
    """
    isbn = clean_isbn(raw)

    if len(isbn) not in (10, 13):
        return False, 0

    if _ALL_ONE_CHAR.match(isbn) or isbn in _PLACEHOLDERS:
        LOGGER.debug("Rejecting degenerate ISBN %s", isbn)
        return False, 0

    if len(isbn) == 10:
        valid = _is_valid_isbn10(isbn)
    else:
        valid = _is_valid_isbn13(isbn)

    if not valid:
        return False, 0
    return True, _numeric_value(isbn)


def parse_isbn(raw: str) -> Isbn | None:
    """Like validate(), but keep the cleaned text alongside the value."""
    valid, value = validate(raw)
    if not valid:
        return None
    return Isbn(text=clean_isbn(raw), value=value)


def _is_valid_isbn10(isbn: str) -> bool:
    total = 0
    for index, char in enumerate(isbn):
        weight = 10 - index
        if char == "X":
            if index != len(isbn) - 1:
                LOGGER.debug("ISBN %s has X before the last position", isbn)
                return False
            total += weight * 10
        else:
            total += weight * int(char)

    if total % 11 != 0:
        LOGGER.debug("ISBN %s failed the ISBN-10 checksum", isbn)
        return False
    return True


def _is_valid_isbn13(isbn: str) -> bool:
    if not isbn.isdigit():
        LOGGER.debug("ISBN %s contains a non-digit", isbn)
        return False

    total = sum(int(char) * (1 if index % 2 == 0 else 3) for index, char in enumerate(isbn[:12]))
    check_digit = int(isbn[12])

    if check_digit != (10 - total % 10) % 10:
        LOGGER.debug("ISBN %s failed the ISBN-13 checksum", isbn)
        return False
    return True


def _numeric_value(isbn: str) -> int:
    """Read a cleaned ISBN as an integer, a terminal X counting as 10.

    Not injective: ``193176932X`` and ``1931769330`` share a value, and
    leading zeros are lost. Only ``Isbn.text`` identifies an ISBN.
    """
    if isbn.endswith("X"):
        return int(isbn[:-1]) * 10 + 10
    return int(isbn)
