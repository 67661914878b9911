"""Small text helpers shared by metric calculation and classification."""

from __future__ import annotations

import re
import unicodedata
from typing import Optional

_PUNCTUATION_RE = re.compile(r"[^\w\s]", flags=re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")

NO_SPECIAL_CHARACTERS = "none"


def normalize_label(value: Optional[str]) -> str:
    """Return ``value`` lowercased with punctuation and extra spaces removed.

    Underscores count as punctuation so ``"machine_learning"`` and
    ``"Machine Learning"`` compare equal.
    """

    if not value:
        return ""
    text = unicodedata.normalize("NFKC", str(value)).lower().replace("_", " ")
    text = _PUNCTUATION_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def values_match(left: Optional[str], right: Optional[str]) -> bool:
    """Return whether two values match ignoring case and punctuation."""

    normalized_left = normalize_label(left)
    return bool(normalized_left) and normalized_left == normalize_label(right)


def length_ratio(left: str, right: str) -> float:
    """Return ``min(len) / max(len)``, or ``1.0`` when both are empty."""

    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return min(len(left), len(right)) / longest


def special_characters(text: str) -> str:
    """Return a sorted signature of the non-alphanumeric characters in ``text``.

    Whitespace is ignored. Returns ``"none"`` when there are no such
    characters.
    """

    specials = sorted({char for char in text if not char.isalnum() and not char.isspace()})
    return "".join(specials) if specials else NO_SPECIAL_CHARACTERS
