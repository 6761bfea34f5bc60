"""Trigram similarity compatible with PostgreSQL's ``pg_trgm``.

Each word is lower-cased and padded with two leading and one trailing blank before
its three-character windows are taken; similarity is the Jaccard coefficient of the
two trigram sets.
"""

from __future__ import annotations

import re
from typing import Final

DEFAULT_SIMILARITY_THRESHOLD: Final[float] = 0.8

_WORD = re.compile(r"\w+")


def trigrams(text: str) -> frozenset[str]:
    grams: set[str] = set()
    for word in _WORD.findall(text.lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return frozenset(grams)


def similarity(left: str, right: str) -> float:
    """Return a score in ``[0, 1]``; ``1.0`` for identical trigram sets."""

    left_grams = trigrams(left)
    right_grams = trigrams(right)
    union = left_grams | right_grams
    if not union:
        return 0.0
    return len(left_grams & right_grams) / len(union)
