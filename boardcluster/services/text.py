"""Token helpers shared by similarity scoring and keyword extraction."""

from __future__ import annotations

import re
from typing import Iterable

WORD_RE = re.compile(r"\w+", re.UNICODE)

# Words shorter than this carry no signal for overlap scoring
MIN_SIGNIFICANT_LENGTH = 3


def significant_words(text: str | None) -> set[str]:
    """Lower-cased word set of *text*, dropping very short words."""
    if not text:
        return set()
    return {w for w in WORD_RE.findall(text.lower()) if len(w) >= MIN_SIGNIFICANT_LENGTH}


def normalize_tags(tags: Iterable[str] | None) -> set[str]:
    if not tags:
        return set()
    return {t.strip().lower() for t in tags if t and t.strip()}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two collections; 0.0 when either is empty."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)
