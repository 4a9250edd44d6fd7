"""Statistical keyword extraction for cluster labelling.

Tokens are ranked by frequency after two outlier filters remove words that
are far more frequent than the rest (headers, template boilerplate):

- z-score: ``(freq − mean) / std > 2.0``
- IQR: ``freq > Q3 + 1.5·IQR`` for words seen more than 3 times
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

import numpy as np

if TYPE_CHECKING:
    from boardcluster.services.labeling import LabelDictionaries

logger = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[^\w]+", re.UNICODE)
_ASCII_RE = re.compile(r"^[\x00-\x7f]+$")

MIN_TOKEN_LENGTH = 2
MIN_ENGLISH_LENGTH = 3
Z_SCORE_LIMIT = 2.0
IQR_FACTOR = 1.5
IQR_MIN_FREQUENCY = 3
MAX_KEYWORDS = 20


@dataclass
class FrequencyStats:
    """Distribution of token frequencies and the words it excluded."""

    mean: float = 0.0
    std: float = 0.0
    q1: float = 0.0
    q3: float = 0.0
    excluded: set[str] = field(default_factory=set)

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1


class KeywordExtractor:
    """Tokenise card text and return its salient keywords."""

    def __init__(self, dictionaries: LabelDictionaries):
        self._dictionaries = dictionaries

    def tokenize(self, text: str | None) -> list[str]:
        if not text:
            return []
        words = _SPLIT_RE.sub(" ", text.lower()).split()
        return [
            w for w in words
            if len(w) >= MIN_TOKEN_LENGTH
            and w not in self._dictionaries.stop_words
            and not self._dictionaries.is_proper_noun(w)
        ]

    def frequency_stats(self, frequencies: Counter[str]) -> FrequencyStats:
        if not frequencies:
            return FrequencyStats()

        values = np.asarray(list(frequencies.values()), dtype=np.float64)
        mean = float(values.mean())
        std = float(values.std())  # population
        ordered = sorted(values)
        q1 = float(ordered[math.floor(len(ordered) * 0.25)])
        q3 = float(ordered[math.floor(len(ordered) * 0.75)])
        stats = FrequencyStats(mean=mean, std=std, q1=q1, q3=q3)

        upper_fence = q3 + IQR_FACTOR * stats.iqr
        for word, freq in frequencies.items():
            z = (freq - mean) / std if std > 0 else 0.0
            if z > Z_SCORE_LIMIT:
                stats.excluded.add(word)
            elif freq > upper_fence and freq > IQR_MIN_FREQUENCY:
                stats.excluded.add(word)
        return stats

    def extract(self, texts: Iterable[str | None], limit: int = MAX_KEYWORDS) -> list[str]:
        """Keywords of *texts*, most frequent first, ties in order of appearance."""
        frequencies: Counter[str] = Counter()
        for text in texts:
            frequencies.update(self.tokenize(text))

        stats = self.frequency_stats(frequencies)
        if stats.excluded:
            logger.debug(f"Excluded frequency outliers: {sorted(stats.excluded)}")

        candidates = [
            (word, freq)
            for word, freq in frequencies.items()
            if word not in stats.excluded
            and not (_ASCII_RE.match(word) and len(word) < MIN_ENGLISH_LENGTH)
        ]
        candidates.sort(key=lambda pair: pair[1], reverse=True)
        return [word for word, _ in candidates[:limit]]
