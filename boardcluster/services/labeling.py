"""Service: human-readable cluster labels.

Strategies are tried in order and the first acceptable label wins:

1. a tag shared by most cards, mapped through the tag dictionary
2. the two top keywords, via the bigram dictionary or a plain join
3. a keyword shared by at least two card pairs
4. the single top keyword
5. a generic name by cluster size

A label is acceptable when it is non-empty and at most 25 characters.
Any error inside labelling yields the lowest-confidence fallback label;
labelling never fails a clustering call.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from itertools import combinations
from pathlib import Path
from typing import Any

import yaml

from boardcluster.domain.errors import ConfigurationError
from boardcluster.domain.models import Card, ClusterLabel, SmartCluster
from boardcluster.services.keywords import KeywordExtractor
from boardcluster.services.text import normalize_tags

logger = logging.getLogger(__name__)

DEFAULT_DICTIONARY_PATH = Path(__file__).resolve().parent.parent / "data" / "label_dictionaries.yaml"

MAX_LABEL_LENGTH = 25
TAG_COVERAGE_THRESHOLD = 0.6
MIN_KEYWORD_LENGTH = 3
MIN_COOCCURRENCE = 2
MAX_ALTERNATIVES = 3

TAG_CONFIDENCE = 0.85
TAG_COVERAGE_BONUS = 0.1
BIGRAM_CONFIDENCE = 0.75
COOCCURRENCE_CONFIDENCE = 0.7
KEYWORD_CONFIDENCE = 0.6
FALLBACK_CONFIDENCE = 0.1


@dataclass
class LabelDictionaries:
    """Swappable vocabulary used to turn tags and keywords into labels."""

    tags: dict[str, str] = field(default_factory=dict)
    bigrams: dict[frozenset[str], str] = field(default_factory=dict)
    keywords: dict[str, str] = field(default_factory=dict)
    stop_words: frozenset[str] = frozenset()
    proper_noun_patterns: list[re.Pattern[str]] = field(default_factory=list)

    @classmethod
    def load(cls, path: str | Path | None = None) -> LabelDictionaries:
        """Read dictionaries from YAML; the packaged defaults when *path* is empty."""
        p = Path(path) if path else DEFAULT_DICTIONARY_PATH
        if not p.exists():
            raise ConfigurationError(f"Label dictionary file not found: {p}")
        try:
            with open(p, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid label dictionary file {p}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LabelDictionaries:
        bigrams: dict[frozenset[str], str] = {}
        for key, label in (d.get("bigrams") or {}).items():
            words = [w.strip().lower() for w in str(key).split(",") if w.strip()]
            if len(words) == 2:
                bigrams[frozenset(words)] = str(label)

        try:
            patterns = [re.compile(str(p)) for p in d.get("proper_noun_patterns") or []]
        except re.error as e:
            raise ConfigurationError(f"Invalid proper noun pattern: {e}") from e

        return cls(
            tags={str(k).lower(): str(v) for k, v in (d.get("tags") or {}).items()},
            bigrams=bigrams,
            keywords={str(k).lower(): str(v) for k, v in (d.get("keywords") or {}).items()},
            stop_words=frozenset(str(w).lower() for w in d.get("stop_words") or []),
            proper_noun_patterns=patterns,
        )

    def is_proper_noun(self, word: str) -> bool:
        return any(p.search(word) for p in self.proper_noun_patterns)

    def tag_label(self, tag: str) -> str | None:
        """Dictionary label for *tag*; short unknown tags have none."""
        tag = tag.strip().lower()
        if tag in self.tags:
            return self.tags[tag]
        if len(tag) < 3:
            return None
        return tag.upper() if len(tag) <= 4 else tag.capitalize()

    def bigram_label(self, first: str, second: str) -> str | None:
        return self.bigrams.get(frozenset((first.lower(), second.lower())))

    def keyword_label(self, word: str) -> str:
        return self.keywords.get(word.lower(), word.capitalize())


class LabelGenerator:
    """Name clusters from their cards' tags and text."""

    def __init__(
        self,
        dictionaries: LabelDictionaries | None = None,
        *,
        tag_coverage_threshold: float = TAG_COVERAGE_THRESHOLD,
        max_label_length: int = MAX_LABEL_LENGTH,
    ):
        self._dictionaries = dictionaries or LabelDictionaries.load()
        self._extractor = KeywordExtractor(self._dictionaries)
        self._tag_coverage_threshold = tag_coverage_threshold
        self._max_label_length = max_label_length

    @property
    def extractor(self) -> KeywordExtractor:
        return self._extractor

    # ── public ──

    def generate(self, cluster: SmartCluster, cards: list[Card]) -> ClusterLabel:
        """Label one cluster; never raises."""
        try:
            return self._generate(cluster, cards)
        except Exception:
            logger.exception(f"Label generation failed for cluster {cluster.id}")
            return self.fallback(cluster)

    def label_all(self, clusters: list[SmartCluster], cards_by_id: dict[str, Card]) -> None:
        """Attach a label to every cluster in place."""
        for cluster in clusters:
            members = [cards_by_id[nid] for nid in cluster.node_ids if nid in cards_by_id]
            cluster.label = self.generate(cluster, members)

    def fallback(self, cluster: SmartCluster) -> ClusterLabel:
        return ClusterLabel(
            text=f"Cluster {cluster.id}"[: self._max_label_length],
            label_confidence=FALLBACK_CONFIDENCE,
            reasoning="no distinctive tags or keywords",
            strategy="fallback",
        )

    # ── strategies ──

    def _generate(self, cluster: SmartCluster, cards: list[Card]) -> ClusterLabel:
        if not cards:
            return self.fallback(cluster)

        ranked_tags = self._rank_tags(cards)
        keywords = self._extractor.extract(c.text for c in cards)
        alternatives = self._alternatives(keywords, ranked_tags)

        label = (
            self._from_tags(ranked_tags, len(cards))
            or self._from_bigram(keywords)
            or self._from_cooccurrence(cards, keywords)
            or self._from_top_keyword(keywords)
            or self._from_size(cluster)
        )
        if label is None:
            return self.fallback(cluster)

        label.alternatives = [a for a in alternatives if a != label.text][:MAX_ALTERNATIVES]
        return label

    def _accept(self, text: str | None) -> bool:
        return bool(text) and len(text) <= self._max_label_length

    @staticmethod
    def _rank_tags(cards: list[Card]) -> list[tuple[str, int]]:
        counts: Counter[str] = Counter()
        for card in cards:
            counts.update(normalize_tags(card.tags))
        return counts.most_common()

    def _from_tags(self, ranked_tags: list[tuple[str, int]], n_cards: int) -> ClusterLabel | None:
        if not ranked_tags:
            return None
        tag, count = ranked_tags[0]
        coverage = count / n_cards
        if coverage < self._tag_coverage_threshold:
            return None
        text = self._dictionaries.tag_label(tag)
        if not self._accept(text):
            return None
        return ClusterLabel(
            text=text,
            label_confidence=TAG_CONFIDENCE + TAG_COVERAGE_BONUS * coverage,
            reasoning=f"{coverage:.0%} of cards share the tag '{tag}'",
            strategy="tag",
        )

    def _from_bigram(self, keywords: list[str]) -> ClusterLabel | None:
        if len(keywords) < 2:
            return None
        first, second = keywords[0], keywords[1]
        if len(first) < MIN_KEYWORD_LENGTH or len(second) < MIN_KEYWORD_LENGTH:
            return None

        text = self._dictionaries.bigram_label(first, second)
        if text is None:
            joined = f"{self._dictionaries.keyword_label(first)} & {self._dictionaries.keyword_label(second)}"
            text = joined if self._accept(joined) else self._dictionaries.keyword_label(first)
        if not self._accept(text):
            return None
        return ClusterLabel(
            text=text,
            label_confidence=BIGRAM_CONFIDENCE,
            reasoning=f"top keywords '{first}' and '{second}'",
            strategy="bigram",
        )

    def _from_cooccurrence(self, cards: list[Card], keywords: list[str]) -> ClusterLabel | None:
        vocabulary = {k for k in keywords if len(k) >= MIN_KEYWORD_LENGTH}
        per_card = [set(self._extractor.tokenize(c.text)) & vocabulary for c in cards]

        counts: Counter[str] = Counter()
        for a, b in combinations(per_card, 2):
            # Keep keyword rank order for ties
            counts.update(k for k in keywords if k in a and k in b)
        if not counts:
            return None

        term, freq = counts.most_common(1)[0]
        if freq < MIN_COOCCURRENCE:
            return None
        text = self._dictionaries.keyword_label(term)
        if not self._accept(text):
            return None
        return ClusterLabel(
            text=text,
            label_confidence=COOCCURRENCE_CONFIDENCE,
            reasoning=f"'{term}' appears together in {freq} card pairs",
            strategy="cooccurrence",
        )

    def _from_top_keyword(self, keywords: list[str]) -> ClusterLabel | None:
        if not keywords:
            return None
        text = self._dictionaries.keyword_label(keywords[0])
        if not self._accept(text):
            return None
        return ClusterLabel(
            text=text,
            label_confidence=KEYWORD_CONFIDENCE,
            reasoning=f"most frequent keyword '{keywords[0]}'",
            strategy="keyword",
        )

    def _from_size(self, cluster: SmartCluster) -> ClusterLabel | None:
        size = cluster.size
        if size >= 5:
            text, confidence = f"Major Theme ({size} cards)", 0.4
        elif size >= 3:
            text, confidence = f"Related Ideas ({size} cards)", 0.3
        else:
            text, confidence = f"Small Group ({size} cards)", 0.2
        if not self._accept(text):
            return None
        return ClusterLabel(
            text=text,
            label_confidence=confidence,
            reasoning="no shared tags or keywords; named by size",
            strategy="size",
        )

    def _alternatives(self, keywords: list[str], ranked_tags: list[tuple[str, int]]) -> list[str]:
        candidates = [
            self._dictionaries.keyword_label(k)
            for k in keywords[1:4]
            if len(k) >= MIN_KEYWORD_LENGTH
        ]
        for tag, _ in ranked_tags[1:3]:
            text = self._dictionaries.tag_label(tag)
            if text:
                candidates.append(text)

        seen: set[str] = set()
        result = []
        for text in candidates:
            if text not in seen and self._accept(text):
                seen.add(text)
                result.append(text)
        return result
