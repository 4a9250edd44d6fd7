"""Shared cluster construction and the size-bound policy.

Every clustering adapter emits plain member-id groups; this module turns
them into SmartCluster records so downstream consumers never depend on
which algorithm produced them.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from boardcluster.domain.models import Card, NetworkNode, SmartCluster
from boardcluster.services.distance import SimilarityMatrix

DOMINANT_TAG_COUNT = 3
DOMINANT_TYPE_COUNT = 2


def apply_size_bounds(
    groups: list[list[str]],
    min_size: int,
    max_size: int,
) -> tuple[list[list[str]], list[str]]:
    """Enforce ``min_size <= |group| <= max_size``.

    Oversized groups keep their first *max_size* members and the rest become
    outliers; undersized groups are demoted entirely. Returns
    ``(kept_groups, demoted_ids)``.
    """
    kept: list[list[str]] = []
    demoted: list[str] = []
    for group in groups:
        if len(group) > max_size:
            demoted.extend(group[max_size:])
            group = group[:max_size]
        if len(group) < min_size:
            demoted.extend(group)
            continue
        kept.append(list(group))
    return kept, demoted


def build_cluster(
    cluster_id: str,
    node_ids: list[str],
    nodes_by_id: dict[str, NetworkNode],
    cards: dict[str, Card],
    matrix: SimilarityMatrix,
    *,
    stability: float | None = None,
    membership_strength: dict[str, float] | None = None,
    metadata: dict[str, Any] | None = None,
) -> SmartCluster:
    members = [nodes_by_id[nid] for nid in node_ids]

    tag_counts: Counter[str] = Counter()
    type_counts: Counter[str] = Counter()
    for node in members:
        card = cards.get(node.id)
        tags = card.tags if card is not None and card.tags else node.tags
        tag_counts.update(t for t in tags if t)
        column = card.column_type if card is not None and card.column_type else node.type
        if column:
            type_counts[column] += 1

    dominant_tags = [tag for tag, _ in tag_counts.most_common(DOMINANT_TAG_COUNT)]
    dominant_types = [col for col, _ in type_counts.most_common(DOMINANT_TYPE_COUNT)]

    # Best-connected member stands in as the centroid
    centroid = max(members, key=lambda n: n.connection_count) if members else None

    member_set = set(node_ids)
    others = [nid for nid in matrix.node_ids if nid not in member_set]
    separation = 1.0 - matrix.mean_between(node_ids, others) if others else 1.0

    return SmartCluster(
        id=cluster_id,
        node_ids=list(node_ids),
        centroid=centroid,
        cohesion=matrix.mean_pairwise(node_ids),
        separation=separation,
        semantic_theme=dominant_tags[0] if dominant_tags else "general",
        dominant_tags=dominant_tags,
        dominant_types=dominant_types,
        stability=stability,
        membership_strength=membership_strength or {nid: 1.0 for nid in node_ids},
        metadata=metadata or {},
    )
