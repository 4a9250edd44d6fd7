"""Service: inclusive memberships layered over a fixed partition.

Nothing here moves a node between clusters. It only records secondary
affinities: clustered nodes with a strong edge into another cluster are
bridges, and outliers with enough edge support toward a cluster get that
cluster as a candidate.
"""

from __future__ import annotations

from collections import defaultdict

from boardcluster.domain.models import CoverageStats, NetworkEdge, NodeMembership, SmartCluster

BRIDGE_STRENGTH = 0.6
OUTLIER_CANDIDATE_STRENGTH = 0.3


def annotate_memberships(
    node_ids: list[str],
    clusters: list[SmartCluster],
    outliers: list[str],
    edges: list[NetworkEdge],
) -> tuple[list[NodeMembership], CoverageStats]:
    """Return per-node memberships (in *node_ids* order) and coverage stats."""
    cluster_of: dict[str, SmartCluster] = {}
    for cluster in clusters:
        for nid in cluster.node_ids:
            cluster_of[nid] = cluster

    memberships = {
        nid: NodeMembership(
            node_id=nid,
            primary_cluster_id=cluster_of[nid].id if nid in cluster_of else None,
            membership_strength=cluster_of[nid].membership_strength.get(nid, 1.0) if nid in cluster_of else 0.0,
        )
        for nid in node_ids
    }

    # Strongest edge per (node, other cluster) and per (outlier, member)
    bridge_strength: dict[tuple[str, str], float] = {}
    outlier_support: dict[tuple[str, str], dict[str, float]] = defaultdict(dict)
    outlier_set = set(outliers)

    for edge in edges:
        for here, there in ((edge.source, edge.target), (edge.target, edge.source)):
            if here not in memberships or there not in cluster_of:
                continue
            target_cluster = cluster_of[there].id
            if here in cluster_of:
                if cluster_of[here].id == target_cluster:
                    continue
                key = (here, target_cluster)
                bridge_strength[key] = max(bridge_strength.get(key, 0.0), edge.strength)
            elif here in outlier_set:
                support = outlier_support[(here, target_cluster)]
                support[there] = max(support.get(there, 0.0), edge.strength)

    for (nid, cid), strength in bridge_strength.items():
        if strength >= BRIDGE_STRENGTH:
            _add_secondary(memberships[nid], cid, strength)
            memberships[nid].is_bridge = True

    cluster_sizes = {c.id: c.size for c in clusters}
    for (nid, cid), support in outlier_support.items():
        # Missing edges count as zero strength toward that cluster
        mean = sum(support.values()) / cluster_sizes[cid]
        if mean >= OUTLIER_CANDIDATE_STRENGTH:
            _add_secondary(memberships[nid], cid, mean)

    ordered = [memberships[nid] for nid in node_ids]
    clustered = sum(1 for m in ordered if m.primary_cluster_id is not None)
    stats = CoverageStats(
        total_nodes=len(ordered),
        clustered_nodes=clustered,
        outlier_nodes=len(ordered) - clustered,
        bridge_nodes=sum(1 for m in ordered if m.is_bridge),
        coverage_ratio=clustered / len(ordered) if ordered else 0.0,
    )
    return ordered, stats


def _add_secondary(membership: NodeMembership, cluster_id: str, strength: float) -> None:
    if cluster_id not in membership.secondary_cluster_ids:
        membership.secondary_cluster_ids.append(cluster_id)
    membership.secondary_strengths[cluster_id] = strength
