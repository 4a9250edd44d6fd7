"""Condensed cluster tree, stability and excess-of-mass selection.

The MST is replayed in increasing weight order to build a single-linkage
dendrogram. That dendrogram is then condensed top-down: at each split
(density level ``λ = 1 / distance``), a side smaller than
``min_cluster_size`` is treated as points falling out of the current
cluster, and only splits where both sides are large enough create two new
child clusters.

Stability of a tree node C is ``Σ_p (λ_p − λ_birth(C))`` over the points it
holds, where λ_p is the level at which p leaves C (by falling out or by C
splitting into children).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from boardcluster.hdbscan.mst import MinimumSpanningTree, UnionFind

logger = logging.getLogger(__name__)

# Distances at or below this are treated as this value when converted to λ
MIN_DISTANCE = 1e-10


def lambda_of(distance: float) -> float:
    return 1.0 / max(distance, MIN_DISTANCE)


@dataclass
class HierarchicalClusterNode:
    """One cluster of the condensed tree."""

    id: int
    parent_id: int | None
    birth_lambda: float
    points: list[int]  # every point present at birth
    death_lambda: float = 0.0
    children: list[int] = field(default_factory=list)
    fallen: dict[int, float] = field(default_factory=dict)  # point -> λ it fell out at
    stability: float = 0.0
    is_selected: bool = False

    @property
    def size(self) -> int:
        return len(self.points)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def persistence(self) -> float:
        return self.death_lambda - self.birth_lambda


@dataclass
class ClusterTree:
    """The condensed hierarchy; node ids increase from the root downwards."""

    nodes: dict[int, HierarchicalClusterNode] = field(default_factory=dict)
    root_id: int | None = None

    def add(
        self,
        parent_id: int | None,
        birth_lambda: float,
        points: list[int],
    ) -> HierarchicalClusterNode:
        node = HierarchicalClusterNode(
            id=len(self.nodes),
            parent_id=parent_id,
            birth_lambda=birth_lambda,
            points=points,
        )
        self.nodes[node.id] = node
        if parent_id is None:
            self.root_id = node.id
        else:
            self.nodes[parent_id].children.append(node.id)
        return node

    def __len__(self) -> int:
        return len(self.nodes)

    def selected(self) -> list[HierarchicalClusterNode]:
        return [n for n in self.nodes.values() if n.is_selected]

    def ancestors(self, node_id: int) -> list[int]:
        result = []
        parent = self.nodes[node_id].parent_id
        while parent is not None:
            result.append(parent)
            parent = self.nodes[parent].parent_id
        return result

    def descendants(self, node_id: int) -> list[int]:
        result: list[int] = []
        stack = list(self.nodes[node_id].children)
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(self.nodes[current].children)
        return result

    def is_ancestor(self, ancestor_id: int, node_id: int) -> bool:
        return ancestor_id in self.ancestors(node_id)

    def point_exits(self) -> dict[int, tuple[int, float]]:
        """Map each point to ``(tree node it fell out of, λ at that moment)``."""
        exits: dict[int, tuple[int, float]] = {}
        for node in self.nodes.values():
            for point, lam in node.fallen.items():
                exits[point] = (node.id, lam)
        return exits

    def max_lambdas(self) -> dict[int, float]:
        """Largest fall-out λ within each node's subtree."""
        result: dict[int, float] = {}
        # Children always have larger ids than their parent
        for node_id in sorted(self.nodes, reverse=True):
            node = self.nodes[node_id]
            best = max(node.fallen.values(), default=0.0)
            for child in node.children:
                best = max(best, result[child])
            result[node_id] = best
        return result

    def to_rows(self) -> list[dict[str, Any]]:
        """Flat dendrogram rows for visualisation; level 0 is the root."""
        rows = []
        for node in self.nodes.values():
            rows.append(
                {
                    "id": node.id,
                    "parent_id": node.parent_id,
                    "level": len(self.ancestors(node.id)),
                    "size": node.size,
                    "stability": node.stability,
                    "is_selected": node.is_selected,
                }
            )
        return rows


class HierarchyBuilder:
    """Build the condensed tree from an MST and select flat clusters."""

    def __init__(self, min_cluster_size: int = 2):
        # A one-point "cluster" would make every split a true split
        self.min_cluster_size = max(2, min_cluster_size)

    def build(self, mst: MinimumSpanningTree) -> ClusterTree:
        n = mst.node_count
        tree = ClusterTree()
        if n < 2 or not mst.edges:
            return tree

        left, right, distance, members = self._single_linkage(mst)
        root = len(members) - 1
        self._condense(tree, root, left, right, distance, members)
        self.compute_stability(tree)

        logger.debug(f"Condensed tree: {len(tree)} nodes from {n} points")
        return tree

    # ── single linkage ──

    @staticmethod
    def _single_linkage(
        mst: MinimumSpanningTree,
    ) -> tuple[dict[int, int], dict[int, int], dict[int, float], list[list[int]]]:
        """Replay MST edges in weight order into a binary dendrogram.

        Leaves are ``0..n-1``; merge *i* creates dendrogram node ``n + i``.
        """
        n = mst.node_count
        uf = UnionFind(n)
        # Union-find root -> dendrogram node currently representing that set
        representative = list(range(n))
        members: list[list[int]] = [[p] for p in range(n)]
        left: dict[int, int] = {}
        right: dict[int, int] = {}
        distance: dict[int, float] = {}

        for edge in mst.sorted_edges():
            root_a, root_b = uf.find(edge.source), uf.find(edge.target)
            if root_a == root_b:
                continue
            node_a, node_b = representative[root_a], representative[root_b]
            new_node = len(members)
            left[new_node], right[new_node] = node_a, node_b
            distance[new_node] = edge.weight
            members.append(members[node_a] + members[node_b])
            representative[uf.union(root_a, root_b)] = new_node

        return left, right, distance, members

    # ── condensing ──

    def _condense(
        self,
        tree: ClusterTree,
        root: int,
        left: dict[int, int],
        right: dict[int, int],
        distance: dict[int, float],
        members: list[list[int]],
    ) -> None:
        mcs = self.min_cluster_size
        root_cluster = tree.add(parent_id=None, birth_lambda=0.0, points=list(members[root]))
        if len(members[root]) < mcs:
            for point in members[root]:
                root_cluster.fallen[point] = lambda_of(distance.get(root, 0.0))
            root_cluster.death_lambda = max(root_cluster.fallen.values(), default=0.0)
            return

        stack = [(root, root_cluster.id)]
        while stack:
            dendro_node, cluster_id = stack.pop()
            cluster = tree.nodes[cluster_id]
            lam = lambda_of(distance[dendro_node])
            a, b = left[dendro_node], right[dendro_node]
            big_a = len(members[a]) >= mcs
            big_b = len(members[b]) >= mcs

            if big_a and big_b:
                cluster.death_lambda = lam
                for side in (a, b):
                    child = tree.add(parent_id=cluster_id, birth_lambda=lam, points=list(members[side]))
                    stack.append((side, child.id))
            elif big_a or big_b:
                keep, drop = (a, b) if big_a else (b, a)
                for point in members[drop]:
                    cluster.fallen[point] = lam
                stack.append((keep, cluster_id))
            else:
                for point in members[dendro_node]:
                    cluster.fallen[point] = lam
                cluster.death_lambda = lam

    # ── stability and selection ──

    @staticmethod
    def compute_stability(tree: ClusterTree) -> dict[int, float]:
        """Fill in and return per-node stability."""
        scores: dict[int, float] = {}
        for node in tree.nodes.values():
            stability = sum(lam - node.birth_lambda for lam in node.fallen.values())
            if node.children:
                passed = sum(tree.nodes[c].size for c in node.children)
                stability += passed * (node.death_lambda - node.birth_lambda)
            node.stability = max(0.0, stability)
            scores[node.id] = node.stability
        return scores

    @staticmethod
    def select_clusters(tree: ClusterTree, allow_single_cluster: bool = False) -> list[int]:
        """Excess-of-mass selection; returns the selected node ids.

        Walking bottom-up, a node keeps itself when its own stability is at
        least the best total its children can reach, otherwise it passes
        that total upwards. The final top-down pass selects the highest
        nodes that kept themselves, so no selected node has a selected
        ancestor. The root is only eligible when *allow_single_cluster*.
        """
        if tree.root_id is None:
            return []

        best: dict[int, float] = {}
        keeps_self: dict[int, bool] = {}
        for node_id in sorted(tree.nodes, reverse=True):
            node = tree.nodes[node_id]
            if node.is_leaf:
                best[node_id] = node.stability
                keeps_self[node_id] = True
                continue
            child_total = sum(best[c] for c in node.children)
            if node.stability >= child_total:
                best[node_id] = node.stability
                keeps_self[node_id] = True
            else:
                best[node_id] = child_total
                keeps_self[node_id] = False

        root = tree.nodes[tree.root_id]
        if not allow_single_cluster:
            keeps_self[root.id] = False
            if root.is_leaf:
                return []

        selected: list[int] = []
        stack = [tree.root_id]
        while stack:
            node_id = stack.pop()
            if keeps_self[node_id]:
                selected.append(node_id)
                continue
            stack.extend(tree.nodes[node_id].children)

        for node_id in selected:
            tree.nodes[node_id].is_selected = True
        return sorted(selected)
