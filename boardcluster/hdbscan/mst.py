"""Minimum spanning tree over a dense distance matrix (Kruskal + Union-Find)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

logger = logging.getLogger(__name__)


class UnionFind:
    """Disjoint sets with path compression and union by rank."""

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n
        self.size = [1] * n

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        # Compress the path walked
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> int:
        """Merge the sets holding *a* and *b*; return the surviving root."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return root_a
        if self.rank[root_a] < self.rank[root_b]:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        self.size[root_a] += self.size[root_b]
        if self.rank[root_a] == self.rank[root_b]:
            self.rank[root_a] += 1
        return root_a

    def connected(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)

    def component_count(self) -> int:
        return len({self.find(x) for x in range(len(self.parent))})


@dataclass
class MSTEdge:
    source: int
    target: int
    weight: float


@dataclass
class MinimumSpanningTree:
    node_count: int
    edges: list[MSTEdge] = field(default_factory=list)

    @property
    def total_weight(self) -> float:
        return sum(e.weight for e in self.edges)

    def sorted_edges(self) -> list[MSTEdge]:
        return sorted(self.edges, key=lambda e: (e.weight, e.source, e.target))


class MSTBuilder:
    """Kruskal's algorithm over the complete graph of a distance matrix."""

    def build(self, matrix: np.ndarray) -> MinimumSpanningTree:
        n = matrix.shape[0]
        mst = MinimumSpanningTree(node_count=n)
        if n < 2:
            return mst

        rows, cols = np.triu_indices(n, k=1)
        weights = matrix[rows, cols]
        # Stable sort so equal weights keep (row, col) order
        order = np.argsort(weights, kind="stable")

        uf = UnionFind(n)
        for idx in order:
            s, t = int(rows[idx]), int(cols[idx])
            if uf.connected(s, t):
                continue
            uf.union(s, t)
            mst.edges.append(MSTEdge(source=s, target=t, weight=float(weights[idx])))
            if len(mst.edges) == n - 1:
                break

        logger.debug(f"MST: {len(mst.edges)} edges, total weight {mst.total_weight:.4f}")
        return mst
