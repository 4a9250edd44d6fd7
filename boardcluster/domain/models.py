"""Domain models for boards, similarity scores and clusters.

Inputs (cards, relationship graph, clustering config) are read-only to the
engine; outputs (clusters, labels, quality metrics) are plain dataclasses
with ``to_dict()`` so they can be exported as JSON.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from boardcluster.domain.errors import ConfigurationError


def _uid() -> str:
    return uuid.uuid4().hex[:12]


def _pick(d: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; board exports mix snake_case and camelCase."""
    for key in keys:
        if key in d and d[key] is not None:
            return d[key]
    return default


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds, as browsers serialise Date.now()
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ── Algorithm variants ──────────────────────────────────────────────────────

class ClusteringAlgorithm(str, Enum):
    """Clustering variants a caller may request."""

    DBSCAN = "dbscan"
    HDBSCAN = "hdbscan"
    HIERARCHICAL = "hierarchical"
    COMMUNITY = "community"
    SEMANTIC = "semantic"

    @classmethod
    def parse(cls, value: str | ClusteringAlgorithm) -> ClusteringAlgorithm:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ", ".join(a.value for a in cls)
            raise ConfigurationError(
                f"Unknown clustering algorithm: {value!r} (expected one of {names})"
            ) from None


# ── Board input ─────────────────────────────────────────────────────────────

@dataclass
class Card:
    """A short text note on a board; the unit being grouped."""

    id: str
    title: str
    content: str | None = None
    tags: list[str] = field(default_factory=list)
    column_type: str = ""
    created_by: str | None = None
    created_at: datetime | None = None
    board_id: str | None = None

    @property
    def text(self) -> str:
        """Title and body as one string."""
        return f"{self.title} {self.content or ''}".strip()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "column_type": self.column_type,
            "created_by": self.created_by,
            "created_at": _format_datetime(self.created_at),
            "board_id": self.board_id,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Card:
        return cls(
            id=str(d["id"]),
            title=_pick(d, "title", default=""),
            content=_pick(d, "content"),
            tags=list(_pick(d, "tags", default=[])),
            column_type=_pick(d, "column_type", "columnType", default=""),
            created_by=_pick(d, "created_by", "createdBy"),
            created_at=_parse_datetime(_pick(d, "created_at", "createdAt")),
            board_id=_pick(d, "board_id", "boardId"),
        )


@dataclass
class NetworkNode:
    """A node of the relationship graph built by the relations layer."""

    id: str
    title: str = ""
    content: str = ""
    type: str = ""
    x: float = 0.0
    y: float = 0.0
    size: float = 1.0
    color: str = ""
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    connection_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "color": self.color,
            "tags": list(self.tags),
            "metadata": dict(self.metadata),
            "connection_count": self.connection_count,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NetworkNode:
        return cls(
            id=str(d["id"]),
            title=_pick(d, "title", default=""),
            content=_pick(d, "content", default=""),
            type=_pick(d, "type", default=""),
            x=float(_pick(d, "x", default=0.0)),
            y=float(_pick(d, "y", default=0.0)),
            size=float(_pick(d, "size", default=1.0)),
            color=_pick(d, "color", default=""),
            tags=list(_pick(d, "tags", default=[])),
            metadata=dict(_pick(d, "metadata", default={})),
            connection_count=int(_pick(d, "connection_count", "connectionCount", default=0)),
            created_at=_parse_datetime(_pick(d, "created_at", "createdAt")),
            updated_at=_parse_datetime(_pick(d, "updated_at", "updatedAt")),
        )

    @classmethod
    def from_card(cls, card: Card, connection_count: int = 0) -> NetworkNode:
        """Derive a bare graph node when the relations layer supplied none."""
        return cls(
            id=card.id,
            title=card.title,
            content=card.content or "",
            type=card.column_type,
            tags=list(card.tags),
            connection_count=connection_count,
            created_at=card.created_at,
        )


@dataclass
class NetworkEdge:
    """A weighted relationship between two nodes."""

    source: str
    target: str
    strength: float = 0.0
    type: str = ""
    id: str = field(default_factory=_uid)
    color: str = ""
    width: float = 1.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "strength": self.strength,
            "type": self.type,
            "color": self.color,
            "width": self.width,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> NetworkEdge:
        return cls(
            source=str(d["source"]),
            target=str(d["target"]),
            strength=float(_pick(d, "strength", default=0.0)),
            type=_pick(d, "type", default=""),
            id=str(_pick(d, "id", default=None) or _uid()),
            color=_pick(d, "color", default=""),
            width=float(_pick(d, "width", default=1.0)),
            metadata=dict(_pick(d, "metadata", default={})),
        )


# ── Configuration ───────────────────────────────────────────────────────────

@dataclass
class ClusteringConfig:
    """Per-call clustering parameters."""

    algorithm: ClusteringAlgorithm = ClusteringAlgorithm.DBSCAN
    min_cluster_size: int = 2
    max_cluster_size: int = 20
    similarity_threshold: float = 0.5
    use_semantic_analysis: bool = True
    use_tag_similarity: bool = True
    use_content_similarity: bool = True
    weight_strength: float = 0.4
    weight_semantic: float = 0.3
    weight_tag: float = 0.3
    weight_content: float = 0.2
    min_pts: int | None = None  # HDBSCAN min_samples; derived when None
    outlier_threshold: float = 0.9  # GLOSH score above which members become outliers
    allow_single_cluster: bool = False  # HDBSCAN: may the tree root be selected
    include_memberships: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        self.algorithm = ClusteringAlgorithm.parse(self.algorithm)

    def validate(self) -> ClusteringConfig:
        """Raise ConfigurationError for out-of-range values; return self."""
        if self.min_cluster_size < 1:
            raise ConfigurationError(f"min_cluster_size must be >= 1, got {self.min_cluster_size}")
        if self.max_cluster_size < self.min_cluster_size:
            raise ConfigurationError(
                f"max_cluster_size ({self.max_cluster_size}) is below "
                f"min_cluster_size ({self.min_cluster_size})"
            )
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ConfigurationError(
                f"similarity_threshold must be in [0, 1], got {self.similarity_threshold}"
            )
        if not 0.0 <= self.outlier_threshold <= 1.0:
            raise ConfigurationError(
                f"outlier_threshold must be in [0, 1], got {self.outlier_threshold}"
            )
        for name in ("weight_strength", "weight_semantic", "weight_tag", "weight_content"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative")
        if self.min_pts is not None and self.min_pts < 1:
            raise ConfigurationError(f"min_pts must be >= 1, got {self.min_pts}")
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm.value,
            "min_cluster_size": self.min_cluster_size,
            "max_cluster_size": self.max_cluster_size,
            "similarity_threshold": self.similarity_threshold,
            "use_semantic_analysis": self.use_semantic_analysis,
            "use_tag_similarity": self.use_tag_similarity,
            "use_content_similarity": self.use_content_similarity,
            "weight_strength": self.weight_strength,
            "weight_semantic": self.weight_semantic,
            "weight_tag": self.weight_tag,
            "weight_content": self.weight_content,
            "min_pts": self.min_pts,
            "outlier_threshold": self.outlier_threshold,
            "allow_single_cluster": self.allow_single_cluster,
            "include_memberships": self.include_memberships,
            "debug": self.debug,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], base: ClusteringConfig | None = None) -> ClusteringConfig:
        """Build a config from snake_case or camelCase keys, defaulting to *base*."""
        base = base or cls()
        return cls(
            algorithm=_pick(d, "algorithm", default=base.algorithm),
            min_cluster_size=int(_pick(d, "min_cluster_size", "minClusterSize", default=base.min_cluster_size)),
            max_cluster_size=int(_pick(d, "max_cluster_size", "maxClusterSize", default=base.max_cluster_size)),
            similarity_threshold=float(
                _pick(d, "similarity_threshold", "similarityThreshold", default=base.similarity_threshold)
            ),
            use_semantic_analysis=bool(
                _pick(d, "use_semantic_analysis", "useSemanticAnalysis", default=base.use_semantic_analysis)
            ),
            use_tag_similarity=bool(
                _pick(d, "use_tag_similarity", "useTagSimilarity", default=base.use_tag_similarity)
            ),
            use_content_similarity=bool(
                _pick(d, "use_content_similarity", "useContentSimilarity", default=base.use_content_similarity)
            ),
            weight_strength=float(_pick(d, "weight_strength", "weightStrength", default=base.weight_strength)),
            weight_semantic=float(_pick(d, "weight_semantic", "weightSemantic", default=base.weight_semantic)),
            weight_tag=float(_pick(d, "weight_tag", "weightTag", default=base.weight_tag)),
            weight_content=float(_pick(d, "weight_content", "weightContent", default=base.weight_content)),
            min_pts=_pick(d, "min_pts", "minPts", default=base.min_pts),
            outlier_threshold=float(
                _pick(d, "outlier_threshold", "outlierThreshold", default=base.outlier_threshold)
            ),
            allow_single_cluster=bool(
                _pick(d, "allow_single_cluster", "allowSingleCluster", default=base.allow_single_cluster)
            ),
            include_memberships=bool(
                _pick(d, "include_memberships", "includeMemberships", default=base.include_memberships)
            ),
            debug=bool(_pick(d, "debug", default=base.debug)),
        )


# ── Pairwise similarity ─────────────────────────────────────────────────────

@dataclass
class SimilarityComponents:
    """The four per-signal scores, each in [0, 1]."""

    semantic: float = 0.0
    structural: float = 0.0
    contextual: float = 0.0
    content: float = 0.0

    def values(self) -> list[float]:
        return [self.semantic, self.structural, self.contextual, self.content]

    def to_dict(self) -> dict[str, float]:
        return {
            "semantic": self.semantic,
            "structural": self.structural,
            "contextual": self.contextual,
            "content": self.content,
        }


@dataclass(frozen=True)
class SimilarityWeights:
    """Weights applied to the components to get the overall score."""

    semantic: float
    structural: float
    contextual: float
    content: float

    @classmethod
    def generic(cls) -> SimilarityWeights:
        return cls(semantic=0.4, structural=0.3, contextual=0.1, content=0.2)

    @classmethod
    def ai_suggestion(cls) -> SimilarityWeights:
        """Profile for externally ranked suggestions; semantics dominate."""
        return cls(semantic=0.7, structural=0.1, contextual=0.1, content=0.1)

    def to_dict(self) -> dict[str, float]:
        return {
            "semantic": self.semantic,
            "structural": self.structural,
            "contextual": self.contextual,
            "content": self.content,
        }


@dataclass
class AISuggestion:
    """A relation proposed by an external ranking service."""

    similarity: float
    confidence: float | None = None
    explanation: str | None = None


@dataclass
class SimilarityScore:
    """Result of comparing two cards."""

    overall_score: float
    components: SimilarityComponents
    weights: SimilarityWeights
    confidence: float  # relation confidence, not label confidence
    explanation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "components": self.components.to_dict(),
            "weights": self.weights.to_dict(),
            "confidence": self.confidence,
            "explanation": self.explanation,
        }


# ── Clusters ────────────────────────────────────────────────────────────────

@dataclass
class ClusterLabel:
    """A human-readable name for a cluster and how it was chosen."""

    text: str
    alternatives: list[str] = field(default_factory=list)
    label_confidence: float = 0.1
    reasoning: str = ""
    strategy: str = "fallback"

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "alternatives": list(self.alternatives),
            "label_confidence": self.label_confidence,
            "reasoning": self.reasoning,
            "strategy": self.strategy,
        }


@dataclass
class SmartCluster:
    """An algorithm-agnostic cluster of board nodes."""

    id: str
    node_ids: list[str] = field(default_factory=list)
    centroid: NetworkNode | None = None
    cohesion: float = 0.0  # mean intra-cluster pairwise similarity
    separation: float = 0.0
    semantic_theme: str = "general"
    dominant_tags: list[str] = field(default_factory=list)
    dominant_types: list[str] = field(default_factory=list)
    label: ClusterLabel | None = None
    stability: float | None = None  # HDBSCAN only
    membership_strength: dict[str, float] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.node_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "node_ids": list(self.node_ids),
            "centroid_id": self.centroid.id if self.centroid else None,
            "size": self.size,
            "cohesion": self.cohesion,
            "separation": self.separation,
            "semantic_theme": self.semantic_theme,
            "dominant_tags": list(self.dominant_tags),
            "dominant_types": list(self.dominant_types),
            "label": self.label.to_dict() if self.label else None,
            "stability": self.stability,
            "membership_strength": dict(self.membership_strength),
            "metadata": dict(self.metadata),
        }


@dataclass
class ClusterQualityMetrics:
    """Aggregate quality of a partition (simplified proxies, see evaluator)."""

    silhouette_score: float = 0.0
    modularity_score: float = 0.0
    inter_cluster_distance: float = 0.0
    intra_cluster_distance: float = 0.0
    coverage_ratio: float = 0.0
    avg_cohesion: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "silhouette_score": self.silhouette_score,
            "modularity_score": self.modularity_score,
            "inter_cluster_distance": self.inter_cluster_distance,
            "intra_cluster_distance": self.intra_cluster_distance,
            "coverage_ratio": self.coverage_ratio,
            "avg_cohesion": self.avg_cohesion,
        }


@dataclass
class NodeMembership:
    """Primary and secondary cluster affinity of one node."""

    node_id: str
    primary_cluster_id: str | None = None
    secondary_cluster_ids: list[str] = field(default_factory=list)
    membership_strength: float = 0.0
    secondary_strengths: dict[str, float] = field(default_factory=dict)
    is_bridge: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_id": self.node_id,
            "primary_cluster_id": self.primary_cluster_id,
            "secondary_cluster_ids": list(self.secondary_cluster_ids),
            "membership_strength": self.membership_strength,
            "secondary_strengths": dict(self.secondary_strengths),
            "is_bridge": self.is_bridge,
        }


@dataclass
class CoverageStats:
    total_nodes: int = 0
    clustered_nodes: int = 0
    outlier_nodes: int = 0
    bridge_nodes: int = 0
    coverage_ratio: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "clustered_nodes": self.clustered_nodes,
            "outlier_nodes": self.outlier_nodes,
            "bridge_nodes": self.bridge_nodes,
            "coverage_ratio": self.coverage_ratio,
        }


@dataclass
class ClusteringResult:
    """Everything one clustering call returns."""

    clusters: list[SmartCluster] = field(default_factory=list)
    outliers: list[str] = field(default_factory=list)
    quality: ClusterQualityMetrics = field(default_factory=ClusterQualityMetrics)
    algorithm: ClusteringAlgorithm = ClusteringAlgorithm.DBSCAN
    parameters: ClusteringConfig = field(default_factory=ClusteringConfig)
    memberships: list[NodeMembership] | None = None
    coverage: CoverageStats | None = None
    diagnostics: dict[str, Any] = field(default_factory=dict)  # algorithm-specific extras

    def cluster_of(self, node_id: str) -> SmartCluster | None:
        for cluster in self.clusters:
            if node_id in cluster.node_ids:
                return cluster
        return None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "clusters": [c.to_dict() for c in self.clusters],
            "outliers": list(self.outliers),
            "quality": self.quality.to_dict(),
            "algorithm": self.algorithm.value,
            "parameters": self.parameters.to_dict(),
            "diagnostics": self.diagnostics,
        }
        if self.memberships is not None:
            d["memberships"] = [m.to_dict() for m in self.memberships]
        if self.coverage is not None:
            d["coverage"] = self.coverage.to_dict()
        return d
