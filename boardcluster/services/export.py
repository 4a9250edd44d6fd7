"""Export a ClusteringResult as JSON or CSV."""

from __future__ import annotations

import csv
import io
import json

from boardcluster.domain.models import ClusteringResult

CSV_COLUMNS = ["node_id", "cluster_id", "cluster_label", "is_outlier", "membership_strength"]


def to_json(result: ClusteringResult, *, indent: int | None = 2) -> str:
    return json.dumps(result.to_dict(), indent=indent, ensure_ascii=False)


def to_csv(result: ClusteringResult) -> str:
    """One row per node: clustered nodes first (by cluster), then outliers."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for cluster in result.clusters:
        label = cluster.label.text if cluster.label else ""
        for nid in cluster.node_ids:
            strength = cluster.membership_strength.get(nid, 1.0)
            writer.writerow([nid, cluster.id, label, "false", f"{strength:.4f}"])
    for nid in result.outliers:
        writer.writerow([nid, "", "", "true", f"{0.0:.4f}"])
    return buf.getvalue()
