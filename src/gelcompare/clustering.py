from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import fcluster, linkage
from scipy.spatial.distance import pdist, squareform
from sklearn.cluster import DBSCAN, KMeans

from .records import FragmentRecord

logger = logging.getLogger(__name__)

SUMMARY_FEATURES = ("mean", "std")


@dataclass
class ClusteringResult:
    summary: pd.DataFrame
    distances: pd.DataFrame
    linkage_matrix: np.ndarray | None
    hierarchical: dict[str, int]
    kmeans: dict[str, int]
    dbscan: dict[str, int | None]
    warnings: tuple[str, ...] = ()

    def assignments(self) -> pd.DataFrame:
        labels = list(self.summary.index)
        return pd.DataFrame(
            {
                "sample_label": labels,
                "hierarchical": [self.hierarchical.get(x) for x in labels],
                "kmeans": [self.kmeans.get(x) for x in labels],
                "dbscan": [self.dbscan.get(x) for x in labels],
            }
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "labels": [str(x) for x in self.summary.index],
            "summary": [
                {
                    "sample_label": str(label),
                    "mean": float(row["mean"]),
                    "std": float(row["std"]),
                    "n": int(row["n"]),
                }
                for label, row in self.summary.iterrows()
            ],
            "distance_matrix": self.distances.to_numpy().tolist(),
            "hierarchical": dict(self.hierarchical),
            "kmeans": dict(self.kmeans),
            "dbscan": dict(self.dbscan),
            "warnings": list(self.warnings),
        }


def label_summary(records: Sequence[FragmentRecord]) -> pd.DataFrame:
    """Mean, sample standard deviation and count of fragment size per label."""
    rows = []
    for record in records:
        if record.fragment_size is None:
            raise ValueError("label_summary requires annotated records.")
        rows.append({"sample_label": record.sample_label, "fragment_size": record.fragment_size})
    if not rows:
        return pd.DataFrame(columns=["mean", "std", "n"], index=pd.Index([], name="sample_label"))
    df = pd.DataFrame(rows)
    grouped = df.groupby("sample_label", sort=False)["fragment_size"]
    summary = pd.DataFrame(
        {
            "mean": grouped.mean(),
            "std": grouped.std(ddof=1).fillna(0.0),
            "n": grouped.size(),
        }
    )
    return summary


def distance_matrix(
    summary: pd.DataFrame, features: Sequence[str] = SUMMARY_FEATURES
) -> pd.DataFrame:
    """Symmetric Euclidean distance between labels over their summary features."""
    labels = list(summary.index)
    n = len(labels)
    if n < 2:
        matrix = np.zeros((n, n), dtype=float)
    else:
        x = summary.loc[:, list(features)].to_numpy(dtype=float)
        matrix = squareform(pdist(x, metric="euclidean"))
    return pd.DataFrame(matrix, index=labels, columns=labels)


def hierarchical_clusters(
    distances: pd.DataFrame,
    n_clusters: int,
    *,
    method: str = "average",
) -> tuple[dict[str, int], np.ndarray | None]:
    if n_clusters <= 0:
        raise ValueError("n_clusters must be > 0")
    labels = [str(x) for x in distances.index]
    if len(labels) < 2:
        return {label: 1 for label in labels}, None
    condensed = squareform(distances.to_numpy(dtype=float), checks=True)
    z = linkage(condensed, method=method)
    ids = fcluster(z, t=n_clusters, criterion="maxclust")
    return {label: int(cid) for label, cid in zip(labels, ids)}, z


def kmeans_clusters(
    summary: pd.DataFrame,
    n_clusters: int = 3,
    *,
    seed: int = 0,
    features: Sequence[str] = SUMMARY_FEATURES,
) -> tuple[dict[str, int], list[str]]:
    if n_clusters <= 0:
        raise ValueError("n_clusters must be > 0")
    labels = [str(x) for x in summary.index]
    warnings: list[str] = []
    if len(labels) < 2:
        return {label: 1 for label in labels}, warnings
    k = n_clusters
    if k > len(labels):
        k = len(labels)
        warnings.append(
            f"k-means: requested {n_clusters} clusters but only {len(labels)} labels; using {k}."
        )
    x = summary.loc[:, list(features)].to_numpy(dtype=float)
    fitted = KMeans(n_clusters=k, n_init=10, random_state=seed).fit(x)
    return {label: int(cid) for label, cid in zip(labels, fitted.labels_)}, warnings


def dbscan_clusters(
    summary: pd.DataFrame,
    eps: float,
    min_samples: int,
    *,
    features: Sequence[str] = SUMMARY_FEATURES,
) -> dict[str, int | None]:
    """Density-based clusters; labels that fall in no cluster map to None."""
    if eps <= 0:
        raise ValueError("eps must be > 0")
    if min_samples <= 0:
        raise ValueError("min_samples must be > 0")
    labels = [str(x) for x in summary.index]
    if not labels:
        return {}
    x = summary.loc[:, list(features)].to_numpy(dtype=float)
    ids = DBSCAN(eps=eps, min_samples=min_samples).fit(x).labels_
    return {label: (None if int(cid) < 0 else int(cid)) for label, cid in zip(labels, ids)}


def cluster_labels(
    records: Sequence[FragmentRecord],
    *,
    n_hierarchical: int = 3,
    linkage_method: str = "average",
    n_kmeans: int = 3,
    kmeans_seed: int = 0,
    dbscan_eps: float = 0.5,
    dbscan_min_samples: int = 2,
) -> ClusteringResult:
    summary = label_summary(records)
    distances = distance_matrix(summary)
    hier, z = hierarchical_clusters(distances, n_hierarchical, method=linkage_method)
    km, warnings = kmeans_clusters(summary, n_kmeans, seed=kmeans_seed)
    db = dbscan_clusters(summary, dbscan_eps, dbscan_min_samples)
    n_noise = sum(1 for cid in db.values() if cid is None)
    if n_noise:
        logger.info("DBSCAN marked %d of %d labels as noise", n_noise, len(db))
    for msg in warnings:
        logger.warning(msg)
    return ClusteringResult(
        summary=summary,
        distances=distances,
        linkage_matrix=z,
        hierarchical=hier,
        kmeans=km,
        dbscan=db,
        warnings=tuple(warnings),
    )
