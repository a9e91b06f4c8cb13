from __future__ import annotations

from pathlib import Path
from typing import Sequence

from ._plotting_env import configure_plotting_env

configure_plotting_env()

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import dendrogram

from .records import FragmentRecord


def _save_placeholder(path: Path, title: str, subtitle: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig = plt.figure(figsize=(8, 5))
    ax = fig.add_subplot(111)
    ax.axis("off")
    ax.text(0.5, 0.62, title, ha="center", va="center", fontsize=14, fontweight="bold")
    ax.text(0.5, 0.45, subtitle, ha="center", va="center", fontsize=10, wrap=True)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)


def plot_fragment_histogram(
    records: Sequence[FragmentRecord], out_path: str | Path, *, bins: int = 20, title: str = ""
) -> Path:
    out = Path(out_path)
    sizes: dict[str, list[float]] = {}
    for record in records:
        if record.fragment_size is not None:
            sizes.setdefault(record.sample_label, []).append(record.fragment_size)
    if not sizes:
        _save_placeholder(out, title or "Fragment sizes", "No annotated fragments.")
        return out

    out.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(9, 5))
    for label, values in sizes.items():
        ax.hist(values, bins=bins, alpha=0.5, label=label)
    ax.set_xlabel("Estimated fragment size")
    ax.set_ylabel("Count")
    ax.set_title(title or "Fragment size distribution")
    if len(sizes) <= 12:
        ax.legend(fontsize=8)
    fig.tight_layout()
    fig.savefig(out)
    plt.close(fig)
    return out


def plot_distance_heatmap(distances: pd.DataFrame, out_path: str | Path) -> Path:
    out = Path(out_path)
    if distances.empty:
        _save_placeholder(out, "Label distances", "No labels to compare.")
        return out

    out.parent.mkdir(parents=True, exist_ok=True)
    labels = [str(x) for x in distances.index]
    n = len(labels)
    fig, ax = plt.subplots(figsize=(max(5, 0.5 * n + 3), max(4, 0.5 * n + 2)))
    im = ax.imshow(distances.to_numpy(dtype=float), cmap="viridis")
    ax.set_xticks(np.arange(n))
    ax.set_yticks(np.arange(n))
    ax.set_xticklabels(labels, rotation=90, fontsize=8)
    ax.set_yticklabels(labels, fontsize=8)
    ax.set_title("Euclidean distance (mean, std of fragment size)")
    fig.colorbar(im, ax=ax)
    fig.tight_layout()
    fig.savefig(out)
    plt.close(fig)
    return out


def plot_dendrogram(
    linkage_matrix: np.ndarray | None, labels: Sequence[str], out_path: str | Path
) -> Path:
    out = Path(out_path)
    if linkage_matrix is None:
        _save_placeholder(out, "Dendrogram", "Fewer than two labels; nothing to cluster.")
        return out

    out.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(max(6, 0.4 * len(labels) + 3), 5))
    dendrogram(linkage_matrix, labels=list(labels), ax=ax, leaf_rotation=90)
    ax.set_ylabel("Distance")
    ax.set_title("Hierarchical clustering of sample labels")
    fig.tight_layout()
    fig.savefig(out)
    plt.close(fig)
    return out
