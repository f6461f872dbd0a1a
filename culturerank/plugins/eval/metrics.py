import numpy as np
from numpy.typing import NDArray
from typing import Sequence
from ...core.state import Candidate
from ..common import SimilarityMethod, candidate_similarity


def cluster_entropy(cluster_ids: Sequence[str]) -> float:
    """Shannon entropy (bits) of the cluster distribution."""
    if not cluster_ids:
        return 0.0
    _, counts = np.unique(np.asarray(cluster_ids, dtype=object), return_counts=True)
    p: NDArray[np.float64] = (counts / counts.sum()).astype(np.float64)
    return float(-(p * np.log2(p)).sum())


def effective_clusters(cluster_ids: Sequence[str]) -> float:
    # 2 ** entropy in bits
    if not cluster_ids:
        return 0.0
    return float(2.0 ** cluster_entropy(cluster_ids))


def max_cluster_ratio(cluster_ids: Sequence[str]) -> float:
    if not cluster_ids:
        return 0.0
    _, counts = np.unique(np.asarray(cluster_ids, dtype=object), return_counts=True)
    return float(counts.max() / len(cluster_ids))


def average_pairwise_distance(
    items: Sequence[Candidate], method: SimilarityMethod = "cosine"
) -> float:
    if len(items) < 2:
        return 0.0
    dists: list[float] = []
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            dists.append(1.0 - candidate_similarity(items[i], items[j], method))
    return float(np.mean(dists))


def diversity_metrics(
    items: Sequence[Candidate], method: SimilarityMethod = "cosine"
) -> dict[str, float]:
    """Slate diagnostics: cluster entropy, average pairwise distance, unique clusters, max cluster share."""
    clusters: list[str] = [c.cluster_id for c in items]
    return {
        "cluster_entropy": cluster_entropy(clusters),
        "effective_clusters": effective_clusters(clusters),
        "average_pairwise_distance": average_pairwise_distance(items, method),
        "unique_clusters": float(len(set(clusters))),
        "max_cluster_ratio": max_cluster_ratio(clusters),
    }
