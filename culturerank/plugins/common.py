import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Iterable, Literal, TypeAlias
from ..core.numeric import ZERO_THRESHOLD, clamp01
from ..core.state import Candidate


SimilarityMethod: TypeAlias = Literal["cosine", "euclidean", "cluster"]


def _as_vec(x: ArrayLike) -> NDArray[np.float64]:
    return np.asarray(x, dtype=np.float64).reshape(-1)


def cosine(a: ArrayLike, b: ArrayLike) -> float:
    """Cosine similarity in [-1, 1]; 0 for empty, mismatched or zero-norm vectors."""
    va, vb = _as_vec(a), _as_vec(b)
    if va.size == 0 or va.size != vb.size:
        return 0.0
    denom: float = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom < ZERO_THRESHOLD:
        return 0.0
    out: float = float(np.dot(va, vb) / denom)
    return out if np.isfinite(out) else 0.0


def euclidean_similarity(a: ArrayLike, b: ArrayLike) -> float:
    va, vb = _as_vec(a), _as_vec(b)
    if va.size == 0 or va.size != vb.size:
        return 0.0
    dist: float = float(np.linalg.norm(va - vb))
    if not np.isfinite(dist):
        return 0.0
    return 1.0 / (1.0 + max(0.0, dist))


def cluster_similarity(cluster_a: str, cluster_b: str) -> float:
    return 1.0 if cluster_a == cluster_b else 0.0


def candidate_similarity(
    a: Candidate,
    b: Candidate,
    method: SimilarityMethod = "cosine",
    unit_interval: bool = True,
) -> float:
    """Similarity between two candidates; falls back to cluster identity without embeddings.

    With `unit_interval` cosine is shifted into [0, 1], otherwise it stays raw in [-1, 1].
    """
    ea, eb = a.features.embedding, b.features.embedding
    if method == "cluster" or ea is None or eb is None:
        return cluster_similarity(a.cluster_id, b.cluster_id)
    if method == "euclidean":
        return euclidean_similarity(ea, eb)
    raw: float = cosine(ea, eb)
    if not unit_interval:
        return raw
    return clamp01((raw + 1.0) / 2.0)


class SimilarityCache:
    """Pairwise similarity memo keyed by the unordered (min, max) item-key pair.

    Lives for exactly one rerank call.
    """

    __slots__ = ("method", "unit_interval", "_memo")

    def __init__(self, method: SimilarityMethod = "cosine", unit_interval: bool = True):
        self.method: SimilarityMethod = method
        self.unit_interval: bool = unit_interval
        self._memo: dict[tuple[str, str], float] = {}

    def __len__(self) -> int:
        return len(self._memo)

    def __call__(self, a: Candidate, b: Candidate) -> float:
        key = (
            (a.item_key, b.item_key)
            if a.item_key <= b.item_key
            else (b.item_key, a.item_key)
        )
        sim = self._memo.get(key)
        if sim is None:
            sim = candidate_similarity(a, b, self.method, self.unit_interval)
            self._memo[key] = sim
        return sim

    def max_similarity(self, cand: Candidate, selected: Iterable[Candidate]) -> float:
        best: float = 0.0
        for s in selected:
            best = max(best, self(cand, s))
        return best
