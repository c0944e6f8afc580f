"""Cosine similarity and top-K ranking over stored embeddings."""
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union
import numpy as np

from ruborag.errors import InvalidArgument

VectorLike = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit."""

    source_id: str
    chunk_index: int
    score: float


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine similarity of two vectors.

    Accumulates in float64 and returns the value rounded to float32
    precision. Vectors of different length, empty vectors and zero-norm
    vectors all score 0.
    """
    x = np.asarray(a, dtype=np.float64).ravel()
    y = np.asarray(b, dtype=np.float64).ravel()

    if x.size == 0 or x.size != y.size:
        return 0.0

    norm_x = float(np.dot(x, x))
    norm_y = float(np.dot(y, y))
    if norm_x == 0.0 or norm_y == 0.0:
        return 0.0

    score = float(np.dot(x, y)) / (np.sqrt(norm_x) * np.sqrt(norm_y))
    return float(np.float32(score))


def rank(query_vector: VectorLike, records: Iterable, k: int) -> List[SearchResult]:
    """Score every record against the query and return the top ``k``.

    Args:
        query_vector: Query embedding
        records: Objects with ``source_id``, ``chunk_index`` and ``vector``
        k: Maximum number of results (clamped to the number of records)

    Returns:
        Results by descending score; equal scores are ordered by
        source_id, then chunk_index

    Raises:
        InvalidArgument: If k is negative
    """
    if k < 0:
        raise InvalidArgument(f"k must be non-negative, got {k}")

    results = [
        SearchResult(
            source_id=record.source_id,
            chunk_index=record.chunk_index,
            score=cosine_similarity(query_vector, record.vector),
        )
        for record in records
    ]

    results.sort(key=lambda r: (-r.score, r.source_id, r.chunk_index))
    return results[: min(k, len(results))]
