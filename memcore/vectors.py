"""
Vector math over plain float lists.
"""

import math
from collections.abc import Sequence


def normalize(v: Sequence[float]) -> list[float]:
    """Scale ``v`` to unit Euclidean length.

    A zero vector is returned unchanged (all zeros).
    """
    norm = math.sqrt(sum(x * x for x in v))
    if norm == 0:
        return list(v)
    return [x / norm for x in v]


def similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product over the shared prefix of ``a`` and ``b``.

    No re-normalization happens here: callers pass unit vectors when they
    want cosine similarity. Empty input gives 0.
    """
    n = min(len(a), len(b))
    return float(sum(a[i] * b[i] for i in range(n)))
