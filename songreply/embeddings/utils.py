"""
Vector helpers shared by the embedders and the in-memory store.
"""

from typing import Sequence

import numpy as np


def to_array(vector: Sequence[float]) -> np.ndarray:
    return np.asarray(vector, dtype=np.float32)


def l2_norm(vector: Sequence[float]) -> float:
    return float(np.linalg.norm(to_array(vector)))


def normalize(vector: Sequence[float]) -> np.ndarray:
    """Scale a vector to unit length; zero vectors are returned unchanged."""
    arr = to_array(vector)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return arr.copy()
    return arr / norm


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Raises:
        ValueError: If the vectors have different widths
    """
    va, vb = to_array(a), to_array(b)
    if va.shape != vb.shape:
        raise ValueError("Vectors must have the same dimensions")
    na, nb = np.linalg.norm(va), np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    return float(np.dot(va, vb) / (na * nb))


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine distance as computed by pgvector's `<=>` operator."""
    return 1.0 - cosine_similarity(a, b)


def to_vector_literal(vector: Sequence[float]) -> str:
    """Render a vector in pgvector text form: `[0.1,0.2,...]`."""
    return "[" + ",".join(repr(float(x)) for x in vector) + "]"
