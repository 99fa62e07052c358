"""Dense embeddings and cosine similarity for memory lookups."""

from __future__ import annotations

import hashlib
import math
from collections import Counter
from collections.abc import Callable, Sequence

Embedder = Callable[[str], list[float]]

DEFAULT_DIMENSION = 384


def _tokenize(text: str) -> list[str]:
    return [t for t in "".join(ch.lower() if ch.isalnum() else " " for ch in text).split() if t]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 when undefined."""
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


class HashingEmbedder:
    """Feature-hashing embedder over token counts.

    Tokens are hashed with a stable digest into ``dimension`` signed buckets
    and the result is L2-normalized, so identical texts map to identical unit
    vectors and texts without shared tokens are (nearly) orthogonal.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError("Embedding dimension must be positive.")
        self.dimension = dimension

    def _bucket(self, token: str) -> tuple[int, float]:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "big")
        sign = 1.0 if value & 1 else -1.0
        return (value >> 1) % self.dimension, sign

    def __call__(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for token, count in Counter(_tokenize(text)).items():
            index, sign = self._bucket(token)
            vector[index] += sign * count
        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            return vector
        return [v / norm for v in vector]


def generate_embedding(text: str, dimension: int = DEFAULT_DIMENSION) -> list[float]:
    """Embed text with the default hashing embedder."""
    return HashingEmbedder(dimension)(text)
