"""Embedding and cosine similarity tests."""

from __future__ import annotations

import math

import pytest

from memory.similarity import HashingEmbedder, cosine_similarity, generate_embedding


def test_cosine_of_vector_with_itself_is_one() -> None:
    v = [0.3, -1.2, 4.0, 0.0, 2.5]
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_cosine_is_symmetric() -> None:
    a = [1.0, 2.0, 3.0]
    b = [-2.0, 0.5, 1.0]
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_cosine_undefined_cases_return_zero() -> None:
    assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
    assert cosine_similarity([], []) == 0.0


def test_cosine_of_opposite_vectors_is_minus_one() -> None:
    assert cosine_similarity([1.0, -2.0], [-1.0, 2.0]) == pytest.approx(-1.0)


def test_hashing_embedder_is_deterministic_and_normalized() -> None:
    embed = HashingEmbedder(dimension=64)
    first = embed("Deploy the payment service")
    second = embed("deploy   the PAYMENT service!")

    assert len(first) == 64
    assert first == second
    assert math.sqrt(sum(v * v for v in first)) == pytest.approx(1.0)


def test_empty_text_embeds_to_zero_vector() -> None:
    vector = generate_embedding("", dimension=16)
    assert vector == [0.0] * 16


def test_unrelated_texts_are_less_similar_than_related_ones() -> None:
    base = generate_embedding("rotate the database credentials every week")
    related = generate_embedding("rotate database credentials weekly")
    unrelated = generate_embedding("bake a chocolate cake")

    assert cosine_similarity(base, related) > cosine_similarity(base, unrelated)
    assert cosine_similarity(base, unrelated) < 0.75


def test_embedder_rejects_non_positive_dimension() -> None:
    with pytest.raises(ValueError):
        HashingEmbedder(dimension=0)
