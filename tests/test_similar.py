"""Tests for similar-document recommendations."""

import pytest

from conftest import add_document
from docsift.errors import DocumentNotFoundError
from docsift.search import SimilarityRecommender
from docsift.storage import DuckDBStorage, ProcessingStatus


def test_recommend_orders_neighbors_by_similarity(storage: DuckDBStorage) -> None:
    target = add_document(storage, title="target", text="t", embeddings=[[1.0, 0.0], [0.0, 1.0]])
    add_document(storage, title="same", text="s", embeddings=[[1.0, 0.0]])
    add_document(storage, title="close", text="c", embeddings=[[1.0, 1.0]])
    add_document(storage, title="opposite", text="o", embeddings=[[-1.0, 0.0]])
    add_document(storage, title="unembedded", text="u", embeddings=[None, [1.0, 0.0]])
    add_document(
        storage,
        title="pending",
        text="p",
        embeddings=[[1.0, 0.0]],
        status=ProcessingStatus.TAGGING,
    )

    neighbors = SimilarityRecommender(storage).recommend(target.id)

    assert [neighbor.document.title for neighbor in neighbors] == [
        "same",
        "close",
        "opposite",
    ]
    assert neighbors[0].score == pytest.approx(1.0)
    assert neighbors[2].score == pytest.approx(-1.0)


def test_recommend_respects_limit(storage: DuckDBStorage) -> None:
    target = add_document(storage, title="target", text="t", embeddings=[[1.0, 0.0]])
    for index in range(4):
        add_document(storage, title=f"n{index}", text="n", embeddings=[[1.0, float(index)]])

    neighbors = SimilarityRecommender(storage).recommend(target.id, limit=2)

    assert [neighbor.document.title for neighbor in neighbors] == ["n0", "n1"]


def test_recommend_without_reference_vector(storage: DuckDBStorage) -> None:
    target = add_document(storage, title="target", text="t", embeddings=[None])
    add_document(storage, title="other", text="o", embeddings=[[1.0, 0.0]])

    assert SimilarityRecommender(storage).recommend(target.id) == []


def test_recommend_unknown_document(storage: DuckDBStorage) -> None:
    with pytest.raises(DocumentNotFoundError):
        SimilarityRecommender(storage).recommend("doc_missing")
