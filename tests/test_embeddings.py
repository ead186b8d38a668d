"""
Embedding provider tests.
"""

import numpy as np
import pytest

from fetchmoji.vector.embeddings import (
    DeterministicHashEmbedding,
    IEmbeddingProvider,
    SentenceTransformerEmbedding,
)


def test_embedding_interface():
    """Test that the embedding provider implements the interface correctly."""
    embedder = DeterministicHashEmbedding(dimension=384)

    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384


def test_deterministic_embedding():
    """Test that the same input always produces the same output."""
    embedder = DeterministicHashEmbedding(dimension=384)

    vector1 = embedder.embed_text("Hello, world!")
    vector2 = embedder.embed_text("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == 384


def test_consistent_output_across_instances():
    text = "This is a test string"

    assert DeterministicHashEmbedding().embed_text(text) == DeterministicHashEmbedding().embed_text(text)


def test_embeddings_are_unit_length():
    embedder = DeterministicHashEmbedding(dimension=128)

    vector = np.array(embedder.embed_text("🎉 party celebration confetti"))

    assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-5)


def test_empty_text_is_zero_vector():
    embedder = DeterministicHashEmbedding(dimension=16)

    assert embedder.embed_text("") == [0.0] * 16


def test_case_insensitive():
    embedder = DeterministicHashEmbedding(dimension=384)

    assert embedder.embed_text("Shout") == embedder.embed_text("shout")


def test_shared_tokens_are_similar():
    embedder = DeterministicHashEmbedding(dimension=4096)

    query = np.array(embedder.embed_text("shout"))
    related = np.array(embedder.embed_text("📣 megaphone shout"))
    unrelated = np.array(embedder.embed_text("🍕 pizza food"))

    assert float(query @ related) > 0.5
    assert float(query @ related) > float(query @ unrelated)


def test_embed_texts_returns_matrix():
    embedder = DeterministicHashEmbedding(dimension=32)

    matrix = embedder.embed_texts(["one", "two", "three"])

    assert matrix.shape == (3, 32)
    assert matrix.dtype == np.float32
    assert np.allclose(matrix[1], embedder.embed_text("two"))


def test_embed_texts_empty():
    assert DeterministicHashEmbedding(dimension=32).embed_texts([]).shape == (0, 32)


def test_sentence_transformer_loads_lazily():
    embedder = SentenceTransformerEmbedding("thenlper/gte-small")

    assert embedder.loaded is False
    embedder.dispose()
    assert embedder.loaded is False


def test_sentence_transformer_dimension():
    """gte-small produces 384 dimension unit vectors."""
    pytest.importorskip("sentence_transformers")
    embedder = SentenceTransformerEmbedding("thenlper/gte-small")
    try:
        dimension = embedder.get_dimension()
    except Exception as e:
        pytest.skip(f"model unavailable: {e}")

    vector = np.array(embedder.embed_text("hello"))

    assert dimension == 384
    assert vector.shape == (384,)
    assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-3)
    embedder.dispose()
    assert embedder.loaded is False
