"""
Embedding providers: a sentence-transformers model for real queries and a
deterministic feature-hashing provider for tests and offline builds.
"""

from abc import ABC, abstractmethod
import hashlib
import re
from typing import List

import numpy as np

_TOKEN_RE = re.compile(r"\w+|[^\w\s]", re.UNICODE)


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    def embed_texts(self, texts: List[str]) -> np.ndarray:
        """
        Embed multiple texts into vectors.

        Returns:
            Numpy array of shape (len(texts), embedding_dim)
        """
        if not texts:
            return np.zeros((0, self.get_dimension()), dtype=np.float32)
        return np.array([self.embed_text(text) for text in texts], dtype=np.float32)

    def dispose(self) -> None:
        """Release model resources."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic feature-hashing embedding provider.

    Every token (lowercased word or standalone symbol, so emoji glyphs count)
    is hashed to a bucket and a sign, and the accumulated vector is
    L2-normalized. Texts sharing tokens get a positive inner product, which is
    enough for reproducible search tests without downloading a model.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = np.zeros(self.dimension, dtype=np.float64)
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimension
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.astype(np.float32).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Defaults to gte-small (384 dimensions) with mean pooling and unit-length
    output, so inner product equals cosine similarity.
    """

    def __init__(self, model_name: str = "thenlper/gte-small", device: str = None):
        self.model_name = model_name
        self.device = device
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name, device=self.device)
        return self._model

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False, normalize_embeddings=True)
        return embedding.tolist()

    def embed_texts(self, texts: List[str]) -> np.ndarray:
        if not texts:
            return np.zeros((0, self.get_dimension()), dtype=np.float32)
        embeddings = self.model.encode(texts, convert_to_tensor=False, normalize_embeddings=True)
        return np.asarray(embeddings, dtype=np.float32)

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension

    def dispose(self) -> None:
        # Dropping the model lets torch release its weights
        self._model = None
