"""
Vector store contract and the in-memory implementation.

Both stores share one ranking rule: distance is the negated inner product,
rows are kept while ``distance < -match_threshold``, only the nearest row per
identifier survives, and results are sorted by distance and truncated.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np

from fetchmoji.core.errors import DimensionMismatch, ValidationError

from .embeddings import IEmbeddingProvider
from .types import EmbeddingRow, SearchResult, Vector

Candidate = Tuple[float, EmbeddingRow]


def rank_results(candidates: Iterable[Candidate], limit: int) -> List[SearchResult]:
    """
    Keep the nearest row per identifier, sort by distance and truncate.

    Ties on distance fall back to row id, so the earliest inserted row wins.
    """
    best = {}
    for distance, row in candidates:
        key = (distance, row.id if row.id is not None else 0)
        current = best.get(row.identifier)
        if current is None or key < current[0]:
            best[row.identifier] = (key, row)

    ranked = sorted(best.values(), key=lambda item: item[0])
    return [
        SearchResult(identifier=row.identifier, content=row.content, distance=float(key[0]))
        for key, row in ranked[:max(limit, 0)]
    ]


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    dimension: int
    embedder: Optional[IEmbeddingProvider]

    @abstractmethod
    def init_schema(self) -> None:
        """Create row storage and the inner-product index. Idempotent."""
        pass

    @abstractmethod
    def insert_embeddings(self, rows: List[EmbeddingRow]) -> List[EmbeddingRow]:
        """Insert rows, embedding any that lack a vector, and return the stored rows."""
        pass

    @abstractmethod
    def search_embeddings(
        self,
        query: Union[str, Vector],
        match_threshold: float = 0.8,
        limit: int = 20,
    ) -> List[SearchResult]:
        """Search by text or vector and return identifier-deduplicated results."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Number of stored rows."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all records from the store."""
        pass


class BaseVectorStore(IVectorStore):
    """Validation, batching and ranking shared by the concrete stores."""

    def __init__(self, dimension: int = 384, embedder: IEmbeddingProvider = None, batch_size: int = 256):
        self.dimension = dimension
        self.embedder = embedder
        self.batch_size = batch_size

    def check_vector(self, vector: Vector) -> np.ndarray:
        """Validate a vector against the store dimension."""
        try:
            array = np.asarray(vector, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"embedding must be numeric: {e}") from e
        if array.ndim != 1:
            raise ValidationError(f"embedding must be one-dimensional, got shape {array.shape}")
        if array.shape[0] != self.dimension:
            raise DimensionMismatch(self.dimension, array.shape[0])
        if not np.all(np.isfinite(array)):
            raise ValidationError("embedding has non-finite values")
        return array

    def query_vector(self, query: Union[str, Vector]) -> np.ndarray:
        """Resolve a text or vector query to a validated vector."""
        if isinstance(query, str):
            if self.embedder is None:
                raise ValidationError("text queries need an embedding provider")
            return self.check_vector(self.embedder.embed_text(query))
        return self.check_vector(query)

    def _embed_missing(self, rows: List[EmbeddingRow]) -> List[EmbeddingRow]:
        missing = [row for row in rows if row.embedding is None]
        if missing:
            if self.embedder is None:
                raise ValidationError("rows without embeddings need an embedding provider")
            vectors = self.embedder.embed_texts([row.content for row in missing])
            for row, vector in zip(missing, vectors):
                row.embedding = vector
        return rows

    def insert_embeddings(self, rows: List[EmbeddingRow]) -> List[EmbeddingRow]:
        stored = []
        for start in range(0, len(rows), self.batch_size):
            batch = self._embed_missing(list(rows[start:start + self.batch_size]))
            vectors = np.vstack([self.check_vector(row.embedding) for row in batch])
            stored.extend(self._add_rows(batch, vectors))
        return stored

    def search_embeddings(self, query, match_threshold: float = 0.8, limit: int = 20) -> List[SearchResult]:
        vector = self.query_vector(query)
        if self.count() == 0:
            return []
        return rank_results(self._candidates(vector, float(match_threshold)), int(limit))

    @abstractmethod
    def _add_rows(self, rows: List[EmbeddingRow], vectors: np.ndarray) -> List[EmbeddingRow]:
        pass

    @abstractmethod
    def _candidates(self, vector: np.ndarray, match_threshold: float) -> Iterable[Candidate]:
        pass


class SimpleInMemoryVectorStore(BaseVectorStore):
    """In-memory store scanning a numpy matrix with inner products."""

    def __init__(self, dimension: int = 384, embedder: IEmbeddingProvider = None, batch_size: int = 256):
        super().__init__(dimension=dimension, embedder=embedder, batch_size=batch_size)
        self._rows: List[EmbeddingRow] = []
        self._chunks: List[np.ndarray] = []
        self._matrix = None
        self._initialized = False

    def init_schema(self) -> None:
        self._initialized = True

    def _add_rows(self, rows, vectors):
        stored = []
        for row, vector in zip(rows, vectors):
            stored_row = EmbeddingRow(
                identifier=row.identifier,
                content=row.content,
                embedding=vector,
                id=len(self._rows) + 1,
            )
            self._rows.append(stored_row)
            stored.append(stored_row)
        self._chunks.append(vectors)
        self._matrix = None
        return stored

    def _candidates(self, vector, match_threshold):
        if self._matrix is None:
            self._matrix = np.vstack(self._chunks)
        distances = -(self._matrix @ vector)
        for index in np.nonzero(distances < -match_threshold)[0]:
            yield float(distances[index]), self._rows[index]

    def count(self) -> int:
        return len(self._rows)

    def clear(self) -> None:
        self._rows.clear()
        self._chunks.clear()
        self._matrix = None
