"""
Row, result and decoded-blob types shared by the codec and the vector stores.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np

Vector = Union[np.ndarray, Sequence[float]]


@dataclass
class EmbeddingRow:
    """One entry of an embedding batch."""

    identifier: str
    """Logical identity; several rows may share one (cosmetic variants)"""

    content: str
    """The exact text that was embedded"""

    embedding: Optional[Vector] = None
    """The vector representation of the content"""

    id: Optional[int] = None
    """Row id assigned by a store on insert"""


@dataclass
class SearchResult:
    """Represents a search result from a vector store."""

    identifier: str
    """Identifier of the matching row"""

    content: str
    """Content of the matching row"""

    distance: float
    """Negated inner product with the query (lower is nearer)"""


@dataclass
class DecodedEmbeddings:
    """Contents of a decoded embeddings blob."""

    count: int
    dim: int
    scales: np.ndarray
    data: np.ndarray
    rows: Optional[List[EmbeddingRow]] = None

    def vectors(self) -> np.ndarray:
        """Dequantize to a (count, dim) float32 matrix."""
        scales = np.where(self.scales == 0, np.float32(1), self.scales).astype(np.float32)
        return self.data.astype(np.float32) * scales[:, None]
