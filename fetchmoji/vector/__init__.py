"""
Vector layer: int8 embeddings codec, embedding providers and vector stores.
"""

from .index import IVectorStore, SimpleInMemoryVectorStore, rank_results
from .faiss_store import FaissVectorStore
from .types import EmbeddingRow, SearchResult, DecodedEmbeddings
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding
from .codec import encode, decode

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'FaissVectorStore',
    'rank_results',
    'EmbeddingRow',
    'SearchResult',
    'DecodedEmbeddings',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'encode',
    'decode',
]
