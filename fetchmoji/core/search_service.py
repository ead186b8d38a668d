"""
Store emoji documents and run ranked emoji searches against a vector store.
"""

import time
from typing import Any, Dict, List

from fetchmoji.util.logging import logger
from fetchmoji.vector.index import IVectorStore
from fetchmoji.vector.types import EmbeddingRow

from . import config
from .emoji import EmojiRow, emoji_content


def store_docs(store: IVectorStore, rows: List[EmbeddingRow]) -> List[EmbeddingRow]:
    """Insert rows into the store, embedding any without a vector."""
    return store.insert_embeddings(rows)


def store_docs_from_emoji_index(store: IVectorStore, emoji_rows: List[EmojiRow]) -> List[EmbeddingRow]:
    """Embed and store one row per emoji."""
    rows = [
        EmbeddingRow(identifier=row.id, content=emoji_content(row))
        for row in emoji_rows
    ]
    stored = store_docs(store, rows)
    logger.log_store_operation("store_docs", {"rows": len(stored)})
    return stored


def search(
    store: IVectorStore,
    term: str,
    match_threshold: float = None,
    limit: int = None,
) -> List[Dict[str, Any]]:
    """
    Search the store for emojis matching a free-text term.

    Args:
        store: Initialized vector store with an embedding provider
        term: The search text
        match_threshold: Minimum inner product, defaults to config
        limit: Maximum number of results, defaults to config

    Returns:
        List of dicts with 'emoji', 'identifier', 'content', 'distance' and 1-based 'rank'
    """
    if match_threshold is None:
        match_threshold = config.MATCH_THRESHOLD
    if limit is None:
        limit = config.SEARCH_LIMIT

    start = time.perf_counter()
    results = store.search_embeddings(term, match_threshold=match_threshold, limit=limit)
    duration_ms = (time.perf_counter() - start) * 1000

    ranked = [
        {
            "emoji": result.identifier,
            "identifier": result.identifier,
            "content": result.content,
            "distance": result.distance,
            "rank": rank,
        }
        for rank, result in enumerate(results, start=1)
    ]
    logger.log_search(term, [item["identifier"] for item in ranked], duration_ms)
    return ranked
