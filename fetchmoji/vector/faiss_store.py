"""
FAISS-backed vector store.

Rows live in SQLite (see ``fetchmoji.core.db``) and vectors in a flat
inner-product index whose positions map back to row ids.
"""

from typing import List

import numpy as np

from fetchmoji.core import db
from fetchmoji.core.errors import StoreInitError
from fetchmoji.util.logging import logger

from .embeddings import IEmbeddingProvider
from .index import BaseVectorStore
from .types import EmbeddingRow


class FaissVectorStore(BaseVectorStore):
    """FAISS-backed implementation of IVectorStore."""

    def __init__(
        self,
        dimension: int = 384,
        db_path: str = ":memory:",
        embedder: IEmbeddingProvider = None,
        batch_size: int = 256,
    ):
        """
        Initialize FAISS vector store.

        Args:
            dimension: Dimension of the vectors (default: 384 for gte-small)
            db_path: SQLite file holding the rows, or ":memory:"
            embedder: Provider used for text queries and rows without vectors
            batch_size: Rows per insert transaction
        """
        super().__init__(dimension=dimension, embedder=embedder, batch_size=batch_size)
        self.db_path = db_path
        self.index = None
        self._conn = None
        self._row_ids: List[int] = []

    @classmethod
    def open(cls, db_path: str, dimension: int = 384, embedder: IEmbeddingProvider = None) -> "FaissVectorStore":
        """Open an existing database file and rebuild its index."""
        store = cls(dimension=dimension, db_path=db_path, embedder=embedder)
        store.init_schema()
        return store

    def init_schema(self) -> None:
        if self.index is not None:
            return

        try:
            import faiss
            conn = db.connect(self.db_path)
            db.init_schema(conn)
            index = faiss.IndexFlatIP(self.dimension)

            row_ids = []
            vectors = []
            for row_id, _identifier, _content, vector in db.iter_rows(conn):
                if vector.shape[0] != self.dimension:
                    raise ValueError(
                        f"stored vector {row_id} has dimension {vector.shape[0]}, expected {self.dimension}"
                    )
                row_ids.append(row_id)
                vectors.append(vector)
            if vectors:
                index.add(np.vstack(vectors).astype(np.float32))
        except Exception as e:
            logger.log_store_operation("init_schema", {"db_path": self.db_path, "error": str(e)}, status="failed")
            raise StoreInitError(f"vector store failed to start: {e}") from e

        self._conn = conn
        self.index = index
        self._row_ids = row_ids
        logger.log_store_operation("init_schema", {"db_path": self.db_path, "rows": len(row_ids)})

    def _add_rows(self, rows, vectors):
        self.init_schema()
        ids = db.insert_rows(
            self._conn,
            [(row.identifier, row.content, vector) for row, vector in zip(rows, vectors)],
        )
        self.index.add(np.ascontiguousarray(vectors, dtype=np.float32))
        self._row_ids.extend(ids)

        return [
            EmbeddingRow(identifier=row.identifier, content=row.content, embedding=vector, id=row_id)
            for row, vector, row_id in zip(rows, vectors, ids)
        ]

    def _candidates(self, vector, match_threshold):
        query = np.ascontiguousarray(vector.reshape(1, -1), dtype=np.float32)
        # Range search on inner product keeps scores strictly above the radius
        lims, scores, positions = self.index.range_search(query, match_threshold)
        start, end = lims[0], lims[1]
        hits = [
            (float(score), self._row_ids[position])
            for score, position in zip(scores[start:end], positions[start:end])
        ]

        rows = db.get_rows(self._conn, [row_id for _, row_id in hits])
        for score, row_id in hits:
            identifier, content = rows[row_id]
            yield -score, EmbeddingRow(identifier=identifier, content=content, id=row_id)

    def count(self) -> int:
        return 0 if self.index is None else int(self.index.ntotal)

    def clear(self) -> None:
        """Clear all records from the FAISS store."""
        if self.index is None:
            return
        db.clear_rows(self._conn)
        self.index.reset()
        self._row_ids = []

    def dump(self, dest_path: str) -> None:
        """Write the rows to a standalone database file."""
        self.init_schema()
        db.dump(self._conn, dest_path)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
        self._conn = None
        self.index = None
        self._row_ids = []
