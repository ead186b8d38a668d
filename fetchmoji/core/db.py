"""
SQLite row storage for the FAISS-backed vector store.

Rows are (id, identifier, content, embedding) with the embedding kept as a
little-endian float32 blob, so a database file is a self-contained prebuilt
index artifact.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator, List, Tuple

import numpy as np

SCHEMA = '''
    CREATE TABLE IF NOT EXISTS embeddings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        identifier TEXT NOT NULL,
        content TEXT NOT NULL,
        embedding BLOB NOT NULL
    )
'''


def connect(db_path: str = ":memory:") -> sqlite3.Connection:
    """Open a connection, creating the parent directory of a file database."""
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Cursor, None, None]:
    """Run statements in one transaction, rolling back on error."""
    cursor = conn.cursor()
    try:
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()


def init_schema(conn: sqlite3.Connection) -> None:
    """Create the embeddings table and its identifier index."""
    with transaction(conn) as cursor:
        cursor.execute(SCHEMA)
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_embeddings_identifier ON embeddings(identifier)')


def insert_rows(conn: sqlite3.Connection, rows: List[Tuple[str, str, np.ndarray]]) -> List[int]:
    """Insert (identifier, content, vector) rows and return their ids in order."""
    ids = []
    with transaction(conn) as cursor:
        for identifier, content, vector in rows:
            cursor.execute(
                'INSERT INTO embeddings (identifier, content, embedding) VALUES (?, ?, ?)',
                (identifier, content, np.asarray(vector, dtype="<f4").tobytes()),
            )
            ids.append(cursor.lastrowid)
    return ids


def iter_rows(conn: sqlite3.Connection) -> Iterator[Tuple[int, str, str, np.ndarray]]:
    """Yield every stored row ordered by id."""
    cursor = conn.execute('SELECT id, identifier, content, embedding FROM embeddings ORDER BY id')
    for row_id, identifier, content, blob in cursor:
        yield row_id, identifier, content, np.frombuffer(blob, dtype="<f4").astype(np.float32)


def get_rows(conn: sqlite3.Connection, ids: List[int]) -> dict:
    """Fetch (identifier, content) for the given ids."""
    if not ids:
        return {}
    placeholders = ",".join("?" for _ in ids)
    cursor = conn.execute(
        f'SELECT id, identifier, content FROM embeddings WHERE id IN ({placeholders})',
        list(ids),
    )
    return {row_id: (identifier, content) for row_id, identifier, content in cursor}


def count_rows(conn: sqlite3.Connection, table: str = "embeddings") -> int:
    """Count the rows in a table."""
    cursor = conn.execute(f'SELECT COUNT(*) FROM {table}')
    return cursor.fetchone()[0]


def clear_rows(conn: sqlite3.Connection) -> None:
    with transaction(conn) as cursor:
        cursor.execute('DELETE FROM embeddings')


def dump(conn: sqlite3.Connection, dest_path: str) -> None:
    """Copy the database into a standalone file."""
    Path(dest_path).parent.mkdir(parents=True, exist_ok=True)
    dest = sqlite3.connect(dest_path)
    try:
        conn.backup(dest)
    finally:
        dest.close()
