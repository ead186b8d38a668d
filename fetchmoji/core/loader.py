"""
Load prebuilt artifacts into a vector store.

Artifacts are fetched over HTTP(S) with requests or read from a local path.
``.gz`` artifacts are gunzipped unless the transport already decoded them.
"""

import asyncio
import gzip
import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from fetchmoji.util.logging import logger
from fetchmoji.vector.codec import decode, read_header
from fetchmoji.vector.embeddings import IEmbeddingProvider
from fetchmoji.vector.faiss_store import FaissVectorStore
from fetchmoji.vector.index import IVectorStore

from . import config
from .errors import FetchmojiError, StoreInitError, TransportError

GZIP_MAGIC = b"\x1f\x8b"


def fetch_artifact(location: str, timeout: float = None) -> bytes:
    """
    Fetch an artifact from a URL or a local path.

    Raises:
        TransportError: if the artifact cannot be fetched
    """
    timeout = timeout if timeout is not None else config.FETCH_TIMEOUT_SEC

    if location.startswith(("http://", "https://")):
        try:
            response = requests.get(location, timeout=timeout)
        except requests.RequestException as e:
            raise TransportError(f"failed to fetch {location}: {e}") from e
        if not response.ok:
            raise TransportError(f"failed to fetch {location}: HTTP {response.status_code}")
        data = response.content
        logger.debug(f"Fetched {location} content-encoding={response.headers.get('content-encoding')}")
    else:
        try:
            data = Path(location).read_bytes()
        except OSError as e:
            raise TransportError(f"failed to read {location}: {e}") from e

    if location.endswith(".gz") and data[:2] == GZIP_MAGIC:
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError) as e:
            raise TransportError(f"failed to decompress {location}: {e}") from e

    return data


def load_meta(location: str, timeout: float = None) -> List[Dict[str, Any]]:
    """Fetch the JSON metadata list that accompanies an embeddings blob."""
    return json.loads(fetch_artifact(location, timeout=timeout).decode("utf-8"))


def seed_store_from_blob(
    store: IVectorStore,
    blob: bytes,
    meta: List[Dict[str, Any]],
    batch_size: int = None,
) -> int:
    """Decode a blob with its metadata and insert the rows in batches."""
    batch_size = batch_size or config.INSERT_BATCH_SIZE
    decoded = decode(blob, meta)
    rows = decoded.rows or []

    store.init_schema()
    for start in range(0, len(rows), batch_size):
        store.insert_embeddings(rows[start:start + batch_size])

    return len(rows)


def load_store_from_artifacts(
    bin_location: str = None,
    meta_location: str = None,
    store: Optional[IVectorStore] = None,
    embedder: IEmbeddingProvider = None,
) -> IVectorStore:
    """
    Build a ready store from an embeddings blob and its metadata.

    A store that already holds as many rows as the blob (a reopened database
    file) is returned without seeding it again.

    Raises:
        TransportError: if an artifact cannot be fetched
        FormatError: if the blob is corrupt or does not match the metadata
        StoreInitError: if the store cannot be created or started
    """
    bin_location = bin_location or config.EMBEDDINGS_BIN_URL
    meta_location = meta_location or config.EMOJI_META_URL
    start = time.perf_counter()

    blob = fetch_artifact(bin_location)
    meta = load_meta(meta_location)

    expected, dim = read_header(blob)
    if store is None:
        try:
            store = config.get_vector_store(embedder=embedder, dimension=dim)
        except (ImportError, ValueError) as e:
            raise StoreInitError(f"vector store failed to start: {e}") from e

    store.init_schema()
    existing = store.count()
    if existing == expected:
        # A file-backed store already holds this index from an earlier load
        logger.info(f"Store already holds {existing} rows, skipping seed")
        count = existing
    elif existing:
        raise StoreInitError(f"store holds {existing} rows but the artifact has {expected}")
    else:
        count = seed_store_from_blob(store, blob, meta)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    logger.log_store_operation("load", {"source": bin_location, "rows": count, "duration_ms": duration_ms})
    return store


def load_prebuilt_db(
    db_location: str,
    dest_path: str,
    dimension: int = None,
    embedder: IEmbeddingProvider = None,
) -> FaissVectorStore:
    """
    Restore a prebuilt database artifact to ``dest_path`` and open it.

    Refuses to overwrite an existing database file.
    """
    dest = Path(dest_path)
    if dest.exists():
        raise StoreInitError(f"database already loaded at {dest_path}")

    start = time.perf_counter()
    data = fetch_artifact(db_location)
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(data)

    store = FaissVectorStore.open(str(dest), dimension=dimension or config.EMBED_DIMENSIONS, embedder=embedder)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    logger.log_store_operation("load_prebuilt", {"source": db_location, "rows": store.count(), "duration_ms": duration_ms})
    return store


def make_store_loader(bin_location: str = None, meta_location: str = None, embedder: IEmbeddingProvider = None):
    """Return an async ``load_store`` callable that loads off the event loop."""

    async def load_store() -> IVectorStore:
        try:
            return await asyncio.to_thread(
                load_store_from_artifacts, bin_location, meta_location, None, embedder
            )
        except FetchmojiError:
            raise
        except Exception as e:
            raise StoreInitError(f"vector store failed to load: {e}") from e

    return load_store
