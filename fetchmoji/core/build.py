"""
Offline index build: embed the emoji index and write the runtime artifacts.

Outputs (under ``out_dir``):
    embeddings.json     rows with full float vectors, for inspection
    emoji-meta.json     decode metadata, one {"id", "content"} per vector
    embeddings.bin      int8 embeddings blob
    embeddings.bin.gz   gzipped blob
    emoji.db            prebuilt SQLite database for FaissVectorStore
"""

import gzip
import json
from pathlib import Path
from typing import Dict, List

import numpy as np

from fetchmoji.util.logging import logger
from fetchmoji.vector.codec import encode
from fetchmoji.vector.embeddings import IEmbeddingProvider
from fetchmoji.vector.faiss_store import FaissVectorStore

from .emoji import build_emoji_rows, build_meta, load_emoji_index
from .search_service import search, store_docs_from_emoji_index

FAST_LIMIT = 50
DEMO_QUERY = "shout"


def build_artifacts(
    out_dir,
    provider: IEmbeddingProvider,
    limit: int = None,
    index_path=None,
) -> List[Dict[str, object]]:
    """
    Build every artifact and return a report of file names and sizes.

    Args:
        out_dir: Directory to write into (created if missing)
        provider: Embedding provider used for every row and the demo query
        limit: Only embed the first ``limit`` emojis
        index_path: Alternate emoji index JSON

    Returns:
        List of {"file": name, "size_bytes": int}
    """
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    logger.info("Building emoji rows...")
    rows = build_emoji_rows(load_emoji_index(index_path))
    if limit is not None:
        rows = rows[:limit]

    logger.info("Building emoji DB...")
    db_path = out / "emoji.db"
    if db_path.exists():
        db_path.unlink()
    store = FaissVectorStore(dimension=provider.get_dimension(), embedder=provider)
    store.init_schema()

    logger.info("Inserting embeddings...")
    embeds = store_docs_from_emoji_index(store, rows)

    files = {}

    files["embeddings.json"] = out / "embeddings.json"
    with open(files["embeddings.json"], "w", encoding="utf-8") as f:
        json.dump(
            [{"content": row.content, "embedding": np.asarray(row.embedding).tolist()} for row in embeds],
            f,
            ensure_ascii=False,
        )

    files["emoji-meta.json"] = out / "emoji-meta.json"
    with open(files["emoji-meta.json"], "w", encoding="utf-8") as f:
        json.dump(build_meta(rows), f, ensure_ascii=False)

    blob = encode(embeds)
    files["embeddings.bin"] = out / "embeddings.bin"
    files["embeddings.bin"].write_bytes(blob)

    # mtime=0 keeps the gzip artifact byte-reproducible
    files["embeddings.bin.gz"] = out / "embeddings.bin.gz"
    files["embeddings.bin.gz"].write_bytes(gzip.compress(blob, compresslevel=9, mtime=0))
    if gzip.decompress(files["embeddings.bin.gz"].read_bytes()) != blob:
        raise RuntimeError("gzip round-trip mismatch")

    files["emoji.db"] = db_path
    store.dump(str(db_path))

    # Demo query, encoded exactly like runtime queries
    top = search(store, DEMO_QUERY, match_threshold=0.8, limit=5)
    logger.info(f"Top matches for {DEMO_QUERY!r}: {[item['content'] for item in top]}")
    store.close()

    report = []
    for name, path in files.items():
        size = path.stat().st_size
        logger.log_artifact(name, size)
        report.append({"file": name, "size_bytes": size})
    return report
