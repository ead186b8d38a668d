"""
Runtime configuration read from environment variables (and a local .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Embedding model configuration
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME", "thenlper/gte-small")
EMBED_DIMENSIONS = int(os.getenv("EMBED_DIMENSIONS", "384"))
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "sentence-transformers")  # sentence-transformers|hash

# Vector store configuration
VECTOR_PROVIDER = os.getenv("VECTOR_PROVIDER", "faiss")  # faiss|memory
VECTOR_DB_PATH = os.getenv("VECTOR_DB_PATH", ":memory:")
INSERT_BATCH_SIZE = int(os.getenv("INSERT_BATCH_SIZE", "256"))

# Search defaults
MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.8"))
SEARCH_LIMIT = int(os.getenv("SEARCH_LIMIT", "20"))
DEBOUNCE_MS = int(os.getenv("DEBOUNCE_MS", "150"))

# Artifacts
ARTIFACTS_DIR = os.getenv("ARTIFACTS_DIR", "./artifacts")
EMBEDDINGS_BIN_URL = os.getenv("EMBEDDINGS_BIN_URL", f"{ARTIFACTS_DIR}/embeddings.bin.gz")
EMOJI_META_URL = os.getenv("EMOJI_META_URL", f"{ARTIFACTS_DIR}/emoji-meta.json")
FETCH_TIMEOUT_SEC = float(os.getenv("FETCH_TIMEOUT_SEC", "30"))

# Artifact server
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "https://fetchmoji.com,http://localhost:4321").split(",")
    if origin.strip()
]
PROTECTED_SUFFIXES = (".tar", ".bin")

# Version string
VERSION = "0.3.0"


def get_vector_store(embedder=None, dimension: int = None):
    """Get configured vector store implementation."""
    dimension = dimension or EMBED_DIMENSIONS
    provider = os.getenv("VECTOR_PROVIDER", VECTOR_PROVIDER)

    if provider == "memory":
        from fetchmoji.vector.index import SimpleInMemoryVectorStore
        return SimpleInMemoryVectorStore(dimension=dimension, embedder=embedder)
    elif provider == "faiss":
        from fetchmoji.vector.faiss_store import FaissVectorStore
        return FaissVectorStore(
            dimension=dimension,
            db_path=os.getenv("VECTOR_DB_PATH", VECTOR_DB_PATH),
            embedder=embedder,
        )
    else:
        raise ValueError(f"Unknown VECTOR_PROVIDER: {provider}")


def get_embedding_provider(provider: str = None, model_name: str = None):
    """Get configured embedding provider implementation."""
    provider = provider or os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)

    if provider == "hash":
        from fetchmoji.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(dimension=EMBED_DIMENSIONS)
    elif provider == "sentence-transformers":
        from fetchmoji.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(model_name or os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME))
    else:
        raise ValueError(f"Unknown EMBED_PROVIDER: {provider}")


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def get_debounce_seconds():
    """Get the classify debounce delay in seconds."""
    return int(os.getenv("DEBOUNCE_MS", str(DEBOUNCE_MS))) / 1000


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if EMBED_PROVIDER not in ["sentence-transformers", "hash"]:
        issues.append(f"Invalid EMBED_PROVIDER: {EMBED_PROVIDER}")

    if VECTOR_PROVIDER not in ["faiss", "memory"]:
        issues.append(f"Invalid VECTOR_PROVIDER: {VECTOR_PROVIDER}")

    if EMBED_DIMENSIONS < 1:
        issues.append("EMBED_DIMENSIONS must be >= 1")

    if INSERT_BATCH_SIZE < 1:
        issues.append("INSERT_BATCH_SIZE must be >= 1")

    if SEARCH_LIMIT < 1:
        issues.append("SEARCH_LIMIT must be >= 1")

    if DEBOUNCE_MS < 0:
        issues.append("DEBOUNCE_MS must be >= 0")

    if not -1.0 <= MATCH_THRESHOLD <= 1.0:
        issues.append("MATCH_THRESHOLD must be within [-1, 1]")

    return issues
