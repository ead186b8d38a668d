"""
Compact int8 codec for embedding batches.

Each vector is quantized with its own scale and packed into one blob
(little-endian throughout):

    magic(4) b"EMBD" | version(1)=1 | count(4) | dim(4) | dtype(1)=1 (int8)
    zero padding to a 4-byte boundary
    float32 scales[count]
    int8    data[count * dim]

Encoding is deterministic, so identical batches give byte-identical blobs.
"""

import struct
from typing import Any, Dict, Optional, Sequence

import numpy as np

from fetchmoji.core.errors import (
    BadMagic,
    BadVersion,
    DimensionMismatch,
    EmptyBatch,
    FormatError,
    MetaLengthMismatch,
    UnsupportedDtype,
    ValidationError,
)
from fetchmoji.util.logging import logger

from .types import DecodedEmbeddings, EmbeddingRow

MAGIC = b"EMBD"
VERSION = 1
DTYPE_INT8 = 1
QMAX = 127

_HEADER = struct.Struct("<4sBIIB")
HEADER_PAD = (4 - _HEADER.size % 4) % 4
HEADER_SIZE = _HEADER.size + HEADER_PAD


def _as_vector(item: Any) -> np.ndarray:
    vector = getattr(item, "embedding", item)
    if vector is None:
        raise ValidationError("row has no embedding")
    try:
        array = np.asarray(vector, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"embedding is not numeric: {e}") from e
    if array.ndim != 1:
        raise ValidationError(f"embedding must be one-dimensional, got shape {array.shape}")
    return array


def quantize(vector: np.ndarray):
    """Quantize one vector to (scale, int8 values)."""
    max_abs = float(np.max(np.abs(vector))) if vector.size else 0.0
    scale = max_abs / QMAX if max_abs > 0 else 1.0
    # Round half up so blobs match other producers of this format
    q = np.floor(vector / scale + 0.5)
    return scale, np.clip(q, -QMAX, QMAX).astype(np.int8)


def encode(batch: Sequence[Any]) -> bytes:
    """
    Pack a batch of embeddings into a blob.

    Args:
        batch: EmbeddingRow objects (anything with an ``embedding``) or raw vectors

    Returns:
        The packed blob

    Raises:
        EmptyBatch: if the batch is empty
        DimensionMismatch: if vector lengths differ
        ValidationError: if a vector is not a finite numeric sequence
    """
    if len(batch) == 0:
        raise EmptyBatch("no embeddings")

    first = _as_vector(batch[0])
    dim = first.shape[0]
    count = len(batch)

    scales = np.empty(count, dtype="<f4")
    data = np.empty((count, dim), dtype=np.int8)
    for i, item in enumerate(batch):
        vector = first if i == 0 else _as_vector(item)
        if vector.shape[0] != dim:
            raise DimensionMismatch(dim, vector.shape[0], index=i)
        if not np.all(np.isfinite(vector)):
            raise ValidationError(f"embedding at row {i} has non-finite values")
        scales[i], data[i] = quantize(vector)

    header = _HEADER.pack(MAGIC, VERSION, count, dim, DTYPE_INT8) + b"\x00" * HEADER_PAD
    blob = header + scales.tobytes() + data.tobytes()

    logger.log_codec_operation("encode", count, dim, len(blob))
    return blob


def read_header(blob: bytes):
    """Validate a blob header and return (count, dim)."""
    if len(blob) < HEADER_SIZE:
        raise FormatError(f"blob too short for header: {len(blob)} bytes")

    magic, version, count, dim, dtype = _HEADER.unpack_from(blob, 0)
    if magic != MAGIC:
        raise BadMagic(f"bad magic {magic!r}")
    if version != VERSION:
        raise BadVersion(f"bad version {version}")
    if dtype != DTYPE_INT8:
        raise UnsupportedDtype(f"unsupported dtype {dtype}")
    return count, dim


def decode(blob: bytes, meta: Optional[Sequence[Dict[str, Any]]] = None) -> DecodedEmbeddings:
    """
    Unpack a blob produced by ``encode``.

    When ``meta`` is given (one ``{"id", "content"}`` mapping per vector),
    the result also carries dequantized ``rows``.
    """
    blob = bytes(blob)
    count, dim = read_header(blob)

    scales_offset = HEADER_SIZE
    data_offset = scales_offset + 4 * count
    expected = data_offset + count * dim
    if len(blob) < expected:
        raise FormatError(f"blob truncated: expected {expected} bytes, got {len(blob)}")

    scales = np.frombuffer(blob, dtype="<f4", count=count, offset=scales_offset).astype(np.float32)
    data = np.frombuffer(blob, dtype=np.int8, count=count * dim, offset=data_offset).reshape(count, dim)
    decoded = DecodedEmbeddings(count=count, dim=dim, scales=scales, data=data)

    if meta is not None:
        if len(meta) != count:
            raise MetaLengthMismatch(f"meta length {len(meta)} does not match count {count}")
        vectors = decoded.vectors()
        rows = []
        for i, item in enumerate(meta):
            content = item.get("content")
            if content is None:
                content = item.get("id")
            if content is None:
                content = ""
            identifier = item.get("id")
            if identifier is None:
                identifier = content
            rows.append(EmbeddingRow(identifier=identifier, content=content, embedding=vectors[i]))
        decoded.rows = rows

    logger.log_codec_operation("decode", count, dim, len(blob))
    return decoded
