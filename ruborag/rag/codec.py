"""Binary encoding of embedding vectors.

A vector is stored as the little-endian concatenation of its IEEE-754
single-precision elements: no header, no length prefix. The dimensionality
of a blob is ``len(blob) // 4``.
"""
from typing import Sequence, Union
import numpy as np

from ruborag.errors import CorruptBlob

# Little-endian float32, independent of host byte order
VECTOR_DTYPE = np.dtype("<f4")
BYTES_PER_ELEMENT = VECTOR_DTYPE.itemsize


def encode(vector: Union[Sequence[float], np.ndarray]) -> bytes:
    """Serialize a vector into a fixed-width little-endian float32 blob."""
    return np.asarray(vector, dtype=VECTOR_DTYPE).ravel().tobytes()


def decode(blob: bytes) -> np.ndarray:
    """Deserialize a blob produced by :func:`encode`.

    Returns:
        A writable float32 array in native byte order

    Raises:
        CorruptBlob: If the blob length is not a multiple of 4 bytes
    """
    if len(blob) % BYTES_PER_ELEMENT != 0:
        raise CorruptBlob(
            f"Blob length {len(blob)} is not a multiple of {BYTES_PER_ELEMENT}"
        )
    return np.frombuffer(blob, dtype=VECTOR_DTYPE).astype(np.float32)


def dimension_of(blob: bytes) -> int:
    """Number of float32 elements encoded in a blob."""
    return len(blob) // BYTES_PER_ELEMENT
