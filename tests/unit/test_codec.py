"""Tests for the little-endian float32 vector codec."""
import struct

import numpy as np
import pytest

from ruborag.errors import CorruptBlob
from ruborag.rag.codec import decode, dimension_of, encode


def test_round_trip_is_exact():
    vector = np.array([0.1, -2.5, 3.4028235e38, 1e-45, 0.0, -0.0], dtype=np.float32)

    decoded = decode(encode(vector))

    assert decoded.dtype == np.float32
    assert np.array_equal(decoded, vector)


def test_encode_width_is_four_bytes_per_element():
    assert len(encode([1.0, 2.0, 3.0])) == 12
    assert len(encode(np.ones(768, dtype=np.float32))) == 4 * 768


def test_encoding_is_little_endian():
    assert encode([1.0, -2.0]) == struct.pack("<2f", 1.0, -2.0)


def test_decode_reads_plain_python_lists_encoded_elsewhere():
    blob = struct.pack("<3f", 0.5, 0.25, -1.0)
    assert decode(blob).tolist() == [0.5, 0.25, -1.0]


@pytest.mark.parametrize("length", [1, 2, 3, 5, 7])
def test_decode_rejects_truncated_blob(length):
    with pytest.raises(CorruptBlob):
        decode(b"\x00" * length)


def test_decoded_vector_is_writable():
    decoded = decode(encode([1.0, 2.0]))
    decoded[0] = 5.0
    assert decoded[0] == 5.0


def test_dimension_of():
    assert dimension_of(encode([1.0] * 10)) == 10
