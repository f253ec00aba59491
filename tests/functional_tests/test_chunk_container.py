#!/usr/bin/env python3
"""
Functional Test: Chunk Container

This test verifies:
1. Chunks serialize as length, type, payload, CRC32(type + payload)
2. Reading walks chunks up to IEND and stops there
3. Truncated input and missing IEND are FormatErrors
4. CRC checking is off by default and strict when asked for

Usage:
    python tests/functional_tests/test_chunk_container.py
    pytest tests/functional_tests/test_chunk_container.py
"""

import io
import struct
import sys
import zlib
from pathlib import Path

import pytest

# Add repo root to path for imports
repo_root = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(repo_root))

from pngcore.chunk import Chunk, chunk_crc, encode_chunk, iter_chunks, read_chunk, write_chunk
from pngcore.errors import ChecksumError, FormatError


def test_encode_chunk_layout():
    """Length and CRC are big-endian and the CRC covers type + payload."""
    encoded = encode_chunk(b"tEXt", b"hello")

    assert encoded[:4] == struct.pack(">I", 5)
    assert encoded[4:8] == b"tEXt"
    assert encoded[8:13] == b"hello"
    assert encoded[13:] == struct.pack(">I", zlib.crc32(b"tEXthello") & 0xFFFFFFFF)


def test_empty_iend_has_known_crc():
    """IEND with an empty payload always ends in AE 42 60 82."""
    assert encode_chunk(b"IEND", b"") == b"\x00\x00\x00\x00IEND\xaeB`\x82"


def test_write_chunk_matches_encode_chunk():
    stream = io.BytesIO()
    write_chunk(stream, b"IDAT", b"\x01\x02\x03")
    assert stream.getvalue() == encode_chunk(b"IDAT", b"\x01\x02\x03")


def test_encode_chunk_rejects_bad_type():
    with pytest.raises(ValueError):
        encode_chunk(b"IDATX", b"")


def test_read_chunk_returns_next_offset():
    data = encode_chunk(b"abcd", b"xyz") + encode_chunk(b"IEND", b"")
    chunk, offset = read_chunk(data, 0)

    assert chunk == Chunk(b"abcd", b"xyz", chunk_crc(b"abcd", b"xyz"))
    assert chunk.is_valid()
    assert chunk.name == "abcd"
    assert offset == 4 + 4 + 3 + 4


def test_iter_chunks_stops_at_iend():
    """Anything after IEND is never read."""
    data = (
        b"\x89PNG\r\n\x1a\n"
        + encode_chunk(b"IHDR", bytes(13))
        + encode_chunk(b"zzZz", b"ignored")
        + encode_chunk(b"IEND", b"")
        + b"trailing garbage"
    )
    types = [chunk.type for chunk in iter_chunks(data)]
    assert types == [b"IHDR", b"zzZz", b"IEND"]


def test_missing_iend_is_format_error():
    data = b"\x89PNG\r\n\x1a\n" + encode_chunk(b"IHDR", bytes(13))
    with pytest.raises(FormatError):
        list(iter_chunks(data))


def test_truncated_payload_is_format_error():
    data = b"\x89PNG\r\n\x1a\n" + encode_chunk(b"IDAT", b"0123456789")[:-6]
    with pytest.raises(FormatError):
        list(iter_chunks(data))


def test_truncated_header_is_format_error():
    data = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00"
    with pytest.raises(FormatError):
        list(iter_chunks(data))


def test_bad_crc_ignored_unless_verified():
    """A corrupted CRC passes by default and fails with verify_crc=True."""
    bad = bytearray(encode_chunk(b"IHDR", bytes(13)))
    bad[-1] ^= 0xFF
    data = b"\x89PNG\r\n\x1a\n" + bytes(bad) + encode_chunk(b"IEND", b"")

    chunks = list(iter_chunks(data))
    assert not chunks[0].is_valid()

    with pytest.raises(ChecksumError):
        list(iter_chunks(data, verify_crc=True))


def test_checksum_error_is_format_error():
    assert issubclass(ChecksumError, FormatError)


TESTS = [
    ("Chunk layout", test_encode_chunk_layout),
    ("IEND CRC", test_empty_iend_has_known_crc),
    ("write_chunk", test_write_chunk_matches_encode_chunk),
    ("Bad chunk type", test_encode_chunk_rejects_bad_type),
    ("read_chunk offset", test_read_chunk_returns_next_offset),
    ("Stop at IEND", test_iter_chunks_stops_at_iend),
    ("Missing IEND", test_missing_iend_is_format_error),
    ("Truncated payload", test_truncated_payload_is_format_error),
    ("Truncated header", test_truncated_header_is_format_error),
    ("Opt-in CRC check", test_bad_crc_ignored_unless_verified),
    ("ChecksumError hierarchy", test_checksum_error_is_format_error),
]


if __name__ == "__main__":
    from png_builders import run_suite
    run_suite("Chunk Container Functional Test", TESTS)
