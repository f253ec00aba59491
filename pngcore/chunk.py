"""
Chunk container framing.

Each chunk on disk is:

    u32BE length | 4-byte type | payload | u32BE CRC32(type + payload)

Reading stops at IEND. CRCs are always written, but only checked on read
when the caller asks for it.
"""

import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Tuple

from .errors import ChecksumError, FormatError
from .types import IEND

_U32 = struct.Struct(">I")

MAX_CHUNK_LENGTH = 0xFFFFFFFF


def chunk_crc(chunk_type: bytes, data: bytes) -> int:
    """CRC32 (IEEE) over the type tag followed by the payload."""
    return zlib.crc32(data, zlib.crc32(chunk_type)) & 0xFFFFFFFF


@dataclass(frozen=True)
class Chunk:
    type: bytes
    data: bytes
    crc: int

    @property
    def computed_crc(self) -> int:
        return chunk_crc(self.type, self.data)

    def is_valid(self) -> bool:
        return self.crc == self.computed_crc

    @property
    def name(self) -> str:
        return self.type.decode('latin-1')


def read_chunk(data: bytes, offset: int) -> Tuple[Chunk, int]:
    """
    Read one chunk starting at offset.

    Returns:
        The chunk and the offset just past its CRC

    Raises:
        FormatError: If the input ends inside the chunk
    """
    header_end = offset + 8
    if header_end > len(data):
        raise FormatError(f"Truncated chunk header at offset {offset}")

    (length,) = _U32.unpack_from(data, offset)
    chunk_type = bytes(data[offset + 4:header_end])

    payload_end = header_end + length
    crc_end = payload_end + 4
    if crc_end > len(data):
        raise FormatError(
            f"Truncated {chunk_type!r} chunk at offset {offset}: "
            f"needs {length} payload bytes, {max(0, len(data) - header_end)} available"
        )

    payload = bytes(data[header_end:payload_end])
    (crc,) = _U32.unpack_from(data, payload_end)
    return Chunk(chunk_type, payload, crc), crc_end


def iter_chunks(data: bytes, offset: int = 8, verify_crc: bool = False) -> Iterator[Chunk]:
    """
    Yield chunks from offset up to and including IEND.

    Args:
        data: Whole file contents
        offset: Where the first chunk starts (just after the signature)
        verify_crc: Raise ChecksumError on the first CRC mismatch

    Raises:
        FormatError: If the input ends before IEND
        ChecksumError: If verify_crc is set and a CRC does not match
    """
    while True:
        if offset >= len(data):
            raise FormatError("Input ended before IEND chunk")

        chunk, offset = read_chunk(data, offset)

        if verify_crc and not chunk.is_valid():
            raise ChecksumError(
                f"CRC mismatch in {chunk.type!r} chunk: "
                f"stored {chunk.crc:08x}, computed {chunk.computed_crc:08x}"
            )

        yield chunk

        if chunk.type == IEND:
            return


def encode_chunk(chunk_type: bytes, data: bytes) -> bytes:
    """Serialize one chunk: length, type, payload, CRC."""
    if len(chunk_type) != 4:
        raise ValueError(f"Chunk type must be 4 bytes, got {chunk_type!r}")
    if len(data) > MAX_CHUNK_LENGTH:
        raise ValueError(f"Chunk payload too large: {len(data)} bytes")
    return b"".join((
        _U32.pack(len(data)),
        chunk_type,
        data,
        _U32.pack(chunk_crc(chunk_type, data)),
    ))


def write_chunk(stream: BinaryIO, chunk_type: bytes, data: bytes) -> None:
    stream.write(encode_chunk(chunk_type, data))
