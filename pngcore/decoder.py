"""
PNG decoder.

Pipeline:
    signature -> chunks (IHDR, IDAT..., IEND) -> [decrypt each IDAT]
    -> inflate -> unfilter rows -> canonical RGBA

Decoding is fail-fast: the first problem raises and no partial image is
returned.
"""

import zlib
from pathlib import Path
from typing import Optional

from engines.encryption import DEFAULT_CIPHER, PayloadCipher, get_cipher
from utilities import Print

from .chunk import iter_chunks
from .errors import CodecIOError, FormatError, SizeMismatch, UnsupportedFeature
from .filters import unfilter_row
from .progress import NullProgressObserver, ProgressObserver
from .types import (
    ColorType,
    DecodedImage,
    IDAT,
    IEND,
    IHDR,
    ImageHeader,
    KeyMaterial,
    PNG_SIGNATURE,
)


def validate_header(info: ImageHeader) -> None:
    """
    Reject headers this decoder cannot handle.

    The compression/filter method check only fires when both fields are
    nonzero at once. Files with exactly one of them set are let through.

    Raises:
        FormatError: On a zero width or height
        UnsupportedFeature: On any unsupported feature
    """
    if info.compression_method != 0 and info.filter_method != 0:
        raise UnsupportedFeature(
            f"Unsupported compression/filter method: "
            f"{info.compression_method}/{info.filter_method}"
        )
    if info.interlace != 0:
        raise UnsupportedFeature("Interlaced PNG not supported")
    if info.bit_depth != 8:
        raise UnsupportedFeature(f"Only 8-bit PNG supported, got bit depth {info.bit_depth}")
    if info.color_type not in (ColorType.TRUECOLOR, ColorType.TRUECOLOR_ALPHA):
        raise UnsupportedFeature(
            f"Only color types 2 (RGB) and 6 (RGBA) supported, got {info.color_type}"
        )
    if info.width == 0 or info.height == 0:
        raise FormatError(f"Image dimensions must be positive, got {info.width}x{info.height}")


def inflate(stream: bytes, expected: int) -> bytes:
    """
    Inflate the concatenated IDAT stream, never producing more than one
    byte past the expected scanline size.

    Raises:
        SizeMismatch: If the stream inflates to more than expected bytes
        FormatError: If the stream is corrupt or ends early
    """
    inflater = zlib.decompressobj()
    try:
        raw = inflater.decompress(stream, expected + 1)
    except zlib.error as e:
        raise FormatError(f"Could not inflate image data: {e}")

    if len(raw) > expected:
        raise SizeMismatch(f"Decompressed image data exceeds the expected {expected} bytes")
    if not inflater.eof:
        raise FormatError("Could not inflate image data: incomplete or truncated stream")
    return raw


def reconstruct(raw: bytes, info: ImageHeader) -> bytearray:
    """
    Unfilter inflated scanlines into contiguous pixel rows.

    Raises:
        SizeMismatch: If raw is not exactly height * (1 + row_bytes) bytes
        UnsupportedFeature: On a filter byte outside 0..4
    """
    bpp = info.bytes_per_pixel
    row_bytes = info.row_bytes
    stride = row_bytes + 1
    expected = info.height * stride

    if len(raw) != expected:
        raise SizeMismatch(
            f"Decompressed image data is {len(raw)} bytes, expected {expected} "
            f"({info.height} rows x {stride} bytes)"
        )

    unfiltered = bytearray(info.height * row_bytes)
    prev = None
    for y in range(info.height):
        start = y * stride
        row = unfilter_row(raw[start], bpp, raw[start + 1:start + stride], prev)
        unfiltered[y * row_bytes:(y + 1) * row_bytes] = row
        prev = row
    return unfiltered


def to_rgba(pixels: bytes, info: ImageHeader) -> bytes:
    """Expand unfiltered rows to RGBA; RGB gets alpha 255."""
    if info.color_type == ColorType.TRUECOLOR_ALPHA:
        return bytes(pixels)

    count = info.width * info.height
    rgba = bytearray(b"\xff" * (count * 4))
    rgba[0::4] = pixels[0::3]
    rgba[1::4] = pixels[1::3]
    rgba[2::4] = pixels[2::3]
    return bytes(rgba)


def decode(
    data: bytes,
    key: Optional[KeyMaterial] = None,
    verify_crc: bool = False,
    cipher: Optional[PayloadCipher] = None,
    observer: Optional[ProgressObserver] = None,
) -> DecodedImage:
    """
    Decode a PNG held in memory.

    Args:
        data: Whole file contents
        key: Decrypt every IDAT payload with this key when given
        verify_crc: Check every chunk CRC (off by default)
        cipher: Payload cipher (default: aes-256-gcm)
        observer: Receives stage events

    Returns:
        DecodedImage with a canonical RGBA buffer

    Raises:
        FormatError: Bad signature, truncated or malformed framing, missing IHDR
        UnsupportedFeature: Header or filter byte outside the supported set
        DecryptError: An IDAT payload failed to authenticate
        SizeMismatch: Inflated data has the wrong length
    """
    observer = observer or NullProgressObserver()
    if key is not None and cipher is None:
        cipher = get_cipher(DEFAULT_CIPHER, {})

    if len(data) < len(PNG_SIGNATURE) or data[:len(PNG_SIGNATURE)] != PNG_SIGNATURE:
        raise FormatError("Signature doesn't match PNG signature")

    info = None
    idat_data = bytearray()
    idat_count = 0

    for chunk in iter_chunks(data, len(PNG_SIGNATURE), verify_crc=verify_crc):
        if chunk.type == IHDR:
            if info is not None:
                raise FormatError("Duplicate IHDR chunk")
            info = ImageHeader.from_bytes(chunk.data)
            validate_header(info)
        elif chunk.type == IDAT:
            if info is None:
                raise FormatError("IDAT chunk before IHDR")
            payload = cipher.open(key, chunk.data) if key is not None else chunk.data
            idat_data += payload
            idat_count += 1
        elif chunk.type == IEND:
            break
        else:
            Print("DEBUG", f"Skipping ancillary chunk {chunk.name} ({len(chunk.data)} bytes)")

    if info is None:
        raise FormatError("Missing IHDR chunk")

    Print("DEBUG",
        f"Read {info.width}x{info.height} color type {info.color_type}, "
        f"{idat_count} IDAT chunk(s), {len(idat_data):,} bytes"
        + (" (decrypted)" if key is not None else "")
    )
    observer.update("read")

    raw = inflate(bytes(idat_data), info.height * (info.row_bytes + 1))
    observer.update("inflate")

    pixels = reconstruct(raw, info)
    observer.update("unfilter")

    image = DecodedImage(info, to_rgba(pixels, info))
    observer.update("canonicalize")
    return image


def read_from_file(
    path,
    key: Optional[KeyMaterial] = None,
    verify_crc: bool = False,
    cipher: Optional[PayloadCipher] = None,
    observer: Optional[ProgressObserver] = None,
) -> DecodedImage:
    """
    Read and decode a PNG file.

    Raises:
        CodecIOError: If the file cannot be read
        (plus everything decode() raises)
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise CodecIOError(f"Could not read file {path}: {e}")

    Print("DEBUG", f"Reading image {path} ({len(data):,} bytes)")
    return decode(data, key=key, verify_crc=verify_crc, cipher=cipher, observer=observer)
