"""
PNG encoder.

Pipeline:
    RGBA -> alpha zeroing / quantization -> RGB or RGBA rows
    -> per-row filter selection -> deflate backend -> [encrypt]
    -> signature, IHDR, IDAT..., IEND
"""

from pathlib import Path
from typing import List, Optional

from engines.compression import DeflateCompressor, get_compressor
from engines.encryption import DEFAULT_CIPHER, PayloadCipher, get_cipher
from processors.filter_selection import FilterSelector
from processors.preprocessing import Preprocessor, has_alpha
from utilities import Print

from .chunk import encode_chunk
from .errors import CodecIOError
from .progress import NullProgressObserver, ProgressObserver
from .types import (
    ColorType,
    CompressionTier,
    DecodedImage,
    IDAT,
    IEND,
    IHDR,
    ImageHeader,
    KeyMaterial,
    PNG_SIGNATURE,
)


def serialize_rows(rgba: bytes, color_type: ColorType) -> bytes:
    """Lay out RGBA pixels as 4-byte (RGBA) or 3-byte (RGB) samples."""
    if color_type == ColorType.TRUECOLOR_ALPHA:
        return bytes(rgba)

    count = len(rgba) // 4
    rgb = bytearray(count * 3)
    rgb[0::3] = rgba[0::4]
    rgb[1::3] = rgba[1::4]
    rgb[2::3] = rgba[2::4]
    return bytes(rgb)


def split_payload(data: bytes, max_size: Optional[int]) -> List[bytes]:
    """Cut data into pieces of at most max_size bytes (one piece if None)."""
    if not max_size or len(data) <= max_size:
        return [data]
    return [data[i:i + max_size] for i in range(0, len(data), max_size)]


def encode(
    image: DecodedImage,
    tier: CompressionTier = CompressionTier.LOSSLESS,
    key: Optional[KeyMaterial] = None,
    compressor: Optional[DeflateCompressor] = None,
    cipher: Optional[PayloadCipher] = None,
    observer: Optional[ProgressObserver] = None,
    filter_workers: int = 1,
    max_idat_size: Optional[int] = None,
) -> bytes:
    """
    Encode an image to PNG bytes.

    Args:
        image: Source image (canonical RGBA)
        tier: Compression tier (quantization depth and default backend)
        key: Encrypt every IDAT payload with this key when given
        compressor: Deflate backend (default: the tier's registered backend)
        cipher: Payload cipher (default: aes-256-gcm)
        observer: Receives stage events
        filter_workers: Threads for the per-row filter trial
        max_idat_size: Split the compressed stream into IDAT chunks of at
            most this many bytes; each chunk is encrypted on its own

    Returns:
        Complete PNG file contents
    """
    observer = observer or NullProgressObserver()
    if compressor is None:
        compressor = get_compressor(tier.backend, {})
    if key is not None and cipher is None:
        cipher = get_cipher(DEFAULT_CIPHER, {})

    rgba = Preprocessor(tier).process(image.rgba)
    color_type = ColorType.TRUECOLOR_ALPHA if has_alpha(rgba) else ColorType.TRUECOLOR
    info = ImageHeader(width=image.width, height=image.height, color_type=color_type)
    observer.update("preprocess")

    image_data = serialize_rows(rgba, color_type)
    selector = FilterSelector(info.bytes_per_pixel, workers=filter_workers)
    filtered, kinds = selector.filter_scanlines(image_data, info.row_bytes, info.height)
    Print("DEBUG",
        f"Filtered {info.height} rows as {'RGBA' if info.has_alpha else 'RGB'}; "
        f"filter usage: {[kinds.count(kind) for kind in range(5)]}"
    )
    observer.update("filter")

    compressed = compressor.compress(filtered)
    observer.update("compress")

    payloads = split_payload(compressed, max_idat_size)
    if key is not None:
        payloads = [cipher.seal(key, payload) for payload in payloads]
        Print("DEBUG", f"Encrypted {len(payloads)} IDAT payload(s) with {cipher.name}")
    observer.update("encrypt")

    parts = [PNG_SIGNATURE, encode_chunk(IHDR, info.to_bytes())]
    parts.extend(encode_chunk(IDAT, payload) for payload in payloads)
    parts.append(encode_chunk(IEND, b""))
    observer.update("write")

    return b"".join(parts)


def save(
    image: DecodedImage,
    path,
    tier: CompressionTier = CompressionTier.BALANCED,
    key: Optional[KeyMaterial] = None,
    **kwargs,
) -> int:
    """
    Encode an image and write it to path.

    Returns:
        Number of bytes written

    Raises:
        CodecIOError: If the file cannot be written
    """
    data = encode(image, tier=tier, key=key, **kwargs)
    path = Path(path)
    try:
        path.write_bytes(data)
    except OSError as e:
        raise CodecIOError(f"Could not create file {path}: {e}")
    Print("DEBUG", f"Wrote {path} ({len(data):,} bytes, tier {tier.label})")
    return len(data)
