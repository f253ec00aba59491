"""
Scanline filter engine.

Decode direction (unfilter_row) rebuilds a row from its filtered bytes and
the previously reconstructed row. Encode direction (apply_filter) computes
the filtered bytes from the original row and the previous original row.
All arithmetic is modulo 256. A missing previous row means a zero row.

See https://www.w3.org/TR/png-3/#9Filters
"""

from typing import Optional

from .errors import UnsupportedFeature
from .types import ColorType, FilterKind


def bytes_per_pixel(color_type: int) -> int:
    try:
        return ColorType(color_type).bytes_per_pixel
    except ValueError:
        raise UnsupportedFeature(f"Unsupported color type: {color_type}")


def filter_kind(value: int) -> FilterKind:
    """Map a filter byte to its FilterKind, rejecting anything outside 0..4."""
    try:
        return FilterKind(value)
    except ValueError:
        raise UnsupportedFeature(f"Unsupported filter type: {value}")


def paeth_predictor(a: int, b: int, c: int) -> int:
    """
    Paeth predictor over left (a), up (b) and upper-left (c).

    Ties resolve in the order a, b, c.
    """
    p = a + b - c
    pa = abs(p - a)
    pb = abs(p - b)
    pc = abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def unfilter_row(kind: int, bpp: int, src: bytes, prev: Optional[bytes] = None) -> bytearray:
    """
    Reconstruct one scanline.

    Args:
        kind: Filter byte read from the stream
        bpp: Bytes per pixel (3 or 4)
        src: Filtered row bytes, without the filter byte
        prev: Previously reconstructed row, or None for the first row

    Returns:
        The reconstructed row

    Raises:
        UnsupportedFeature: If kind is not 0..4
    """
    kind = filter_kind(kind)
    length = len(src)
    if prev is None:
        prev = bytes(length)
    dst = bytearray(src)

    if kind is FilterKind.NONE:
        pass
    elif kind is FilterKind.SUB:
        for i in range(bpp, length):
            dst[i] = (dst[i] + dst[i - bpp]) & 0xFF
    elif kind is FilterKind.UP:
        for i in range(length):
            dst[i] = (dst[i] + prev[i]) & 0xFF
    elif kind is FilterKind.AVERAGE:
        for i in range(length):
            left = dst[i - bpp] if i >= bpp else 0
            dst[i] = (dst[i] + ((left + prev[i]) >> 1)) & 0xFF
    elif kind is FilterKind.PAETH:
        for i in range(length):
            if i >= bpp:
                left = dst[i - bpp]
                up_left = prev[i - bpp]
            else:
                left = up_left = 0
            dst[i] = (dst[i] + paeth_predictor(left, prev[i], up_left)) & 0xFF

    return dst


def apply_filter(kind: int, bpp: int, row: bytes, prev: Optional[bytes] = None) -> bytearray:
    """
    Filter one original scanline; the inverse of unfilter_row.

    Args:
        kind: Filter kind to apply
        bpp: Bytes per pixel (3 or 4)
        row: Original (unfiltered) row bytes
        prev: Previous original row, or None for the first row

    Returns:
        The filtered row, without the filter byte
    """
    kind = filter_kind(kind)
    length = len(row)
    if prev is None:
        prev = bytes(length)

    if kind is FilterKind.NONE:
        return bytearray(row)

    out = bytearray(length)
    if kind is FilterKind.SUB:
        for i in range(length):
            left = row[i - bpp] if i >= bpp else 0
            out[i] = (row[i] - left) & 0xFF
    elif kind is FilterKind.UP:
        for i in range(length):
            out[i] = (row[i] - prev[i]) & 0xFF
    elif kind is FilterKind.AVERAGE:
        for i in range(length):
            left = row[i - bpp] if i >= bpp else 0
            out[i] = (row[i] - ((left + prev[i]) >> 1)) & 0xFF
    elif kind is FilterKind.PAETH:
        for i in range(length):
            if i >= bpp:
                left = row[i - bpp]
                up_left = prev[i - bpp]
            else:
                left = up_left = 0
            out[i] = (row[i] - paeth_predictor(left, prev[i], up_left)) & 0xFF

    return out
