"""
Deflate Compressor Protocol for PNGVault

Defines the contract that all IDAT compression backends must implement.
"""

from typing import Protocol


class DeflateCompressor(Protocol):
    """
    Protocol for IDAT compression backends.

    Compressors are responsible for:
    - Turning filtered scanlines into one zlib-formatted stream
    - Exposing their tuning parameters for logging

    Whatever the backend, the output must inflate with a standard
    zlib decompressor.
    """

    def compress(self, data: bytes) -> bytes:
        """
        Compress filtered scanline data.

        Args:
            data: Filter-byte-prefixed scanlines for the whole image

        Returns:
            zlib stream (2-byte header, deflate body, Adler-32 trailer)

        Raises:
            RuntimeError: If compression fails
        """
        ...

    @property
    def name(self) -> str:
        """
        Compressor identifier for logging and debugging.

        Returns:
            Unique name of this compressor (e.g., 'zlib-fast', 'zopfli')
        """
        ...
