"""
zlib compression backends for PNGVault

Two registrations share one implementation:
- zlib-fast: level 1, used by the Lossless tier
- zlib-best: level 9, used by the Balanced tier
"""

import zlib

from . import register_compressor
from utilities import Print


@register_compressor("zlib-fast")
class ZlibFastCompressorFactory:
    """Factory for the fastest-speed zlib backend."""

    @staticmethod
    def create(config: dict) -> "ZlibCompressor":
        return ZlibCompressor("zlib-fast", config, default_level=zlib.Z_BEST_SPEED)


@register_compressor("zlib-best")
class ZlibBestCompressorFactory:
    """Factory for the maximum-ratio zlib backend."""

    @staticmethod
    def create(config: dict) -> "ZlibCompressor":
        return ZlibCompressor("zlib-best", config, default_level=zlib.Z_BEST_COMPRESSION)


class ZlibCompressor:
    """
    Standard zlib deflate at a fixed compression level.

    Attributes:
        level: zlib compression level (0-9)
    """

    def __init__(self, name: str, config: dict, default_level: int):
        self._name = name
        self.level = config.get('level', default_level)
        if not 0 <= self.level <= 9:
            raise ValueError(f"zlib level must be 0-9, got {self.level}")

    def compress(self, data: bytes) -> bytes:
        try:
            compressed = zlib.compress(data, self.level)
        except zlib.error as e:
            raise RuntimeError(f"zlib compression failed at level {self.level}: {e}")

        Print("DEBUG",
            f"{self._name}: {len(data):,} -> {len(compressed):,} bytes (level {self.level})"
        )
        return compressed

    @property
    def name(self) -> str:
        """Compressor identifier."""
        return self._name
