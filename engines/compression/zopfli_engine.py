"""
Zopfli compression backend for PNGVault

Zopfli runs an iterative optimal-parse search over the deflate
encoding. It is orders of magnitude slower than zlib and produces
streams that any zlib inflater reads. Used by the Maximum tier.

Requirements:
- zopfli (pip install zopfli)
"""

import zopfli.zlib

from . import register_compressor
from utilities import Print


@register_compressor("zopfli")
class ZopfliCompressorFactory:
    """Factory for creating Zopfli compressor instances."""

    @staticmethod
    def create(config: dict) -> "ZopfliCompressor":
        return ZopfliCompressor(config)


class ZopfliCompressor:
    """
    Near-optimal deflate via a fixed number of Zopfli iterations.

    Attributes:
        iterations: Optimal-parse passes, run to completion every time
        block_splitting: Let Zopfli split the stream into several deflate blocks
    """

    def __init__(self, config: dict):
        """
        Initialize Zopfli compressor with configuration.

        Args:
            config: Configuration dictionary with optional keys:
                - iterations: int - Number of passes (default: 100)
                - block_splitting: bool - Split into blocks (default: False)
        """
        self.iterations = config.get('iterations', 100)
        self.block_splitting = config.get('block_splitting', False)
        if self.iterations < 1:
            raise ValueError(f"Zopfli iterations must be >= 1, got {self.iterations}")

    def compress(self, data: bytes) -> bytes:
        try:
            compressed = zopfli.zlib.compress(
                data,
                numiterations=self.iterations,
                blocksplitting=self.block_splitting,
            )
        except Exception as e:
            raise RuntimeError(
                f"Zopfli compression failed: {e}\n"
                f"Input: {len(data):,} bytes, iterations: {self.iterations}"
            )

        ratio = len(data) / len(compressed) if compressed else 0
        Print("DEBUG",
            f"zopfli: {len(data):,} -> {len(compressed):,} bytes "
            f"(ratio: {ratio:.1f}:1, {self.iterations} iterations)"
        )
        return compressed

    @property
    def name(self) -> str:
        """Compressor identifier."""
        return "zopfli"
