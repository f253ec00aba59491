"""
Encode-side pixel preprocessing.

Two lossy-for-invisible-or-fine-detail transforms run before filtering:

1. Alpha zeroing: a fully transparent pixel has no visible color, so its
   RGB is forced to (0, 0, 0). Runs of identical bytes deflate far better
   than whatever color happened to be left under the transparency.

2. Uniform quantization: each of R, G, B is snapped down to a grid of
   2**bits levels spaced floor(255 / levels) apart, then clamped to the
   top level. Alpha is never quantized.

       levels  = 2 ** bits
       step    = 255 // levels
       max_val = (levels - 1) * step
       q(v)    = min((v // step) * step, max_val)

   With bits=4 this gives step 15 and max_val 225, so 255 maps to 225.

Neither transform changes the buffer shape; the output is always
width * height * 4 bytes.
"""

from typing import Optional

from pngcore.types import CompressionTier
from utilities import Print


def optimize_alpha_channel(rgba: bytes) -> bytearray:
    """Force RGB to black wherever alpha is 0."""
    out = bytearray(rgba)
    for base in range(3, len(out), 4):
        if out[base] == 0:
            out[base - 3:base] = b"\x00\x00\x00"
    return out


def quantize_channel(value: int, bits: int) -> int:
    levels = 1 << bits
    step = 255 // levels
    max_val = (levels - 1) * step
    return min((value // step) * step, max_val)


def quantization_table(bits: int) -> bytes:
    """256-entry lookup table of quantize_channel for every byte value."""
    return bytes(quantize_channel(value, bits) for value in range(256))


def quantize_rgba(rgba: bytes, bits: int) -> bytearray:
    """Quantize R, G and B of every pixel; alpha passes through."""
    if not 1 <= bits <= 7:
        raise ValueError(f"Quantization bits must be 1-7, got {bits}")

    table = quantization_table(bits)
    out = bytearray(rgba)
    # Translate everything, then put the original alpha bytes back
    quantized = out.translate(table)
    quantized[3::4] = out[3::4]
    return quantized


def has_alpha(rgba: bytes) -> bool:
    """True if any pixel is not fully opaque."""
    return any(alpha != 255 for alpha in rgba[3::4])


class Preprocessor:
    """
    Applies the preprocessing a compression tier calls for.

    Attributes:
        tier: Tier whose quantization depth is applied
        quantization_bits: Bits kept per color channel, or None for lossless
    """

    def __init__(self, tier: CompressionTier):
        self.tier = tier
        self.quantization_bits: Optional[int] = tier.quantization_bits

    def process(self, rgba: bytes) -> bytearray:
        """
        Run alpha zeroing, then quantization when the tier is lossy.

        Args:
            rgba: Canonical RGBA buffer

        Returns:
            New RGBA buffer of the same length
        """
        out = optimize_alpha_channel(rgba)
        if self.quantization_bits is not None:
            out = quantize_rgba(out, self.quantization_bits)
            Print("DEBUG", f"Quantized color channels to {self.quantization_bits} bits")
        return out

    @property
    def name(self) -> str:
        return f"preprocess-{self.tier.label}"
