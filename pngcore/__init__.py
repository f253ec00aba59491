"""
pngcore: chunked raster image codec for PNGVault

8-bit Truecolor / TruecolorAlpha PNG decode and encode with optional
AES-256-GCM encryption of the IDAT payload.

Usage:
    from pngcore import CompressionTier
    from pngcore.decoder import read_from_file
    from pngcore.encoder import save

    image = read_from_file("in.png")
    save(image, "out.png", tier=CompressionTier.MAXIMUM)

The decoder and encoder modules are not imported here: they depend on
the engines and processors packages, which themselves import pngcore.
"""

from .errors import (
    ChecksumError,
    CodecError,
    CodecIOError,
    DecryptError,
    FormatError,
    InvalidKeyError,
    SizeMismatch,
    UnsupportedFeature,
)
from .types import (
    ColorType,
    CompressionTier,
    DecodedImage,
    FilterKind,
    ImageHeader,
    KeyMaterial,
    Pixel,
    PNG_SIGNATURE,
)
from .progress import NullProgressObserver, ProgressObserver

__all__ = [
    'ChecksumError', 'CodecError', 'CodecIOError', 'DecryptError', 'FormatError',
    'InvalidKeyError', 'SizeMismatch', 'UnsupportedFeature',
    'ColorType', 'CompressionTier', 'DecodedImage', 'FilterKind', 'ImageHeader',
    'KeyMaterial', 'Pixel', 'PNG_SIGNATURE',
    'NullProgressObserver', 'ProgressObserver',
]
