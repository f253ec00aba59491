"""
Error taxonomy for the pngcore codec.

Every failure is fatal for the file being processed: decode and encode
abort on the first error and never hand back a partial image.
"""


class CodecError(RuntimeError):
    """Base class for all codec failures."""


class FormatError(CodecError):
    """Bad signature, truncated input, or malformed chunk framing."""


class ChecksumError(FormatError):
    """A chunk CRC did not match (only raised when CRC verification is on)."""


class UnsupportedFeature(CodecError):
    """Interlacing, bit depth, color type or filter byte outside the supported set."""


class SizeMismatch(CodecError):
    """Inflated image data length differs from height * (1 + row_bytes)."""


class DecryptError(CodecError):
    """AEAD authentication failure or an encrypted payload too short to be valid."""


class CodecIOError(CodecError):
    """Opening, reading or writing a file failed."""


class InvalidKeyError(CodecError):
    """Key material is not exactly 32 bytes."""
