"""
Data model for the pngcore codec.

DecodedImage always stores pixels as interleaved RGBA8, row-major,
top-to-bottom, whatever the on-disk color type was.
"""

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import NamedTuple, Optional

from PIL import Image

from .errors import FormatError, InvalidKeyError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

IHDR = b"IHDR"
IDAT = b"IDAT"
IEND = b"IEND"

IHDR_LENGTH = 13
KEY_SIZE = 32

_IHDR_STRUCT = struct.Struct(">IIBBBBB")


class ColorType(IntEnum):
    """Color types admitted past header validation."""
    TRUECOLOR = 2
    TRUECOLOR_ALPHA = 6

    @property
    def bytes_per_pixel(self) -> int:
        if self is ColorType.TRUECOLOR:
            return 3
        return 4


class FilterKind(IntEnum):
    """Scanline filter byte values."""
    NONE = 0
    SUB = 1
    UP = 2
    AVERAGE = 3
    PAETH = 4


class CompressionTier(Enum):
    """
    Encode-side compression tier.

    Each tier binds a quantization depth (None means no quantization)
    and the name of the registered deflate backend.
    """
    LOSSLESS = ("lossless", None, "zlib-fast")
    BALANCED = ("balanced", 6, "zlib-best")
    MAXIMUM = ("maximum", 4, "zopfli")

    def __init__(self, label: str, quantization_bits: Optional[int], backend: str):
        self.label = label
        self.quantization_bits = quantization_bits
        self.backend = backend

    @classmethod
    def from_name(cls, name: str) -> "CompressionTier":
        for tier in cls:
            if tier.label == name.lower():
                return tier
        available = ', '.join(tier.label for tier in cls)
        raise ValueError(f"Unknown compression tier: '{name}'. Available tiers: {available}")


class Pixel(NamedTuple):
    red: int
    green: int
    blue: int
    alpha: int


@dataclass(frozen=True)
class ImageHeader:
    """Parsed IHDR fields. Immutable once parsed."""
    width: int
    height: int
    bit_depth: int = 8
    color_type: int = ColorType.TRUECOLOR_ALPHA
    compression_method: int = 0
    filter_method: int = 0
    interlace: int = 0

    @property
    def bytes_per_pixel(self) -> int:
        return ColorType(self.color_type).bytes_per_pixel

    @property
    def row_bytes(self) -> int:
        return self.width * self.bytes_per_pixel

    @property
    def has_alpha(self) -> bool:
        return self.color_type == ColorType.TRUECOLOR_ALPHA

    def to_bytes(self) -> bytes:
        return _IHDR_STRUCT.pack(
            self.width,
            self.height,
            self.bit_depth,
            self.color_type,
            self.compression_method,
            self.filter_method,
            self.interlace,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageHeader":
        """
        Parse a 13-byte IHDR payload.

        Only the framing is checked here; feature validation is the
        decoder's job.

        Raises:
            FormatError: If the payload is not exactly 13 bytes
        """
        if len(data) != IHDR_LENGTH:
            raise FormatError(f"IHDR must be {IHDR_LENGTH} bytes, got {len(data)}")
        return cls(*_IHDR_STRUCT.unpack(data))


class KeyMaterial:
    """
    Opaque 32-byte symmetric key.

    The codec never inspects where the key came from; it only checks
    the length.
    """

    __slots__ = ("_key",)

    def __init__(self, key: bytes):
        key = bytes(key)
        if len(key) != KEY_SIZE:
            raise InvalidKeyError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    def __bytes__(self) -> bytes:
        return self._key

    def __eq__(self, other) -> bool:
        if not isinstance(other, KeyMaterial):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __repr__(self) -> str:
        return "KeyMaterial(<32 bytes>)"


class DecodedImage:
    """
    An image header plus its canonical RGBA8 pixel buffer.

    Attributes:
        info: Header the image was decoded from (or built for)
        rgba: width * height * 4 bytes, interleaved RGBA
    """

    def __init__(self, info: ImageHeader, rgba: bytes):
        expected = info.width * info.height * 4
        if len(rgba) != expected:
            raise ValueError(
                f"RGBA buffer is {len(rgba)} bytes, expected {expected} "
                f"for {info.width}x{info.height}"
            )
        self.info = info
        self.rgba = bytes(rgba)

    @property
    def width(self) -> int:
        return self.info.width

    @property
    def height(self) -> int:
        return self.info.height

    def get(self, x: int, y: int) -> Pixel:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} image")
        base = (y * self.width + x) * 4
        return Pixel(*self.rgba[base:base + 4])

    def __repr__(self) -> str:
        return f"DecodedImage({self.width}x{self.height}, color_type={self.info.color_type})"

    @classmethod
    def from_rgba(cls, width: int, height: int, rgba: bytes) -> "DecodedImage":
        """Wrap a raw RGBA buffer in a TruecolorAlpha header."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        header = ImageHeader(width=width, height=height, color_type=ColorType.TRUECOLOR_ALPHA)
        return cls(header, rgba)

    @classmethod
    def from_pil(cls, image: Image.Image) -> "DecodedImage":
        """Convert any Pillow image to the canonical RGBA form."""
        if image.mode != 'RGBA':
            image = image.convert('RGBA')
        width, height = image.size
        return cls.from_rgba(width, height, image.tobytes())

    def to_pil(self) -> Image.Image:
        return Image.frombytes('RGBA', (self.width, self.height), self.rgba)
