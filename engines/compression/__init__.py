"""
Deflate Compressor Registry for PNGVault

Factory pattern with decorator-based registration.

Usage:
    # In compressor implementation:
    @register_compressor("zlib-best")
    class ZlibBestCompressorFactory:
        @staticmethod
        def create(config: dict) -> DeflateCompressor:
            return ZlibCompressor("zlib-best", config)

    # To get a compressor:
    compressor = get_compressor("zlib-best", config)
"""

from typing import Dict, Callable
from .base import DeflateCompressor

# Global registry of deflate compressor factories
COMPRESSOR_REGISTRY: Dict[str, Callable[[dict], DeflateCompressor]] = {}


def register_compressor(name: str):
    """
    Decorator to register deflate compressor factories.

    Args:
        name: Unique identifier for this compressor

    Returns:
        Decorator function that registers the factory class
    """
    def decorator(factory_class):
        COMPRESSOR_REGISTRY[name] = factory_class.create
        return factory_class
    return decorator


def get_compressor(name: str, config: dict) -> DeflateCompressor:
    """
    Get a deflate compressor instance by name.

    Args:
        name: Compressor identifier (must be registered)
        config: Compressor-specific configuration dictionary

    Returns:
        Initialized compressor instance

    Raises:
        ValueError: If compressor name is not registered
    """
    if name not in COMPRESSOR_REGISTRY:
        available = ', '.join(COMPRESSOR_REGISTRY.keys()) if COMPRESSOR_REGISTRY else 'none'
        raise ValueError(
            f"Unknown compressor: '{name}'. "
            f"Available compressors: {available}"
        )
    return COMPRESSOR_REGISTRY[name](config)


# Import backends to trigger registration
from . import zlib_engine  # noqa: E402,F401
from . import zopfli_engine  # noqa: E402,F401
