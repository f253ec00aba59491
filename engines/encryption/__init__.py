"""
Payload Cipher Registry for PNGVault

Factory pattern with decorator-based registration.

Usage:
    cipher = get_cipher("aes-256-gcm", config)
    payload = cipher.seal(key, compressed)
"""

from typing import Dict, Callable
from .base import PayloadCipher

# Global registry of payload cipher factories
CIPHER_REGISTRY: Dict[str, Callable[[dict], PayloadCipher]] = {}

DEFAULT_CIPHER = "aes-256-gcm"


def register_cipher(name: str):
    """
    Decorator to register payload cipher factories.

    Args:
        name: Unique identifier for this cipher

    Returns:
        Decorator function that registers the factory class
    """
    def decorator(factory_class):
        CIPHER_REGISTRY[name] = factory_class.create
        return factory_class
    return decorator


def get_cipher(name: str, config: dict) -> PayloadCipher:
    """
    Get a payload cipher instance by name.

    Raises:
        ValueError: If cipher name is not registered
    """
    if name not in CIPHER_REGISTRY:
        available = ', '.join(CIPHER_REGISTRY.keys()) if CIPHER_REGISTRY else 'none'
        raise ValueError(
            f"Unknown cipher: '{name}'. "
            f"Available ciphers: {available}"
        )
    return CIPHER_REGISTRY[name](config)


from . import aes_gcm  # noqa: E402,F401
