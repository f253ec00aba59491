"""
Key Provider Registry for PNGVault

Factory pattern with decorator-based registration.

Usage:
    provider = get_key_provider("argon2id", config)
    key = KeyMaterial(provider.derive_key(passphrase, salt))
"""

import os
from typing import Dict, Callable
from .base import KeyProvider

# Global registry of key provider factories
KEY_PROVIDER_REGISTRY: Dict[str, Callable[[dict], KeyProvider]] = {}

DERIVED_KEY_SIZE = 32
MIN_SALT_SIZE = 8


def register_key_provider(name: str):
    """
    Decorator to register key provider factories.

    Args:
        name: Unique identifier for this provider

    Returns:
        Decorator function that registers the factory class
    """
    def decorator(factory_class):
        KEY_PROVIDER_REGISTRY[name] = factory_class.create
        return factory_class
    return decorator


def get_key_provider(name: str, config: dict) -> KeyProvider:
    """
    Get a key provider instance by name.

    Raises:
        ValueError: If provider name is not registered
    """
    if name not in KEY_PROVIDER_REGISTRY:
        available = ', '.join(KEY_PROVIDER_REGISTRY.keys()) if KEY_PROVIDER_REGISTRY else 'none'
        raise ValueError(
            f"Unknown key provider: '{name}'. "
            f"Available providers: {available}"
        )
    return KEY_PROVIDER_REGISTRY[name](config)


class SaltMixin:
    """Salt generation and checking shared by the providers."""

    salt_size: int = 16

    def generate_salt(self) -> bytes:
        return os.urandom(self.salt_size)

    def _check_salt(self, salt: bytes) -> None:
        if len(salt) < MIN_SALT_SIZE:
            raise ValueError(f"Salt must be at least {MIN_SALT_SIZE} bytes, got {len(salt)}")


from . import argon2id  # noqa: E402,F401
from . import pbkdf2  # noqa: E402,F401
