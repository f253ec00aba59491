"""
Argon2id key provider for PNGVault

Requirements:
- argon2-cffi (pip install argon2-cffi)
"""

from argon2.low_level import Type, hash_secret_raw

from . import DERIVED_KEY_SIZE, SaltMixin, register_key_provider
from utilities import Print


@register_key_provider("argon2id")
class Argon2idKeyProviderFactory:
    """Factory for creating Argon2id key providers."""

    @staticmethod
    def create(config: dict) -> "Argon2idKeyProvider":
        return Argon2idKeyProvider(config)


class Argon2idKeyProvider(SaltMixin):
    """
    Memory-hard passphrase key derivation.

    Attributes:
        time_cost: Number of passes over memory
        memory_cost: Memory in KiB
        parallelism: Lanes
        salt_size: Bytes of salt generated for new outputs
    """

    def __init__(self, config: dict):
        self.time_cost = config.get('time_cost', 3)
        self.memory_cost = config.get('memory_cost', 65536)
        self.parallelism = config.get('parallelism', 4)
        self.salt_size = config.get('salt_size', 16)

    def derive_key(self, passphrase: bytes, salt: bytes) -> bytes:
        self._check_salt(salt)
        Print("DEBUG",
            f"argon2id: t={self.time_cost}, m={self.memory_cost} KiB, p={self.parallelism}"
        )
        return hash_secret_raw(
            secret=passphrase,
            salt=salt,
            time_cost=self.time_cost,
            memory_cost=self.memory_cost,
            parallelism=self.parallelism,
            hash_len=DERIVED_KEY_SIZE,
            type=Type.ID,
        )

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "argon2id"
