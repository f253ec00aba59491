"""
Key Provider Protocol for PNGVault

Key providers turn a passphrase and salt into the 32-byte key the codec
consumes. The codec itself never derives keys.
"""

from typing import Protocol


class KeyProvider(Protocol):
    """
    Protocol for passphrase-based key derivation.
    """

    def derive_key(self, passphrase: bytes, salt: bytes) -> bytes:
        """
        Derive a 32-byte key.

        Args:
            passphrase: User secret, already encoded to bytes
            salt: Random salt persisted alongside the encrypted output

        Returns:
            32 bytes of key material

        Raises:
            ValueError: If the salt is shorter than the provider's minimum
        """
        ...

    def generate_salt(self) -> bytes:
        """Return a fresh random salt of the configured size."""
        ...

    @property
    def name(self) -> str:
        """Provider identifier (e.g., 'argon2id', 'pbkdf2')."""
        ...
