"""
Payload Cipher Protocol for PNGVault

Defines the contract for the optional IDAT confidentiality layer.
"""

from typing import Protocol

from pngcore.types import KeyMaterial


class PayloadCipher(Protocol):
    """
    Protocol for authenticated IDAT payload ciphers.

    A sealed payload must carry everything needed to open it with the
    same key (nonce and tag travel inside the payload). Opening a
    payload that was tampered with, or sealed under another key, must
    fail loudly rather than return garbage.
    """

    def seal(self, key: KeyMaterial, plaintext: bytes) -> bytes:
        """
        Encrypt and authenticate one IDAT payload.

        Args:
            key: 32-byte symmetric key
            plaintext: Compressed (zlib) image data

        Returns:
            Self-contained encrypted payload
        """
        ...

    def open(self, key: KeyMaterial, payload: bytes) -> bytes:
        """
        Verify and decrypt one IDAT payload.

        Raises:
            DecryptError: On authentication failure or a malformed payload
        """
        ...

    @property
    def name(self) -> str:
        """Cipher identifier (e.g., 'aes-256-gcm')."""
        ...
