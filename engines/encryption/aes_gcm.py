"""
AES-256-GCM payload cipher for PNGVault

Payload layout:

    nonce (12 bytes) | ciphertext | tag (16 bytes)

A fresh random nonce is drawn for every payload. Associated data is
empty, so IHDR and IEND stay in clear and are not bound to the payload.

Requirements:
- cryptography (pip install cryptography)
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from . import register_cipher
from pngcore.errors import DecryptError
from pngcore.types import KeyMaterial

NONCE_SIZE = 12
TAG_SIZE = 16


@register_cipher("aes-256-gcm")
class AESGCMCipherFactory:
    """Factory for creating AES-256-GCM cipher instances."""

    @staticmethod
    def create(config: dict) -> "AESGCMCipher":
        return AESGCMCipher(config)


class AESGCMCipher:
    """
    AES-256-GCM with a 96-bit random nonce and 128-bit tag.

    Attributes:
        associated_data: Bytes authenticated alongside each payload (default: empty)
    """

    def __init__(self, config: dict):
        self.associated_data = config.get('associated_data', b"")
        if isinstance(self.associated_data, str):
            self.associated_data = self.associated_data.encode('utf-8')

    def seal(self, key: KeyMaterial, plaintext: bytes) -> bytes:
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = AESGCM(bytes(key)).encrypt(nonce, plaintext, self.associated_data or None)
        return nonce + ciphertext

    def open(self, key: KeyMaterial, payload: bytes) -> bytes:
        if len(payload) < NONCE_SIZE + TAG_SIZE:
            raise DecryptError(
                f"Encrypted payload too short: {len(payload)} bytes, "
                f"need at least {NONCE_SIZE + TAG_SIZE} for nonce and tag"
            )

        nonce = payload[:NONCE_SIZE]
        ciphertext = payload[NONCE_SIZE:]
        try:
            return AESGCM(bytes(key)).decrypt(nonce, ciphertext, self.associated_data or None)
        except InvalidTag:
            raise DecryptError("Authentication failed: wrong key or tampered image data")

    @property
    def name(self) -> str:
        """Cipher identifier."""
        return "aes-256-gcm"
