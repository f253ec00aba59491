"""
PBKDF2-HMAC-SHA256 key provider for PNGVault

Requirements:
- cryptography (pip install cryptography)
"""

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from . import DERIVED_KEY_SIZE, SaltMixin, register_key_provider
from utilities import Print


@register_key_provider("pbkdf2")
class PBKDF2KeyProviderFactory:
    """Factory for creating PBKDF2 key providers."""

    @staticmethod
    def create(config: dict) -> "PBKDF2KeyProvider":
        return PBKDF2KeyProvider(config)


class PBKDF2KeyProvider(SaltMixin):
    """
    PBKDF2 with HMAC-SHA256.

    Attributes:
        iterations: PRF iterations
        salt_size: Bytes of salt generated for new outputs
    """

    def __init__(self, config: dict):
        self.iterations = config.get('iterations', 600_000)
        self.salt_size = config.get('salt_size', 16)

    def derive_key(self, passphrase: bytes, salt: bytes) -> bytes:
        self._check_salt(salt)
        Print("DEBUG", f"pbkdf2: sha256, {self.iterations:,} iterations")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=DERIVED_KEY_SIZE,
            salt=salt,
            iterations=self.iterations,
        )
        return kdf.derive(passphrase)

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "pbkdf2"
