"""
Pluggable engines for PNGVault: compression, encryption, key derivation.

Each subpackage keeps its own registry; see get_compressor, get_cipher
and get_key_provider.
"""
