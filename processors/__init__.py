"""
Pixel processors for PNGVault

Encode-side modules that run between the RGBA buffer and the compressor.
"""

from .preprocessing import Preprocessor
from .filter_selection import FilterSelector

__all__ = ['Preprocessor', 'FilterSelector']
