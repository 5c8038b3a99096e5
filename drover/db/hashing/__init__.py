"""
Hash algorithm strategies and registry.

Fingerprints use two independently configured algorithms (short and
long); both are looked up here by name.
"""

from .registry import HashAlgorithmRegistry
from .strategies import (
    Blake3Strategy,
    HashStrategy,
    MD5Strategy,
    SHA256Strategy,
    SHA512Strategy,
)

__all__ = [
    "Blake3Strategy",
    "HashAlgorithmRegistry",
    "HashStrategy",
    "MD5Strategy",
    "SHA256Strategy",
    "SHA512Strategy",
]
