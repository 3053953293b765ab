#!/usr/bin/env python3
"""
Checksum helpers for downloaded installers.
Digests are uppercase hex, the form Chocolatey install scripts carry.
"""

import hashlib
from pathlib import Path
from typing import Union

from update_errors import ConfigurationError

# Chocolatey checksumType names -> hashlib constructor names
SUPPORTED_ALGORITHMS = {
    'MD5': 'md5',
    'SHA1': 'sha1',
    'SHA256': 'sha256',
    'SHA384': 'sha384',
    'SHA512': 'sha512',
}
DEFAULT_ALGORITHM = 'SHA256'
CHUNK_SIZE = 8192


def normalize_algorithm(algorithm: str) -> str:
    """Return the canonical algorithm tag or raise ConfigurationError"""
    tag = (algorithm or '').strip().upper().replace('-', '')
    if tag not in SUPPORTED_ALGORITHMS:
        supported = ', '.join(SUPPORTED_ALGORITHMS)
        raise ConfigurationError(f"Unsupported hash algorithm '{algorithm}' (expected one of: {supported})")
    return tag


def compute_file_hash(path: Union[str, Path], algorithm: str = DEFAULT_ALGORITHM) -> str:
    """
    Hash the full content of a local file

    Args:
        path: File to hash
        algorithm: One of MD5, SHA1, SHA256, SHA384, SHA512 (case-insensitive)

    Returns:
        Uppercase hexadecimal digest
    """
    tag = normalize_algorithm(algorithm)
    digest = hashlib.new(SUPPORTED_ALGORITHMS[tag])
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest().upper()
