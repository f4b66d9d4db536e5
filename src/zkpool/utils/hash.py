"""Cryptographic hash utilities."""

import hashlib
from typing import Union


def sha256(data: Union[bytes, str]) -> bytes:
    """
    Compute SHA-256 hash of data.

    Args:
        data: Bytes or string to hash

    Returns:
        bytes: 32-byte SHA-256 hash
    """
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def hash_concatenate(*data: Union[bytes, str]) -> bytes:
    """
    Hash concatenated data.

    Args:
        *data: Multiple bytes or strings to concatenate and hash

    Returns:
        bytes: SHA-256 hash of concatenated data
    """
    concatenated = b""
    for item in data:
        if isinstance(item, str):
            concatenated += item.encode('utf-8')
        else:
            concatenated += item
    return sha256(concatenated)
