"""Encoding and decoding utilities."""

from typing import Union

HASH_LENGTH = 32


def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string.

    Args:
        data: Bytes to convert

    Returns:
        str: Hexadecimal string with '0x' prefix
    """
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hexadecimal string to bytes.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith("0x"):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        raise ValueError("Hex string must have even number of characters")

    return bytes.fromhex(hex_str)


def ensure_hash32(data: Union[bytes, bytearray, str], name: str = "value") -> bytes:
    """
    Coerce a 32-byte hash given as bytes or hex string.

    Raises:
        ValueError: If the value is not exactly 32 bytes long
    """
    if isinstance(data, str):
        data = hex_to_bytes(data)
    elif isinstance(data, bytearray):
        data = bytes(data)
    elif not isinstance(data, bytes):
        raise TypeError(f"Expected bytes or str, got {type(data)}")

    if len(data) != HASH_LENGTH:
        raise ValueError(f"{name} must be {HASH_LENGTH} bytes, got {len(data)}")
    return data
