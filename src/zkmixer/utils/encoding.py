"""Encoding and decoding utilities."""

FIELD_BYTES = 32


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


def field_to_bytes(value: int) -> bytes:
    """
    Encode a non-negative integer as 32 big-endian bytes.

    Raises:
        ValueError: If value is negative, not an int, or wider than 256 bits
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected int field element, got {type(value).__name__}")
    if value < 0 or value.bit_length() > FIELD_BYTES * 8:
        raise ValueError("Field element out of range")
    return value.to_bytes(FIELD_BYTES, "big")
