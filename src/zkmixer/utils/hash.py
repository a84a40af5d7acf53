"""Cryptographic hash utilities."""

import hashlib
from typing import Union

from zkmixer.utils.encoding import field_to_bytes

# Pallas base field, the native field of the proof system the roots target.
FIELD_MODULUS = 0x40000000000000000000000000000000224698FC094CF91B992D30ED00000001

# Any field element fits in a map at least this deep.
FIELD_BITS = FIELD_MODULUS.bit_length()

DIGEST_SIZE = 32

COMMITMENT_DOMAIN = b"zkmixer/commitment"
NULLIFIER_DOMAIN = b"zkmixer/nullifier"
IDENTITY_DOMAIN = b"zkmixer/identity"
LEAF_DOMAIN = b"zkmixer/leaf"


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


def merkle_hash(left: bytes, right: bytes) -> bytes:
    """
    Compute Merkle tree hash of two siblings.

    Args:
        left: Left child hash (32 bytes)
        right: Right child hash (32 bytes)

    Returns:
        bytes: Parent hash (32 bytes)
    """
    if not isinstance(left, bytes) or len(left) != DIGEST_SIZE:
        raise ValueError("Left hash must be 32 bytes")
    if not isinstance(right, bytes) or len(right) != DIGEST_SIZE:
        raise ValueError("Right hash must be 32 bytes")

    return sha256(left + right)


def hash_fields(*fields: int, domain: bytes) -> int:
    """
    Hash a sequence of field elements into a field element.

    Each input is encoded as 32 big-endian bytes after a length-prefixed
    domain tag; the SHA-256 output is reduced modulo FIELD_MODULUS.

    Args:
        *fields: Field elements to absorb
        domain: Domain separation tag

    Returns:
        int: Field element
    """
    encoded = bytes([len(domain)]) + domain + bytes([len(fields)])
    for value in fields:
        encoded += field_to_bytes(value)
    return int.from_bytes(sha256(encoded), "big") % FIELD_MODULUS


def hash_leaf(value: int) -> bytes:
    """Digest of a sparse map leaf holding ``value``."""
    return hash_concatenate(LEAF_DOMAIN, field_to_bytes(value))
