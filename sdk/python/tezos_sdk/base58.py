"""
Base58Check encoding for Tezos addresses, keys, signatures and hashes
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, Tuple

import base58

from .errors import ChecksumMismatch, InvalidBase58, InvalidPrefix


CHECKSUM_LENGTH = 4

# Prepended to operation bytes before hashing for a signature
GENERIC_OPERATION_WATERMARK = bytes([3])


@dataclass(frozen=True)
class Prefix:
    """A Base58Check prefix and the payload length it wraps."""
    name: str
    value: bytes
    payload_length: int


def _prefix(name: str, value, payload_length: int) -> Prefix:
    return Prefix(name, bytes(value), payload_length)


PREFIXES: Dict[str, Prefix] = {
    p.name: p for p in (
        # Addresses
        _prefix("tz1", [6, 161, 159], 20),
        _prefix("tz2", [6, 161, 161], 20),
        _prefix("tz3", [6, 161, 164], 20),
        _prefix("KT1", [2, 90, 121], 20),
        # Keys
        _prefix("edsk", [43, 246, 78, 7], 64),
        _prefix("edsk_seed", [13, 15, 58, 7], 32),
        _prefix("edpk", [13, 15, 37, 217], 32),
        _prefix("sppk", [3, 254, 226, 86], 33),
        _prefix("p2pk", [3, 178, 139, 127], 33),
        _prefix("edesk", [7, 90, 60, 179, 41], 56),
        # Signatures
        _prefix("edsig", [9, 245, 205, 134, 18], 64),
        _prefix("sig", [4, 130, 43], 64),
        # Chain hashes
        _prefix("branch", [1, 52], 32),
        _prefix("protocol", [2, 170], 32),
        _prefix("operation", [5, 116], 32),
        _prefix("operations_hash", [29, 159, 109], 32),
        _prefix("context", [79, 179], 32),
        _prefix("nonce_hash", [69, 220, 169], 32),
        _prefix("chain_id", [87, 82, 0], 4),
        _prefix("expr", [13, 44, 64, 27], 32),
    )
}


def _checksum(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[:CHECKSUM_LENGTH]


def b58encode_check(data: bytes) -> str:
    """
    Base58-encode data with a 4-byte double-SHA256 checksum appended.

    Args:
        data: Raw bytes (prefix included)

    Returns:
        Base58 text
    """
    return base58.b58encode(data + _checksum(data)).decode('ascii')


def b58decode_check(text: str) -> bytes:
    """
    Decode Base58Check text and verify its checksum.

    Args:
        text: Base58 text

    Returns:
        Decoded bytes without the checksum

    Raises:
        InvalidBase58: text has characters outside the alphabet or is too short
        ChecksumMismatch: checksum does not match
    """
    try:
        raw = base58.b58decode(text)
    except ValueError as e:
        raise InvalidBase58(f"invalid base58 text {text!r}: {e}") from e
    if len(raw) < CHECKSUM_LENGTH:
        raise InvalidBase58(f"base58 text {text!r} is shorter than a checksum")
    data, checksum = raw[:-CHECKSUM_LENGTH], raw[-CHECKSUM_LENGTH:]
    if _checksum(data) != checksum:
        raise ChecksumMismatch(f"checksum mismatch for {text!r}")
    return data


def encode(payload: bytes, prefix) -> str:
    """
    Encode a payload under a prefix.

    Args:
        payload: Raw payload bytes
        prefix: Prefix name (e.g. "tz1"), Prefix, or raw prefix bytes

    Returns:
        Base58Check text

    Example:
        >>> encode(bytes(20), "tz1")
        'tz1Ke2h7sDdakHJQh8WX4Z372du1KChsksyU'
    """
    if isinstance(prefix, str):
        prefix = get_prefix(prefix)
    if isinstance(prefix, Prefix):
        if len(payload) != prefix.payload_length:
            raise ValueError(
                f"{prefix.name} payload must be {prefix.payload_length} bytes, got {len(payload)}"
            )
        prefix = prefix.value
    return b58encode_check(bytes(prefix) + bytes(payload))


def decode(text: str) -> Tuple[Prefix, bytes]:
    """
    Decode Base58Check text, identifying its prefix.

    The prefix is matched on both its bytes and the payload length it wraps.

    Returns:
        Tuple of (prefix, payload)

    Raises:
        InvalidPrefix: no known prefix matches
    """
    data = b58decode_check(text)
    for prefix in PREFIXES.values():
        if data.startswith(prefix.value) and len(data) == len(prefix.value) + prefix.payload_length:
            return prefix, data[len(prefix.value):]
    raise InvalidPrefix(f"unknown prefix for {text!r}")


def decode_with_prefix(text: str, expected) -> bytes:
    """
    Decode Base58Check text that must carry the expected prefix.

    Args:
        text: Base58Check text
        expected: Prefix name, Prefix, or raw prefix bytes

    Returns:
        Payload bytes
    """
    if isinstance(expected, str):
        expected = get_prefix(expected)
    data = b58decode_check(text)
    if isinstance(expected, Prefix):
        if not data.startswith(expected.value) or len(data) != len(expected.value) + expected.payload_length:
            raise InvalidPrefix(f"expected {expected.name} prefix for {text!r}")
        return data[len(expected.value):]
    expected = bytes(expected)
    if not data.startswith(expected):
        raise InvalidPrefix(f"expected prefix {expected.hex()} for {text!r}")
    return data[len(expected):]


def get_prefix(name: str) -> Prefix:
    try:
        return PREFIXES[name]
    except KeyError:
        raise InvalidPrefix(f"unknown prefix name {name!r}") from None
