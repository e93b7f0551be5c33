"""
Zarith variable-length integer encoding
"""

from typing import Tuple

from .errors import MalformedOperationBytes


CONTINUATION = 0x80
SIGN = 0x40


def encode_nat(value: int) -> bytes:
    """
    Encode a non-negative integer as a Zarith natural.

    Args:
        value: Integer >= 0

    Returns:
        7-bit groups, least significant first, with 0x80 marking continuation

    Example:
        >>> encode_nat(1200000).hex()
        '809f49'
    """
    if value < 0:
        raise ValueError(f"natural number must be non-negative, got {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | CONTINUATION)
        else:
            out.append(byte)
            return bytes(out)


def encode_int(value: int) -> bytes:
    """
    Encode a signed integer as a Zarith integer.

    The first byte carries the sign bit (0x40) and 6 magnitude bits.

    Example:
        >>> encode_int(-11110).hex()
        'e6ad01'
    """
    magnitude = abs(value)
    first = magnitude & 0x3F
    if value < 0:
        first |= SIGN
    magnitude >>= 6
    if not magnitude:
        return bytes([first])
    return bytes([first | CONTINUATION]) + encode_nat(magnitude)


def read_nat(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Read a Zarith natural from a byte stream.

    Returns:
        Tuple of (value, offset after the value)
    """
    value = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise MalformedOperationBytes("truncated zarith natural")
        byte = data[offset]
        offset += 1
        value |= (byte & 0x7F) << shift
        shift += 7
        if not byte & CONTINUATION:
            return value, offset


def read_int(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Read a Zarith integer from a byte stream.

    Returns:
        Tuple of (value, offset after the value)
    """
    if offset >= len(data):
        raise MalformedOperationBytes("truncated zarith integer")
    first = data[offset]
    offset += 1
    value = first & 0x3F
    if first & CONTINUATION:
        rest, offset = read_nat(data, offset)
        value |= rest << 6
    if first & SIGN:
        value = -value
    return value, offset


def decode_nat(data: bytes) -> int:
    value, offset = read_nat(data)
    if offset != len(data):
        raise MalformedOperationBytes(f"{len(data) - offset} trailing bytes after zarith natural")
    return value


def decode_int(data: bytes) -> int:
    value, offset = read_int(data)
    if offset != len(data):
        raise MalformedOperationBytes(f"{len(data) - offset} trailing bytes after zarith integer")
    return value
