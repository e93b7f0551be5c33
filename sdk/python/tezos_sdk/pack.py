"""
Packing of Micheline values and script expression hashes
"""

from typing import Union

from . import base58, micheline
from .crypto import blake2b
from .errors import MalformedOperationBytes
from .forge import forge_address, forge_key_hash, unforge_address
from .micheline import MichelineBytes, MichelineExpression, MichelineInt, MichelineString

PACK_MARKER = 0x05


def pack(value: MichelineExpression) -> str:
    """
    Pack a Micheline value as the chain does for hashing and signing.

    Args:
        value: Micheline expression

    Returns:
        Hex of 0x05 followed by the binary expression

    Example:
        >>> pack(MichelineString("123123123"))
        '050100000009313233313233313233'
    """
    return (bytes([PACK_MARKER]) + micheline.encode(value)).hex()


def pack_int(value: int) -> str:
    return pack(MichelineInt(value))


def pack_string(value: str) -> str:
    return pack(MichelineString(value))


def pack_bytes(value: bytes) -> str:
    return pack(MichelineBytes(value))


def pack_address(address: str) -> str:
    """Pack an address in its 22-byte binary form."""
    return pack(MichelineBytes(forge_address(address)))


def pack_key_hash(address: str) -> str:
    """Pack an implicit account in its 21-byte key hash form."""
    return pack(MichelineBytes(forge_key_hash(address)))


def unpack(packed: Union[str, bytes]) -> MichelineExpression:
    """
    Unpack a packed value.

    Raises:
        MalformedOperationBytes: missing 0x05 marker or invalid expression
    """
    if isinstance(packed, str):
        try:
            packed = bytes.fromhex(packed)
        except ValueError as e:
            raise MalformedOperationBytes(f"invalid packed hex: {e}") from e
    if not packed or packed[0] != PACK_MARKER:
        raise MalformedOperationBytes("packed data must start with 0x05")
    return micheline.decode(packed[1:])


def unpack_address(packed: Union[str, bytes]) -> str:
    value = unpack(packed)
    if not isinstance(value, MichelineBytes):
        raise MalformedOperationBytes(f"packed value is not an address: {value!r}")
    return unforge_address(value.value)


# ============================================================================
# EXPRESSION HASHES
# ============================================================================

def expression_hash(packed: Union[str, bytes]) -> str:
    """
    Script expression hash of packed data, as used for big map keys.

    Returns:
        expr Base58Check hash
    """
    if isinstance(packed, str):
        packed = bytes.fromhex(packed)
    return base58.encode(blake2b(packed, 32), "expr")


def hash_value(value: MichelineExpression) -> str:
    return expression_hash(pack(value))


def hash_int(value: int) -> str:
    return expression_hash(pack_int(value))


def hash_string(value: str) -> str:
    return expression_hash(pack_string(value))


def hash_bytes(value: bytes) -> str:
    return expression_hash(pack_bytes(value))


def hash_address(address: str) -> str:
    return expression_hash(pack_address(address))


def hash_key_hash(address: str) -> str:
    return expression_hash(pack_key_hash(address))
