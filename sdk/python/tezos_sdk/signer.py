"""
Operation signing and verification
"""

import logging
from dataclasses import dataclass
from typing import Union

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from . import base58
from .base58 import GENERIC_OPERATION_WATERMARK
from .crypto import blake2b
from .errors import InvalidSignature, TezosError
from .wallet import Wallet

logger = logging.getLogger("tezos_sdk.signer")


@dataclass(frozen=True)
class Signature:
    """A raw 64-byte Ed25519 signature"""
    value: bytes

    @classmethod
    def from_base58(cls, text: str) -> "Signature":
        prefix, payload = base58.decode(text)
        if prefix.name not in ("edsig", "sig"):
            raise InvalidSignature(f"{text!r} is not a signature")
        return cls(payload)

    def to_base58(self) -> str:
        return base58.encode(self.value, "edsig")

    def to_hex(self) -> str:
        return self.value.hex()

    def append_to_bytes(self, operation: bytes) -> bytes:
        return operation + self.value

    def append_to_hex(self, operation_hex: str) -> str:
        return operation_hex + self.to_hex()

    def __str__(self) -> str:
        return self.to_base58()


def operation_digest(operation: bytes) -> bytes:
    """Blake2b-256 of the watermarked operation bytes."""
    return blake2b(GENERIC_OPERATION_WATERMARK + operation, 32)


def sign_bytes(operation: bytes, wallet: Wallet) -> Signature:
    signing_key = SigningKey(wallet.key_pair.secret_key[:32])
    signed = signing_key.sign(operation_digest(operation))
    return Signature(signed.signature)


def sign(operation_hex: str, wallet: Wallet) -> str:
    """
    Sign forged operation bytes.

    Args:
        operation_hex: Forged operation as hex
        wallet: Signing wallet

    Returns:
        edsig Base58Check signature

    Example:
        >>> signature = sign(forge(branch, contents).hex(), wallet)
        >>> injectable = append_to_hex(signature, operation_hex)
    """
    signature = sign_bytes(bytes.fromhex(operation_hex), wallet)
    logger.debug(f"Signed {len(operation_hex) // 2} operation bytes with {wallet.address}")
    return signature.to_base58()


def append_to_hex(signature: Union[str, Signature], operation_hex: str) -> str:
    """
    Append a signature's raw bytes to operation hex, giving injectable hex.
    """
    if isinstance(signature, str):
        signature = Signature.from_base58(signature)
    return signature.append_to_hex(operation_hex)


def encode_signature(signature_hex: str) -> str:
    """Encode a raw hex signature as edsig."""
    return Signature(bytes.fromhex(signature_hex)).to_base58()


def verify(operation: Union[str, bytes], signature: Union[str, Signature], public_key: str) -> bool:
    """
    Verify a signature over forged operation bytes.

    Args:
        operation: Forged operation as bytes or hex (without signature)
        signature: edsig text or Signature
        public_key: edpk public key

    Returns:
        True if signature is valid, False otherwise
    """
    if isinstance(operation, str):
        operation = bytes.fromhex(operation)
    try:
        if isinstance(signature, str):
            signature = Signature.from_base58(signature)
        verify_key = VerifyKey(base58.decode_with_prefix(public_key, "edpk"))
        verify_key.verify(operation_digest(operation), signature.value)
    except (BadSignatureError, TezosError):
        return False
    return True
