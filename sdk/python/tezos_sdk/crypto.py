"""
Cryptographic utilities for Tezos keys
"""

import hashlib

import nacl.encoding
import nacl.hash
import nacl.secret
from nacl.exceptions import CryptoError
from nacl.signing import SigningKey

from . import base58
from .config import ENCRYPTED_KEY_ITERATIONS, MNEMONIC_ITERATIONS, SEED_LENGTH
from .errors import InvalidPassword, InvalidSecretFormat, TezosError
from .models import Address, KeyPair

ENCRYPTED_SECRET_LENGTH = 88
SALT_LENGTH = 8
PUBLIC_KEY_PREFIXES = ("edpk", "sppk", "p2pk")


def blake2b(data: bytes, digest_size: int = 32) -> bytes:
    """Raw Blake2b digest."""
    return nacl.hash.blake2b(data, digest_size=digest_size, encoder=nacl.encoding.RawEncoder)


class TezosCrypto:
    """
    Key derivation and validation helpers.

    Uses Ed25519 via PyNaCl.
    """

    @staticmethod
    def generate_keypair() -> KeyPair:
        """
        Generate a new random Ed25519 keypair.

        Example:
            >>> key_pair = TezosCrypto.generate_keypair()
            >>> print(TezosCrypto.public_key_hash(key_pair.public_key))
        """
        return TezosCrypto.derive_keypair_from_seed(bytes(SigningKey.generate()))

    @staticmethod
    def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
        """
        Derive a 32-byte seed from a mnemonic.

        Args:
            mnemonic: Space-separated mnemonic words
            passphrase: Optional passphrase (for fundraiser wallets, email + password)

        Returns:
            32-byte seed
        """
        return hashlib.pbkdf2_hmac(
            'sha512',
            mnemonic.encode('utf-8'),
            ("mnemonic" + passphrase).encode('utf-8'),
            MNEMONIC_ITERATIONS,
            SEED_LENGTH,
        )

    @staticmethod
    def derive_keypair_from_seed(seed: bytes) -> KeyPair:
        """
        Derive an Ed25519 keypair from a seed.

        Args:
            seed: 32-byte seed

        Returns:
            KeyPair whose secret key is seed followed by public key (64 bytes)
        """
        if len(seed) != SEED_LENGTH:
            raise InvalidSecretFormat(f"seed must be {SEED_LENGTH} bytes, got {len(seed)}")
        signing_key = SigningKey(seed)
        public_key = bytes(signing_key.verify_key)
        return KeyPair(public_key=public_key, secret_key=seed + public_key)

    @staticmethod
    def public_key_hash(public_key: bytes) -> str:
        """
        Compute the tz1 address of an Ed25519 public key.

        Args:
            public_key: 32-byte public key

        Returns:
            tz1 address
        """
        return base58.encode(blake2b(public_key, 20), "tz1")

    @staticmethod
    def encode_public_key(public_key: bytes) -> str:
        return base58.encode(public_key, "edpk")

    @staticmethod
    def encode_secret_key(secret_key: bytes) -> str:
        return base58.encode(secret_key, "edsk")

    @staticmethod
    def decrypt_secret(password: str, encrypted_secret: str) -> bytes:
        """
        Decrypt an edesk encrypted secret into its seed.

        Args:
            password: Password the secret was encrypted with
            encrypted_secret: 88-character edesk text

        Returns:
            32-byte seed

        Raises:
            InvalidSecretFormat: not an edesk secret
            InvalidPassword: authentication failed
        """
        if not encrypted_secret.startswith("edesk") or len(encrypted_secret) != ENCRYPTED_SECRET_LENGTH:
            raise InvalidSecretFormat(
                f"encrypted secret must be an {ENCRYPTED_SECRET_LENGTH}-character edesk key"
            )
        payload = base58.decode_with_prefix(encrypted_secret, "edesk")
        salt, box = payload[:SALT_LENGTH], payload[SALT_LENGTH:]

        key = hashlib.pbkdf2_hmac(
            'sha512', password.encode('utf-8'), salt, ENCRYPTED_KEY_ITERATIONS, nacl.secret.SecretBox.KEY_SIZE
        )
        try:
            seed = nacl.secret.SecretBox(key).decrypt(box, bytes(nacl.secret.SecretBox.NONCE_SIZE))
        except CryptoError:
            raise InvalidPassword("could not decrypt secret key, wrong password") from None
        if len(seed) != SEED_LENGTH:
            raise InvalidSecretFormat(f"decrypted seed must be {SEED_LENGTH} bytes, got {len(seed)}")
        return seed

    @staticmethod
    def is_valid_address(address: str) -> bool:
        """
        Check an address's length, prefix and checksum.

        Returns:
            True if valid, False otherwise
        """
        try:
            Address.from_string(address)
        except TezosError:
            return False
        return True

    @staticmethod
    def is_valid_public_key(public_key: str) -> bool:
        """
        Check a public key's prefix and checksum.

        Returns:
            True if valid, False otherwise
        """
        try:
            prefix, _ = base58.decode(public_key)
        except TezosError:
            return False
        return prefix.name in PUBLIC_KEY_PREFIXES
