"""
Tezos wallets: mnemonic, imported and encrypted keys
"""

import logging
from dataclasses import dataclass, field

from . import base58
from .crypto import TezosCrypto
from .errors import AddressMismatch, InvalidSecretFormat, PublicKeyMismatch
from .models import KeyPair

logger = logging.getLogger("tezos_sdk.wallet")

SECRET_KEY_LENGTH = 98
SEED_KEY_LENGTH = 54


@dataclass(frozen=True)
class Wallet:
    """
    An Ed25519 account able to sign operations.

    The secret key is kept out of repr().

    Example:
        >>> wallet = Wallet.create_from_mnemonic(mnemonic, "email@example.com" + "password")
        >>> print(wallet.address)
    """
    address: str
    public_key: str
    secret_key: str = field(repr=False)
    key_pair: KeyPair = field(repr=False)

    @classmethod
    def from_key_pair(cls, key_pair: KeyPair) -> "Wallet":
        return cls(
            address=TezosCrypto.public_key_hash(key_pair.public_key),
            public_key=TezosCrypto.encode_public_key(key_pair.public_key),
            secret_key=TezosCrypto.encode_secret_key(key_pair.secret_key),
            key_pair=key_pair,
        )

    @classmethod
    def generate(cls) -> "Wallet":
        """Create a wallet from a fresh random key."""
        wallet = cls.from_key_pair(TezosCrypto.generate_keypair())
        logger.info(f"Generated wallet {wallet.address}")
        return wallet

    @classmethod
    def create_from_mnemonic(cls, mnemonic: str, passphrase: str = "") -> "Wallet":
        """
        Derive a wallet from a mnemonic.

        Args:
            mnemonic: Space-separated mnemonic words
            passphrase: Optional passphrase

        Returns:
            Wallet
        """
        seed = TezosCrypto.mnemonic_to_seed(mnemonic, passphrase)
        wallet = cls.from_key_pair(TezosCrypto.derive_keypair_from_seed(seed))
        logger.info(f"Derived wallet {wallet.address} from mnemonic")
        return wallet

    @classmethod
    def import_from_secret(cls, address: str, public_key: str, secret: str) -> "Wallet":
        """
        Import a wallet from an unencrypted secret key.

        The address and public key are recomputed from the secret and must
        match the ones supplied.

        Args:
            address: Expected tz1 address
            public_key: Expected edpk public key
            secret: 98-character edsk secret key or 54-character edsk seed

        Raises:
            InvalidSecretFormat: secret is neither form
            AddressMismatch: address does not belong to the secret
            PublicKeyMismatch: public key does not belong to the secret
        """
        if not secret.startswith("edsk"):
            raise InvalidSecretFormat("secret key must start with edsk")

        if len(secret) == SECRET_KEY_LENGTH:
            # seed followed by public key
            seed = base58.decode_with_prefix(secret, "edsk")[:32]
        elif len(secret) == SEED_KEY_LENGTH:
            seed = base58.decode_with_prefix(secret, "edsk_seed")
        else:
            raise InvalidSecretFormat(
                f"secret key must be {SECRET_KEY_LENGTH} or {SEED_KEY_LENGTH} characters, got {len(secret)}"
            )

        wallet = cls.from_key_pair(TezosCrypto.derive_keypair_from_seed(seed))
        if len(secret) == SECRET_KEY_LENGTH and wallet.secret_key != secret:
            raise PublicKeyMismatch("public key embedded in the secret key does not match its seed")
        wallet._check_identity(address, public_key)
        logger.info(f"Imported wallet {wallet.address}")
        return wallet

    @classmethod
    def import_encrypted(cls, password: str, encrypted_secret: str) -> "Wallet":
        """
        Import a wallet from a password-encrypted edesk secret.

        Raises:
            InvalidSecretFormat: not an 88-character edesk secret
            InvalidPassword: wrong password
        """
        seed = TezosCrypto.decrypt_secret(password, encrypted_secret)
        wallet = cls.from_key_pair(TezosCrypto.derive_keypair_from_seed(seed))
        logger.info(f"Imported encrypted wallet {wallet.address}")
        return wallet

    def _check_identity(self, address: str, public_key: str) -> None:
        if self.address != address:
            raise AddressMismatch(f"address {address} does not match secret key")
        if self.public_key != public_key:
            raise PublicKeyMismatch(f"public key {public_key} does not match secret key")
