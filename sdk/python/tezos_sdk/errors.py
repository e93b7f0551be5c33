"""
Exception hierarchy for the Tezos SDK
"""

from typing import Any, List, Optional


class TezosError(Exception):
    """Base exception for all SDK errors."""


# ============================================================================
# ENCODING
# ============================================================================

class InvalidBase58(TezosError):
    """Input is not valid Base58 text."""


class ChecksumMismatch(TezosError):
    """Base58Check checksum does not match the payload."""


class InvalidPrefix(TezosError):
    """Base58Check prefix is unknown or not the one expected."""


class InvalidAddress(TezosError):
    """Text is not a usable address for the slot it was given to."""


class MalformedOperationBytes(TezosError):
    """Binary input is truncated, has trailing bytes, or carries an unknown tag."""


class UnsupportedMichelsonPrimitive(TezosError):
    """Primitive name or tag is not in the primitive table."""


# ============================================================================
# WALLET
# ============================================================================

class WalletError(TezosError):
    """Wallet construction failed."""


class InvalidSecretFormat(WalletError):
    """Secret key text has the wrong prefix or length."""


class AddressMismatch(WalletError):
    """Address recomputed from the key differs from the one supplied."""


class PublicKeyMismatch(WalletError):
    """Public key recomputed from the secret differs from the one supplied."""


class InvalidPassword(WalletError):
    """Encrypted secret could not be authenticated with the given password."""


class InvalidSignature(TezosError):
    """Signature does not verify against the public key."""


# ============================================================================
# OPERATIONS
# ============================================================================

class CounterConflict(TezosError):
    """Manager operation counters are not strictly increasing and contiguous."""


class PreapplyRejected(TezosError):
    """Node refused an operation group during preapply."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class BatchPaymentError(TezosError):
    """One or more payment batches were rejected."""

    def __init__(self, message: str, results: List[Any], failures: List[Any]):
        super().__init__(message)
        self.results = results
        self.failures = failures


class RewardComputationError(TezosError):
    """Reward allocation could not produce a complete report."""

    def __init__(self, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class RPCError(TezosError):
    """Exception raised for node RPC errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload
