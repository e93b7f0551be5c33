"""
Tezos Python SDK

Client-side Tezos library for building, signing and batching operations.

Features:
- Base58Check, Zarith and Micheline codecs
- Mnemonic, imported and encrypted Ed25519 wallets
- Operation forging and unforging for every operation kind
- Batch payments with preapply
- Delegate reward allocation on a bounded worker pool
"""

__version__ = "1.0.0"
__author__ = "Tezos SDK Team"

from .client import TezosClient
from .config import ClientConfig, RewardPoolConfig
from .crypto import TezosCrypto
from .errors import (
    AddressMismatch,
    BatchPaymentError,
    ChecksumMismatch,
    CounterConflict,
    InvalidAddress,
    InvalidBase58,
    InvalidPassword,
    InvalidPrefix,
    InvalidSecretFormat,
    InvalidSignature,
    MalformedOperationBytes,
    PreapplyRejected,
    PublicKeyMismatch,
    RewardComputationError,
    RPCError,
    TezosError,
    UnsupportedMichelsonPrimitive,
    WalletError,
)
from .forge import forge, unforge
from .models import (
    ActivateAccount,
    Address,
    Ballot,
    BlockHead,
    BlockHeader,
    DelegateReport,
    Delegation,
    DelegationReport,
    DoubleBakingEvidence,
    DoubleEndorsementEvidence,
    Endorsement,
    InlinedEndorsement,
    KeyPair,
    OperationGroup,
    Origination,
    Parameters,
    Payment,
    Proposals,
    Reveal,
    Script,
    SeedNonceRevelation,
    Transaction,
)
from .operations import BatchPaymentBuilder, BatchResult, create_batch_payment
from .pack import expression_hash, pack, unpack
from .rewards import RewardEngine, RewardSnapshot
from .signer import Signature, append_to_hex, encode_signature, sign, verify
from .utils import Utils
from .wallet import Wallet

__all__ = [
    "TezosClient",
    "TezosCrypto",
    "Wallet",
    "Signature",
    "sign",
    "verify",
    "append_to_hex",
    "encode_signature",
    "forge",
    "unforge",
    "pack",
    "unpack",
    "expression_hash",
    "BatchPaymentBuilder",
    "BatchResult",
    "create_batch_payment",
    "RewardEngine",
    "RewardSnapshot",
    "ClientConfig",
    "RewardPoolConfig",
    "Utils",
    # models
    "Address",
    "KeyPair",
    "BlockHead",
    "Payment",
    "OperationGroup",
    "Endorsement",
    "SeedNonceRevelation",
    "InlinedEndorsement",
    "DoubleEndorsementEvidence",
    "BlockHeader",
    "DoubleBakingEvidence",
    "ActivateAccount",
    "Proposals",
    "Ballot",
    "Reveal",
    "Transaction",
    "Parameters",
    "Origination",
    "Script",
    "Delegation",
    "DelegationReport",
    "DelegateReport",
    # errors
    "TezosError",
    "InvalidBase58",
    "ChecksumMismatch",
    "InvalidPrefix",
    "InvalidAddress",
    "MalformedOperationBytes",
    "UnsupportedMichelsonPrimitive",
    "WalletError",
    "InvalidSecretFormat",
    "AddressMismatch",
    "PublicKeyMismatch",
    "InvalidPassword",
    "InvalidSignature",
    "CounterConflict",
    "PreapplyRejected",
    "BatchPaymentError",
    "RewardComputationError",
    "RPCError",
]
