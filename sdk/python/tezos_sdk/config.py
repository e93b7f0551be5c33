"""
tezos_sdk/config.py

Configuration constants and data classes for the Tezos SDK.
"""

from dataclasses import dataclass


# Node RPC defaults
DEFAULT_RPC_URL = "http://localhost:8732"
DEFAULT_TIMEOUT = 30  # seconds
DEFAULT_CHAIN = "main"

# 1 XTZ = 1M mutez
MUTEZ_PER_TEZ = 1_000_000

# Key derivation
MNEMONIC_ITERATIONS = 2048
ENCRYPTED_KEY_ITERATIONS = 32768
SEED_LENGTH = 32

# Batch payments
MAX_BATCH_SIZE = 200
DEFAULT_GAS_LIMIT = 10300
DEFAULT_STORAGE_LIMIT = 0

# Reward allocation
DEFAULT_WORKER_POOL_SIZE = 50


@dataclass
class ClientConfig:
    """Connection settings for a node RPC endpoint."""
    base_url: str = DEFAULT_RPC_URL
    timeout: int = DEFAULT_TIMEOUT
    chain: str = DEFAULT_CHAIN


@dataclass
class RewardPoolConfig:
    """Worker pool settings for reward allocation."""
    pool_size: int = DEFAULT_WORKER_POOL_SIZE
    fail_fast: bool = True

    def __post_init__(self):
        if self.pool_size < 1:
            raise ValueError(f"pool_size must be at least 1, got {self.pool_size}")
