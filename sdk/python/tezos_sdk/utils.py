"""
Utility functions for Tezos amounts and addresses
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, TypeVar, Union

from .config import MUTEZ_PER_TEZ
from .crypto import TezosCrypto

T = TypeVar('T')


class Utils:
    """Helper utilities for Tezos operations"""

    @staticmethod
    def to_mutez(tez: Union[Decimal, int, float, str]) -> int:
        """
        Convert XTZ to mutez, rounding half up.

        Args:
            tez: Amount in XTZ

        Returns:
            Amount in mutez

        Example:
            >>> Utils.to_mutez(Decimal("1.2345675"))
            1234568
        """
        amount = Decimal(str(tez)) * MUTEZ_PER_TEZ
        return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    @staticmethod
    def from_mutez(mutez: int) -> Decimal:
        """
        Convert mutez to XTZ.

        Args:
            mutez: Amount in mutez

        Returns:
            Amount in XTZ
        """
        return Decimal(mutez) / MUTEZ_PER_TEZ

    @staticmethod
    def is_valid_address(address: str) -> bool:
        """
        Validate an address's length, prefix and checksum.

        Args:
            address: Address string

        Returns:
            True if valid, False otherwise
        """
        return TezosCrypto.is_valid_address(address)

    @staticmethod
    def format_balance(mutez: int, decimals: int = 6) -> str:
        """
        Format a mutez balance for display in XTZ.

        Args:
            mutez: Balance in mutez
            decimals: Number of decimal places (default: 6)

        Returns:
            Formatted string
        """
        return f"{Utils.from_mutez(mutez):.{decimals}f} XTZ"

    @staticmethod
    def format_address(address: str, length: int = 8) -> str:
        """
        Format address for display (shortened).

        Args:
            address: Full address
            length: Number of characters to show from start

        Returns:
            Shortened address with ellipsis
        """
        if len(address) <= length:
            return address
        return f"{address[:length]}..."

    @staticmethod
    def validate_amount(tez: Union[Decimal, int, float, str]) -> bool:
        """
        Check that an amount is worth at least one mutez.

        Args:
            tez: Amount in XTZ

        Returns:
            True if valid, False otherwise
        """
        return Utils.to_mutez(tez) > 0

    @staticmethod
    def chunk(items: List[T], size: int) -> List[List[T]]:
        """Split items into contiguous lists of at most size elements."""
        if size < 1:
            raise ValueError(f"chunk size must be at least 1, got {size}")
        return [items[i:i + size] for i in range(0, len(items), size)]
