"""
tezos_sdk/operations.py

Batch payment orchestration.

Turns a list of payments into signed, preapplied operation groups of at
most MAX_BATCH_SIZE transactions each:
- fetches the head and the source counter once
- assigns contiguous counters across all batches
- forges, signs and preapplies each batch in order

Injection is left to the caller. forge_operation renumbers arbitrary
manager operations from the chain counter the same way.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .config import DEFAULT_GAS_LIMIT, DEFAULT_STORAGE_LIMIT, MAX_BATCH_SIZE
from .errors import BatchPaymentError, PreapplyRejected
from .forge import forge
from .models import BlockHead, ManagerOperation, OperationContent, OperationGroup, Payment, Transaction
from .signer import sign_bytes
from .utils import Utils
from .wallet import Wallet

logger = logging.getLogger("tezos_sdk.operations")


@dataclass
class BatchResult:
    """Outcome of building one batch."""
    index: int
    payments: List[Payment]
    counter_start: int
    operation: Optional[str] = None
    signature: Optional[str] = None
    error: Optional[PreapplyRejected] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _PreparedPayment:
    payment: Payment
    mutez: int = 0


class BatchPaymentBuilder:
    """
    Builds injectable payment batches.

    Args:
        client: Node collaborator providing get_head, get_counter,
            preapply_operations and inject_operation

    Example:
        >>> builder = BatchPaymentBuilder(client)
        >>> for operation in builder.create_batch_payment(payments, wallet, fee=1420):
        ...     client.inject_operation(operation)
    """

    def __init__(self, client):
        self.client = client

    def create_batch_payment(
        self,
        payments: List[Payment],
        wallet: Wallet,
        fee: int,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        batch_size: int = MAX_BATCH_SIZE,
        storage_limit: int = DEFAULT_STORAGE_LIMIT,
    ) -> List[str]:
        """
        Build signed, preapplied operation groups paying every payment.

        Args:
            payments: Payments with amounts in XTZ
            wallet: Paying wallet
            fee: Fee per transaction in mutez
            gas_limit: Gas limit per transaction
            batch_size: Transactions per group, capped at MAX_BATCH_SIZE
            storage_limit: Storage limit per transaction

        Returns:
            Injectable hex (operation bytes followed by signature) per batch

        Raises:
            BatchPaymentError: one or more batches were rejected at preapply;
                carries every BatchResult including the successful ones
        """
        results = self.build_batches(payments, wallet, fee, gas_limit, batch_size, storage_limit)
        failures = [r for r in results if not r.ok]
        if failures:
            raise BatchPaymentError(
                f"{len(failures)} of {len(results)} batches rejected", results, failures
            )
        return [r.operation for r in results]

    def build_batches(
        self,
        payments: List[Payment],
        wallet: Wallet,
        fee: int,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        batch_size: int = MAX_BATCH_SIZE,
        storage_limit: int = DEFAULT_STORAGE_LIMIT,
    ) -> List[BatchResult]:
        """Same as create_batch_payment, returning a result per batch instead of raising."""
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        batch_size = min(batch_size, MAX_BATCH_SIZE)

        prepared = []
        for payment in payments:
            mutez = Utils.to_mutez(payment.amount) if payment.amount > 0 else 0
            if mutez <= 0:
                logger.debug(f"Skipping payment of {payment.amount} to {payment.destination}")
                continue
            prepared.append(_PreparedPayment(payment, mutez))
        if not prepared:
            logger.info("No payable amounts, nothing to build")
            return []

        head = self.client.get_head()
        counter = self.client.get_counter(wallet.address) + 1

        batches = Utils.chunk(prepared, batch_size)
        logger.info(
            f"Building {len(batches)} batches for {len(prepared)} payments from {wallet.address}"
        )

        results = []
        for index, batch in enumerate(batches):
            results.append(
                self._build_batch(index, batch, head, wallet, counter, fee, gas_limit, storage_limit)
            )
            counter += len(batch)
        return results

    def _build_batch(
        self,
        index: int,
        batch: List[_PreparedPayment],
        head: BlockHead,
        wallet: Wallet,
        counter: int,
        fee: int,
        gas_limit: int,
        storage_limit: int,
    ) -> BatchResult:
        contents = [
            Transaction(
                source=wallet.address,
                fee=fee,
                counter=counter + offset,
                gas_limit=gas_limit,
                storage_limit=storage_limit,
                amount=item.mutez,
                destination=item.payment.destination,
            )
            for offset, item in enumerate(batch)
        ]
        group = OperationGroup(head.hash, tuple(contents))
        group.validate_counters()

        operation = forge(group.branch, list(group.contents))
        signature = sign_bytes(operation, wallet)
        result = BatchResult(
            index=index,
            payments=[item.payment for item in batch],
            counter_start=counter,
            signature=signature.to_base58(),
        )

        try:
            self.client.preapply_operations(head, group.to_dict()['contents'], result.signature)
        except PreapplyRejected as e:
            logger.warning(f"Batch {index} rejected at preapply: {e}")
            result.error = e
            return result

        result.operation = signature.append_to_hex(operation.hex())
        logger.debug(f"Batch {index}: {len(batch)} transactions from counter {counter}")
        return result

    def assign_counters(self, source: str, contents: Sequence[OperationContent]) -> List[OperationContent]:
        """
        Renumber source's manager operations from its chain counter.

        The first operation from source gets counter + 1 and the rest follow
        contiguously. Other contents keep their counters.
        """
        counter = self.client.get_counter(source)
        assigned = []
        for content in contents:
            if isinstance(content, ManagerOperation) and content.source == source:
                counter += 1
                content = replace(content, counter=counter)
            assigned.append(content)
        return assigned

    def forge_operation(
        self,
        source: str,
        contents: Sequence[OperationContent],
        branch: Optional[str] = None,
    ) -> OperationGroup:
        """
        Build a group for contents with counters taken from the chain.

        Args:
            source: Account whose operations are renumbered
            contents: Operations to include, counters ignored
            branch: Block hash to forge against (default: current head)

        Returns:
            Counter-checked OperationGroup, ready for forge and sign
        """
        if branch is None:
            branch = self.client.get_head().hash
        group = OperationGroup(branch, tuple(self.assign_counters(source, contents)))
        group.validate_counters()
        logger.debug(f"Forging {len(group.contents)} operations from {source} against {branch}")
        return group

    def forge_bytes(
        self,
        source: str,
        contents: Sequence[OperationContent],
        branch: Optional[str] = None,
    ) -> bytes:
        """Forged bytes of forge_operation(...)."""
        group = self.forge_operation(source, contents, branch)
        return forge(group.branch, list(group.contents))

    def inject(self, operation_hex: str) -> str:
        """Inject one batch, returning its operation hash."""
        return self.client.inject_operation(operation_hex)


def create_batch_payment(
    client,
    payments: List[Payment],
    wallet: Wallet,
    fee: int,
    gas_limit: int = DEFAULT_GAS_LIMIT,
    batch_size: int = MAX_BATCH_SIZE,
) -> List[str]:
    """Shorthand for BatchPaymentBuilder(client).create_batch_payment(...)."""
    return BatchPaymentBuilder(client).create_batch_payment(payments, wallet, fee, gas_limit, batch_size)
