"""
tezos_sdk/rewards.py

Reward allocation for a delegate's delegators.

Chain data for a cycle is fetched once into an immutable RewardSnapshot,
then each delegator's balance lookup and share computation runs on a
bounded thread pool. Results are aggregated by address so the report is
the same whatever the pool size or completion order.
"""

import logging
from concurrent.futures import ALL_COMPLETED, FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Dict, List, Optional, Tuple, Union

from .config import RewardPoolConfig
from .errors import RewardComputationError, TezosError
from .models import DelegateReport, DelegationReport

logger = logging.getLogger("tezos_sdk.rewards")


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class RewardSnapshot:
    """Chain data a cycle's allocation is computed from."""
    delegate: str
    cycle: int
    cycle_rewards: int
    staking_balance: int
    block_hash: str
    delegations: Tuple[str, ...]


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def allocate(balance: int, snapshot: RewardSnapshot, fee_rate: Decimal, address: str) -> DelegationReport:
    """
    Compute one delegator's share of the cycle rewards.

    gross = balance * cycle_rewards // staking_balance, in exact integers,
    fee = floor(fee_rate * gross), net = gross - fee. share is for reporting only.
    """
    share = Decimal(balance) / Decimal(snapshot.staking_balance)
    gross = balance * snapshot.cycle_rewards // snapshot.staking_balance
    fee = _floor(fee_rate * gross)
    return DelegationReport(
        address=address,
        balance=balance,
        share=share,
        gross_reward=gross,
        fee=fee,
        net_reward=gross - fee,
    )


# ============================================================================
# ENGINE
# ============================================================================

class RewardEngine:
    """
    Computes delegate reward reports with a bounded worker pool.

    Args:
        client: Node collaborator providing get_cycle_rewards,
            get_snapshot_block_hash, get_staking_balance, get_delegations
            and get_balance
        pool_size: Maximum concurrent balance lookups (default: 50)
        fail_fast: Stop at the first failed lookup instead of collecting all
        config: RewardPoolConfig overriding pool_size and fail_fast

    Example:
        >>> engine = RewardEngine(client, pool_size=20)
        >>> report = engine.compute_delegate_report("tz1...", 300, fee_rate=0.05)
        >>> payments = report.get_payments(minimum=1000)
    """

    def __init__(
        self,
        client,
        pool_size: Optional[int] = None,
        fail_fast: Optional[bool] = None,
        config: Optional[RewardPoolConfig] = None,
    ):
        config = config or RewardPoolConfig()
        if pool_size is not None or fail_fast is not None:
            config = RewardPoolConfig(
                pool_size=config.pool_size if pool_size is None else pool_size,
                fail_fast=config.fail_fast if fail_fast is None else fail_fast,
            )
        self.client = client
        self.config = config

    def take_snapshot(self, delegate: str, cycle: int) -> RewardSnapshot:
        """Fetch everything shared by all delegators, once."""
        cycle_rewards = self.client.get_cycle_rewards(delegate, cycle)
        block_hash = self.client.get_snapshot_block_hash(cycle)
        staking_balance = self.client.get_staking_balance(delegate, block_hash)
        delegations = self.client.get_delegations(delegate, block_hash)

        # aggregate by address
        unique = tuple(dict.fromkeys(d for d in delegations if d != delegate))
        return RewardSnapshot(
            delegate=delegate,
            cycle=cycle,
            cycle_rewards=int(cycle_rewards),
            staking_balance=int(staking_balance),
            block_hash=block_hash,
            delegations=unique,
        )

    def compute_delegate_report(
        self,
        delegate: str,
        cycle: int,
        fee_rate: Union[Decimal, float, str],
    ) -> DelegateReport:
        """
        Compute every delegator's reward for a cycle.

        Args:
            delegate: Delegate (baker) address
            cycle: Cycle number
            fee_rate: Fraction of gross rewards kept by the delegate, 0 to 1

        Returns:
            DelegateReport with one DelegationReport per delegator

        Raises:
            RewardComputationError: a lookup failed or the staking balance is zero
        """
        snapshot = self.take_snapshot(delegate, cycle)
        delegations = self.compute_delegations(snapshot, fee_rate)

        total_gross = sum(d.gross_reward for d in delegations)
        total_fees = sum(d.fee for d in delegations)
        self_baked = snapshot.cycle_rewards - total_gross
        report = DelegateReport(
            delegate=delegate,
            cycle=cycle,
            cycle_rewards=snapshot.cycle_rewards,
            staking_balance=snapshot.staking_balance,
            delegations=delegations,
            total_fee_rewards=total_fees,
            self_baked_rewards=self_baked,
            total_rewards=self_baked + total_fees,
        )
        logger.info(
            f"Cycle {cycle} for {delegate}: {len(delegations)} delegations, "
            f"rewards {snapshot.cycle_rewards}, fees {total_fees}, self baked {self_baked}"
        )
        return report

    def compute_delegate_reports(
        self,
        delegate: str,
        cycle_start: int,
        cycle_end: int,
        fee_rate: Union[Decimal, float, str],
    ) -> List[DelegateReport]:
        """
        Compute reports for every cycle from cycle_start to cycle_end inclusive.

        Cycles run one after another, each with its own snapshot and pool.

        Raises:
            ValueError: cycle_start is after cycle_end
            RewardComputationError: any cycle failed
        """
        if cycle_start > cycle_end:
            raise ValueError(f"cycle_start {cycle_start} is after cycle_end {cycle_end}")
        return [
            self.compute_delegate_report(delegate, cycle, fee_rate)
            for cycle in range(cycle_start, cycle_end + 1)
        ]

    def compute_delegations(
        self,
        snapshot: RewardSnapshot,
        fee_rate: Union[Decimal, float, str],
    ) -> List[DelegationReport]:
        """
        Fan delegators out over the pool and gather one report each.

        Returns:
            Reports in the snapshot's delegation order
        """
        fee_rate = Decimal(str(fee_rate))
        if not Decimal(0) <= fee_rate <= Decimal(1):
            raise ValueError(f"fee_rate must be between 0 and 1, got {fee_rate}")
        if snapshot.staking_balance <= 0:
            raise RewardComputationError(
                f"staking balance of {snapshot.delegate} is {snapshot.staking_balance}"
            )
        if not snapshot.delegations:
            return []

        reports: Dict[str, DelegationReport] = {}
        errors: List[Tuple[str, TezosError]] = []

        with ThreadPoolExecutor(max_workers=self.config.pool_size) as executor:
            futures = {
                executor.submit(self._compute_one, snapshot, address, fee_rate): address
                for address in snapshot.delegations
            }
            pending = set(futures)
            while pending:
                return_when = FIRST_EXCEPTION if self.config.fail_fast else ALL_COMPLETED
                done, pending = wait(pending, return_when=return_when)
                for future in done:
                    address = futures[future]
                    error = future.exception()
                    if error is None:
                        reports[address] = future.result()
                    elif isinstance(error, TezosError):
                        logger.warning(f"Reward computation failed for {address}: {error}")
                        errors.append((address, error))
                    else:
                        for f in pending:
                            f.cancel()
                        raise error
                if errors and self.config.fail_fast:
                    for f in pending:
                        f.cancel()
                    break

        if errors:
            raise RewardComputationError(
                f"{len(errors)} of {len(snapshot.delegations)} delegations failed for cycle {snapshot.cycle}",
                errors,
            )
        return [reports[address] for address in snapshot.delegations]

    def _compute_one(self, snapshot: RewardSnapshot, address: str, fee_rate: Decimal) -> DelegationReport:
        balance = int(self.client.get_balance(address, snapshot.block_hash))
        return allocate(balance, snapshot, fee_rate, address)
