"""
Tezos node RPC client
"""

import logging
from typing import Any, Dict, List, Optional, Union

import requests

from .config import DEFAULT_CHAIN, DEFAULT_RPC_URL, DEFAULT_TIMEOUT, ClientConfig
from .errors import PreapplyRejected, RPCError
from .models import BlockHead

logger = logging.getLogger("tezos_sdk.client")

BlockId = Union[str, int]


class TezosClient:
    """
    Client for the subset of the node RPC used to build payouts.

    Example:
        >>> with TezosClient("http://localhost:8732") as client:
        ...     head = client.get_head()
        ...     print(f"Head: {head.hash} at level {head.level}")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_RPC_URL,
        timeout: int = DEFAULT_TIMEOUT,
        chain: str = DEFAULT_CHAIN,
        config: Optional[ClientConfig] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Node RPC URL (default: http://localhost:8732)
            timeout: Request timeout in seconds (default: 30)
            chain: Chain alias or id (default: main)
            config: ClientConfig overriding the other arguments
        """
        if config is not None:
            base_url, timeout, chain = config.base_url, config.timeout, config.chain
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.chain = chain
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
        })
        self._constants: Optional[Dict[str, Any]] = None

    def _request(self, method: str, endpoint: str, data: Any = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, json=data, timeout=self.timeout)
        except requests.RequestException as e:
            raise RPCError(f"{method} {endpoint} failed: {e}") from e
        if not response.ok:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            raise RPCError(
                f"{method} {endpoint} returned {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )
        return response.json()

    def _get(self, endpoint: str) -> Any:
        """Make GET request"""
        return self._request('GET', endpoint)

    def _post(self, endpoint: str, data: Any) -> Any:
        """Make POST request"""
        return self._request('POST', endpoint, data)

    def _block(self, block: BlockId = 'head') -> str:
        return f"/chains/{self.chain}/blocks/{block}"

    # Chain

    def get_head(self) -> BlockHead:
        """
        Get the current head.

        Returns:
            BlockHead with hash, protocol, level and chain id
        """
        data = self._get(f"{self._block()}/header")
        return BlockHead(
            hash=data['hash'],
            protocol=data['protocol'],
            level=data.get('level'),
            chain_id=data.get('chain_id'),
        )

    def get_block_hash(self, block: BlockId) -> str:
        return self._get(f"{self._block(block)}/hash")

    def get_constants(self) -> Dict[str, Any]:
        """Get protocol constants, cached after the first call."""
        if self._constants is None:
            self._constants = self._get(f"{self._block()}/context/constants")
        return self._constants

    # Accounts

    def get_counter(self, address: str) -> int:
        """
        Get the current manager counter of an account.

        Args:
            address: Implicit account address

        Returns:
            Counter of the last applied operation
        """
        return int(self._get(f"{self._block()}/context/contracts/{address}/counter"))

    def get_balance(self, address: str, block: BlockId = 'head') -> int:
        """
        Get an account balance in mutez.

        Args:
            address: Account address
            block: Block hash, level or alias (default: head)
        """
        return int(self._get(f"{self._block(block)}/context/contracts/{address}/balance"))

    # Delegates

    def get_staking_balance(self, delegate: str, block: BlockId = 'head') -> int:
        return int(self._get(f"{self._block(block)}/context/delegates/{delegate}/staking_balance"))

    def get_delegations(self, delegate: str, block: BlockId = 'head') -> List[str]:
        """Addresses delegating to a delegate at a block."""
        return list(self._get(f"{self._block(block)}/context/delegates/{delegate}/delegated_contracts"))

    def get_cycle_rewards(self, delegate: str, cycle: int) -> int:
        """
        Get the rewards a delegate earned in a cycle, in mutez.

        Read from the frozen balance at the first block after the cycle.
        """
        level = (cycle + 1) * int(self.get_constants()['blocks_per_cycle']) + 1
        data = self._get(
            f"{self._block(level)}/context/raw/json/contracts/index/{delegate}/frozen_balance/{cycle}/"
        )
        return int(data['rewards'])

    def get_snapshot_block_hash(self, cycle: int) -> str:
        """
        Get the hash of the block whose balances a cycle's rights were computed from.

        Args:
            cycle: Cycle number

        Returns:
            Block hash
        """
        constants = self.get_constants()
        blocks_per_cycle = int(constants['blocks_per_cycle'])
        preserved_cycles = int(constants['preserved_cycles'])
        blocks_per_roll_snapshot = int(constants['blocks_per_roll_snapshot'])

        query_level = cycle * blocks_per_cycle + 1
        head = self.get_head()
        block: BlockId = query_level
        if head.level is not None and query_level > head.level:
            block = 'head'

        data = self._get(f"{self._block(block)}/context/raw/json/cycle/{cycle}")
        roll_snapshot = int(data['roll_snapshot'])

        level = (cycle - preserved_cycles - 2) * blocks_per_cycle + (roll_snapshot + 1) * blocks_per_roll_snapshot
        level = max(level, 1)
        logger.debug(f"Snapshot for cycle {cycle} is roll {roll_snapshot} at level {level}")
        return self.get_block_hash(level)

    # Operations

    def preapply_operations(
        self,
        head: BlockHead,
        contents: List[Dict[str, Any]],
        signature: str,
    ) -> List[Dict[str, Any]]:
        """
        Simulate a signed operation group against the head.

        Args:
            head: Head the group is branched from
            contents: Contents in node JSON
            signature: edsig signature of the forged group

        Returns:
            Node's preapply results

        Raises:
            PreapplyRejected: the node reports errors for the group
        """
        operation = {
            'protocol': head.protocol,
            'branch': head.hash,
            'contents': contents,
            'signature': signature,
        }
        try:
            results = self._post(f"{self._block()}/helpers/preapply/operations", [operation])
        except RPCError as e:
            if e.status_code is None:
                raise
            raise PreapplyRejected(f"preapply failed with status {e.status_code}", e.payload) from e

        for result in results:
            for content in result.get('contents', []):
                op_result = content.get('metadata', {}).get('operation_result')
                if op_result is not None and op_result.get('status') != 'applied':
                    raise PreapplyRejected(
                        f"{content.get('kind')} {op_result.get('status')}", results
                    )
        return results

    def inject_operation(self, operation_hex: str) -> str:
        """
        Inject signed operation bytes.

        Returns:
            Operation hash
        """
        operation_hash = self._post(f"/injection/operation?chain={self.chain}", operation_hex)
        logger.info(f"Injected operation {operation_hash}")
        return operation_hash

    def close(self):
        """Close HTTP session"""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
