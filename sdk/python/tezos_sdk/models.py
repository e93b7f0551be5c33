"""
Data models for the Tezos SDK
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from . import base58, micheline
from .config import MUTEZ_PER_TEZ
from .errors import CounterConflict, InvalidAddress, InvalidPrefix, MalformedOperationBytes
from .micheline import MichelineExpression


ADDRESS_KINDS = ("tz1", "tz2", "tz3", "KT1")
ADDRESS_LENGTH = 36


# ============================================================================
# ACCOUNTS
# ============================================================================

@dataclass(frozen=True)
class Address:
    """A 20-byte account hash and its kind"""
    kind: Literal['tz1', 'tz2', 'tz3', 'KT1']
    hash: bytes

    @classmethod
    def from_string(cls, text: str) -> "Address":
        """
        Parse a Base58Check address.

        Raises:
            InvalidAddress: wrong length or not an address prefix
            ChecksumMismatch: corrupted text
        """
        if len(text) != ADDRESS_LENGTH:
            raise InvalidAddress(f"address must be {ADDRESS_LENGTH} characters, got {len(text)}: {text!r}")
        try:
            prefix, payload = base58.decode(text)
        except InvalidPrefix as e:
            raise InvalidAddress(str(e)) from e
        if prefix.name not in ADDRESS_KINDS:
            raise InvalidAddress(f"{text!r} is a {prefix.name}, not an address")
        return cls(prefix.name, payload)

    @property
    def is_implicit(self) -> bool:
        return self.kind != 'KT1'

    def __str__(self) -> str:
        return base58.encode(self.hash, self.kind)


@dataclass(frozen=True)
class KeyPair:
    """Raw key material"""
    public_key: bytes
    secret_key: bytes = field(repr=False)
    curve: Literal['ed25519', 'secp256k1', 'p256'] = 'ed25519'


@dataclass(frozen=True)
class BlockHead:
    """Chain head information needed to build operations"""
    hash: str
    protocol: str
    level: Optional[int] = None
    chain_id: Optional[str] = None


@dataclass
class Payment:
    """A transfer to make, amount in XTZ"""
    destination: str
    amount: Decimal

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))


# ============================================================================
# OPERATION CONTENTS
# ============================================================================

@dataclass(frozen=True)
class Endorsement:
    """Endorsement of a block at a level"""
    kind: ClassVar[str] = 'endorsement'
    level: int

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'level': self.level}


@dataclass(frozen=True)
class SeedNonceRevelation:
    """Revelation of a committed seed nonce"""
    kind: ClassVar[str] = 'seed_nonce_revelation'
    level: int
    nonce: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'level': self.level, 'nonce': self.nonce.hex()}


@dataclass(frozen=True)
class InlinedEndorsement:
    """A signed endorsement embedded in evidence"""
    branch: str
    operations: Endorsement
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'branch': self.branch,
            'operations': self.operations.to_dict(),
            'signature': self.signature,
        }


@dataclass(frozen=True)
class DoubleEndorsementEvidence:
    """Two conflicting endorsements from the same baker"""
    kind: ClassVar[str] = 'double_endorsement_evidence'
    op1: InlinedEndorsement
    op2: InlinedEndorsement

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'op1': self.op1.to_dict(), 'op2': self.op2.to_dict()}


@dataclass(frozen=True)
class BlockHeader:
    """Signed block header, timestamp as RFC 3339 text"""
    level: int
    proto: int
    predecessor: str
    timestamp: str
    validation_pass: int
    operations_hash: str
    fitness: Tuple[bytes, ...]
    context: str
    priority: int
    proof_of_work_nonce: bytes
    signature: str
    seed_nonce_hash: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'fitness', tuple(self.fitness))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'level': self.level,
            'proto': self.proto,
            'predecessor': self.predecessor,
            'timestamp': self.timestamp,
            'validation_pass': self.validation_pass,
            'operations_hash': self.operations_hash,
            'fitness': [f.hex() for f in self.fitness],
            'context': self.context,
            'priority': self.priority,
            'proof_of_work_nonce': self.proof_of_work_nonce.hex(),
            'signature': self.signature,
        }
        if self.seed_nonce_hash is not None:
            data['seed_nonce_hash'] = self.seed_nonce_hash
        return data


@dataclass(frozen=True)
class DoubleBakingEvidence:
    """Two conflicting block headers from the same baker"""
    kind: ClassVar[str] = 'double_baking_evidence'
    bh1: BlockHeader
    bh2: BlockHeader

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'bh1': self.bh1.to_dict(), 'bh2': self.bh2.to_dict()}


@dataclass(frozen=True)
class ActivateAccount:
    """Activation of a fundraiser account"""
    kind: ClassVar[str] = 'activate_account'
    pkh: str
    secret: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'pkh': self.pkh, 'secret': self.secret.hex()}


@dataclass(frozen=True)
class Proposals:
    """Protocol proposals for a voting period"""
    kind: ClassVar[str] = 'proposals'
    source: str
    period: int
    proposals: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'proposals', tuple(self.proposals))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'source': self.source,
            'period': self.period,
            'proposals': list(self.proposals),
        }


@dataclass(frozen=True)
class Ballot:
    """Vote on a proposal"""
    kind: ClassVar[str] = 'ballot'
    source: str
    period: int
    proposal: str
    ballot: Literal['yay', 'nay', 'pass']

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'source': self.source,
            'period': self.period,
            'proposal': self.proposal,
            'ballot': self.ballot,
        }


@dataclass(frozen=True)
class ManagerOperation:
    """Fields shared by every manager operation"""
    kind: ClassVar[str] = ''
    source: str
    fee: int
    counter: int
    gas_limit: int
    storage_limit: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'source': self.source,
            'fee': str(self.fee),
            'counter': str(self.counter),
            'gas_limit': str(self.gas_limit),
            'storage_limit': str(self.storage_limit),
        }


@dataclass(frozen=True)
class Reveal(ManagerOperation):
    """Publication of the source's public key"""
    kind: ClassVar[str] = 'reveal'
    public_key: str = ''

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['public_key'] = self.public_key
        return data


@dataclass(frozen=True)
class Parameters:
    """Entrypoint call arguments"""
    entrypoint: str
    value: MichelineExpression

    def to_dict(self) -> Dict[str, Any]:
        return {'entrypoint': self.entrypoint, 'value': micheline.to_json(self.value)}


@dataclass(frozen=True)
class Transaction(ManagerOperation):
    """Transfer of mutez, optionally calling a contract"""
    kind: ClassVar[str] = 'transaction'
    amount: int = 0
    destination: str = ''
    parameters: Optional[Parameters] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['amount'] = str(self.amount)
        data['destination'] = self.destination
        if self.parameters is not None:
            data['parameters'] = self.parameters.to_dict()
        return data


@dataclass(frozen=True)
class Script:
    """Contract code and initial storage"""
    code: MichelineExpression
    storage: MichelineExpression

    def to_dict(self) -> Dict[str, Any]:
        return {'code': micheline.to_json(self.code), 'storage': micheline.to_json(self.storage)}


@dataclass(frozen=True)
class Origination(ManagerOperation):
    """Deployment of a smart contract"""
    kind: ClassVar[str] = 'origination'
    balance: int = 0
    script: Optional[Script] = None
    delegate: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data['balance'] = str(self.balance)
        if self.delegate is not None:
            data['delegate'] = self.delegate
        data['script'] = self.script.to_dict()
        return data


@dataclass(frozen=True)
class Delegation(ManagerOperation):
    """Setting or withdrawing the source's delegate"""
    kind: ClassVar[str] = 'delegation'
    delegate: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.delegate is not None:
            data['delegate'] = self.delegate
        return data


OperationContent = Union[
    Endorsement,
    SeedNonceRevelation,
    DoubleEndorsementEvidence,
    DoubleBakingEvidence,
    ActivateAccount,
    Proposals,
    Ballot,
    Reveal,
    Transaction,
    Origination,
    Delegation,
]


@dataclass(frozen=True)
class OperationGroup:
    """Contents sharing one branch, forged and signed together"""
    branch: str
    contents: Tuple[OperationContent, ...]

    def __post_init__(self):
        object.__setattr__(self, 'contents', tuple(self.contents))

    def validate_counters(self) -> None:
        """
        Check that each source's manager counters increase by exactly one.

        Raises:
            CounterConflict: a counter repeats, goes backwards, or skips
        """
        last: Dict[str, int] = {}
        for content in self.contents:
            if not isinstance(content, ManagerOperation):
                continue
            previous = last.get(content.source)
            if previous is not None and content.counter != previous + 1:
                raise CounterConflict(
                    f"counter {content.counter} for {content.source} does not follow {previous}"
                )
            last[content.source] = content.counter

    def to_dict(self) -> Dict[str, Any]:
        return {'branch': self.branch, 'contents': [c.to_dict() for c in self.contents]}


# ============================================================================
# JSON PARSING
# ============================================================================

def _manager_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'source': data['source'],
        'fee': int(data['fee']),
        'counter': int(data['counter']),
        'gas_limit': int(data['gas_limit']),
        'storage_limit': int(data['storage_limit']),
    }


def _inlined_from_dict(data: Dict[str, Any]) -> InlinedEndorsement:
    return InlinedEndorsement(
        branch=data['branch'],
        operations=Endorsement(level=int(data['operations']['level'])),
        signature=data['signature'],
    )


def _header_from_dict(data: Dict[str, Any]) -> BlockHeader:
    return BlockHeader(
        level=int(data['level']),
        proto=int(data['proto']),
        predecessor=data['predecessor'],
        timestamp=data['timestamp'],
        validation_pass=int(data['validation_pass']),
        operations_hash=data['operations_hash'],
        fitness=tuple(bytes.fromhex(f) for f in data['fitness']),
        context=data['context'],
        priority=int(data['priority']),
        proof_of_work_nonce=bytes.fromhex(data['proof_of_work_nonce']),
        signature=data['signature'],
        seed_nonce_hash=data.get('seed_nonce_hash'),
    )


def content_from_dict(data: Dict[str, Any]) -> OperationContent:
    """
    Build an operation content from its node JSON.

    Raises:
        MalformedOperationBytes: unknown kind
    """
    kind = data.get('kind')
    if kind == 'endorsement':
        return Endorsement(level=int(data['level']))
    if kind == 'seed_nonce_revelation':
        return SeedNonceRevelation(level=int(data['level']), nonce=bytes.fromhex(data['nonce']))
    if kind == 'double_endorsement_evidence':
        return DoubleEndorsementEvidence(_inlined_from_dict(data['op1']), _inlined_from_dict(data['op2']))
    if kind == 'double_baking_evidence':
        return DoubleBakingEvidence(_header_from_dict(data['bh1']), _header_from_dict(data['bh2']))
    if kind == 'activate_account':
        return ActivateAccount(pkh=data['pkh'], secret=bytes.fromhex(data['secret']))
    if kind == 'proposals':
        return Proposals(source=data['source'], period=int(data['period']), proposals=tuple(data['proposals']))
    if kind == 'ballot':
        return Ballot(
            source=data['source'],
            period=int(data['period']),
            proposal=data['proposal'],
            ballot=data['ballot'],
        )
    if kind == 'reveal':
        return Reveal(public_key=data['public_key'], **_manager_fields(data))
    if kind == 'transaction':
        parameters = None
        if 'parameters' in data:
            parameters = Parameters(
                entrypoint=data['parameters']['entrypoint'],
                value=micheline.from_json(data['parameters']['value']),
            )
        return Transaction(
            amount=int(data['amount']),
            destination=data['destination'],
            parameters=parameters,
            **_manager_fields(data),
        )
    if kind == 'origination':
        return Origination(
            balance=int(data['balance']),
            delegate=data.get('delegate'),
            script=Script(
                code=micheline.from_json(data['script']['code']),
                storage=micheline.from_json(data['script']['storage']),
            ),
            **_manager_fields(data),
        )
    if kind == 'delegation':
        return Delegation(delegate=data.get('delegate'), **_manager_fields(data))
    raise MalformedOperationBytes(f"unknown operation kind {kind!r}")


# ============================================================================
# REWARD REPORTS
# ============================================================================

@dataclass(frozen=True)
class DelegationReport:
    """One delegator's reward for a cycle, amounts in mutez"""
    address: str
    balance: int
    share: Decimal
    gross_reward: int
    fee: int
    net_reward: int


@dataclass
class DelegateReport:
    """A delegate's reward allocation for a cycle, amounts in mutez"""
    delegate: str
    cycle: int
    cycle_rewards: int
    staking_balance: int
    delegations: List[DelegationReport]
    total_fee_rewards: int = 0
    self_baked_rewards: int = 0
    total_rewards: int = 0

    def get_payments(self, minimum: int = 0) -> List[Payment]:
        """
        Turn net rewards into payments.

        Args:
            minimum: Smallest net reward in mutez worth paying out

        Returns:
            Payments in XTZ, skipping zero rewards and those under minimum
        """
        return [
            Payment(d.address, Decimal(d.net_reward) / MUTEZ_PER_TEZ)
            for d in self.delegations
            if d.net_reward != 0 and d.net_reward >= minimum
        ]
