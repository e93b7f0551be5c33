"""
Binary forging and unforging of operation groups
"""

import calendar
import logging
import struct
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple, Union

from . import base58, micheline, zarith
from .errors import InvalidAddress, InvalidSignature, MalformedOperationBytes
from .models import (
    ActivateAccount,
    Address,
    Ballot,
    BlockHeader,
    Delegation,
    DoubleBakingEvidence,
    DoubleEndorsementEvidence,
    Endorsement,
    InlinedEndorsement,
    OperationContent,
    Origination,
    Parameters,
    Proposals,
    Reveal,
    Script,
    SeedNonceRevelation,
    Transaction,
)
from .signer import Signature, verify

logger = logging.getLogger("tezos_sdk.forge")


# ============================================================================
# TAGS
# ============================================================================

OPERATION_TAGS: Dict[str, int] = {
    'endorsement': 0,
    'seed_nonce_revelation': 1,
    'double_endorsement_evidence': 2,
    'double_baking_evidence': 3,
    'activate_account': 4,
    'proposals': 5,
    'ballot': 6,
    'reveal': 107,
    'transaction': 108,
    'origination': 109,
    'delegation': 110,
}

# Curve tags for implicit accounts and public keys
KEY_HASH_TAGS = {'tz1': 0, 'tz2': 1, 'tz3': 2}
PUBLIC_KEY_TAGS = {'edpk': 0, 'sppk': 1, 'p2pk': 2}

ENTRYPOINT_TAGS = {
    'default': 0,
    'root': 1,
    'do': 2,
    'set_delegate': 3,
    'remove_delegate': 4,
}
NAMED_ENTRYPOINT = 0xFF

BALLOT_TAGS = {'yay': 0, 'nay': 1, 'pass': 2}

TRUE = b'\xff'
FALSE = b'\x00'

SIGNATURE_LENGTH = 64
BRANCH_LENGTH = 32


def _invert(table: Dict[str, int]) -> Dict[int, str]:
    return {v: k for k, v in table.items()}


# ============================================================================
# FIELD ENCODERS
# ============================================================================

def _length_prefixed(data: bytes) -> bytes:
    return struct.pack('>I', len(data)) + data


def forge_bool(value: bool) -> bytes:
    return TRUE if value else FALSE


def forge_int32(value: int) -> bytes:
    return struct.pack('>i', value)


def forge_key_hash(address: str) -> bytes:
    """Curve tag + 20-byte hash of an implicit account."""
    parsed = Address.from_string(address)
    if not parsed.is_implicit:
        raise InvalidAddress(f"{address} is not an implicit account")
    return bytes([KEY_HASH_TAGS[parsed.kind]]) + parsed.hash


def forge_address(address: str) -> bytes:
    """
    Encode a contract id.

    Implicit accounts are 0x00 + curve tag + hash, originated contracts
    0x01 + hash + 0x00 padding.
    """
    parsed = Address.from_string(address)
    if parsed.is_implicit:
        return b'\x00' + bytes([KEY_HASH_TAGS[parsed.kind]]) + parsed.hash
    return b'\x01' + parsed.hash + b'\x00'


def forge_public_key(public_key: str) -> bytes:
    prefix, payload = base58.decode(public_key)
    if prefix.name not in PUBLIC_KEY_TAGS:
        raise InvalidAddress(f"{public_key!r} is not a public key")
    return bytes([PUBLIC_KEY_TAGS[prefix.name]]) + payload


def forge_entrypoint(name: str) -> bytes:
    if name in ENTRYPOINT_TAGS:
        return bytes([ENTRYPOINT_TAGS[name]])
    encoded = name.encode('utf-8')
    if len(encoded) > 255:
        raise ValueError(f"entrypoint name too long: {name!r}")
    return bytes([NAMED_ENTRYPOINT, len(encoded)]) + encoded


def forge_parameters(parameters: Optional[Parameters]) -> bytes:
    if parameters is None:
        return FALSE
    return (
        TRUE
        + forge_entrypoint(parameters.entrypoint)
        + _length_prefixed(micheline.encode(parameters.value))
    )


def forge_script(script: Script) -> bytes:
    return _length_prefixed(micheline.encode(script.code)) + _length_prefixed(micheline.encode(script.storage))


def _forge_signature(signature: str) -> bytes:
    prefix, payload = base58.decode(signature)
    if prefix.name not in ('edsig', 'sig'):
        raise InvalidSignature(f"{signature!r} is not a signature")
    return payload


def _timestamp_to_seconds(timestamp: str) -> int:
    parsed = datetime.strptime(timestamp, '%Y-%m-%dT%H:%M:%SZ')
    return calendar.timegm(parsed.timetuple())


def _seconds_to_timestamp(seconds: int) -> str:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedOperationBytes(f"block timestamp {seconds} out of range: {e}") from e


# ============================================================================
# CONTENT ENCODERS
# ============================================================================

def _forge_manager_fields(content) -> bytes:
    return (
        forge_key_hash(content.source)
        + zarith.encode_nat(content.fee)
        + zarith.encode_nat(content.counter)
        + zarith.encode_nat(content.gas_limit)
        + zarith.encode_nat(content.storage_limit)
    )


def _forge_inlined_endorsement(op: InlinedEndorsement) -> bytes:
    return (
        base58.decode_with_prefix(op.branch, "branch")
        + forge_content(op.operations)
        + _forge_signature(op.signature)
    )


def _forge_block_header(header: BlockHeader) -> bytes:
    fitness = b''.join(_length_prefixed(f) for f in header.fitness)
    if len(header.proof_of_work_nonce) != 8:
        raise ValueError("proof_of_work_nonce must be 8 bytes")
    out = (
        forge_int32(header.level)
        + struct.pack('>B', header.proto)
        + base58.decode_with_prefix(header.predecessor, "branch")
        + struct.pack('>q', _timestamp_to_seconds(header.timestamp))
        + struct.pack('>B', header.validation_pass)
        + base58.decode_with_prefix(header.operations_hash, "operations_hash")
        + _length_prefixed(fitness)
        + base58.decode_with_prefix(header.context, "context")
        + struct.pack('>H', header.priority)
        + header.proof_of_work_nonce
    )
    if header.seed_nonce_hash is None:
        out += FALSE
    else:
        out += TRUE + base58.decode_with_prefix(header.seed_nonce_hash, "nonce_hash")
    return out + _forge_signature(header.signature)


def forge_content(content: OperationContent) -> bytes:
    """
    Forge a single operation content, starting with its kind tag.

    Args:
        content: Operation content

    Returns:
        Forged bytes
    """
    out = bytes([OPERATION_TAGS[content.kind]])

    if isinstance(content, Endorsement):
        return out + forge_int32(content.level)
    if isinstance(content, SeedNonceRevelation):
        if len(content.nonce) != 32:
            raise ValueError("seed nonce must be 32 bytes")
        return out + forge_int32(content.level) + content.nonce
    if isinstance(content, DoubleEndorsementEvidence):
        return (
            out
            + _length_prefixed(_forge_inlined_endorsement(content.op1))
            + _length_prefixed(_forge_inlined_endorsement(content.op2))
        )
    if isinstance(content, DoubleBakingEvidence):
        return (
            out
            + _length_prefixed(_forge_block_header(content.bh1))
            + _length_prefixed(_forge_block_header(content.bh2))
        )
    if isinstance(content, ActivateAccount):
        parsed = Address.from_string(content.pkh)
        if parsed.kind != 'tz1':
            raise InvalidAddress(f"{content.pkh} is not an Ed25519 account")
        if len(content.secret) != 20:
            raise ValueError("activation secret must be 20 bytes")
        return out + parsed.hash + content.secret
    if isinstance(content, Proposals):
        hashes = b''.join(base58.decode_with_prefix(p, "protocol") for p in content.proposals)
        return out + forge_key_hash(content.source) + forge_int32(content.period) + _length_prefixed(hashes)
    if isinstance(content, Ballot):
        return (
            out
            + forge_key_hash(content.source)
            + forge_int32(content.period)
            + base58.decode_with_prefix(content.proposal, "protocol")
            + bytes([BALLOT_TAGS[content.ballot]])
        )
    if isinstance(content, Reveal):
        return out + _forge_manager_fields(content) + forge_public_key(content.public_key)
    if isinstance(content, Transaction):
        return (
            out
            + _forge_manager_fields(content)
            + zarith.encode_nat(content.amount)
            + forge_address(content.destination)
            + forge_parameters(content.parameters)
        )
    if isinstance(content, Origination):
        if content.script is None:
            raise ValueError("origination requires a script")
        out += _forge_manager_fields(content) + zarith.encode_nat(content.balance)
        if content.delegate is None:
            out += FALSE
        else:
            out += TRUE + forge_key_hash(content.delegate)
        return out + forge_script(content.script)
    if isinstance(content, Delegation):
        out += _forge_manager_fields(content)
        if content.delegate is None:
            return out + FALSE
        return out + TRUE + forge_key_hash(content.delegate)

    raise TypeError(f"cannot forge {type(content).__name__}")


def forge(branch: str, contents: List[OperationContent]) -> bytes:
    """
    Forge an operation group.

    Args:
        branch: Block hash the group is anchored to
        contents: Operation contents, all sharing the branch

    Returns:
        Branch bytes followed by each forged content

    Example:
        >>> operation_hex = forge(head.hash, [transaction]).hex()
    """
    out = base58.decode_with_prefix(branch, "branch")
    for content in contents:
        out += forge_content(content)
    logger.debug(f"Forged {len(contents)} contents into {len(out)} bytes")
    return out


# ============================================================================
# DECODING
# ============================================================================

class _Reader:
    """Cursor over forged bytes."""

    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def take(self, length: int) -> bytes:
        if length < 0 or self.offset + length > len(self.data):
            raise MalformedOperationBytes(
                f"need {length} bytes at offset {self.offset}, have {self.remaining}"
            )
        chunk = self.data[self.offset:self.offset + length]
        self.offset += length
        return chunk

    def byte(self) -> int:
        return self.take(1)[0]

    def flag(self) -> bool:
        value = self.byte()
        if value == 0xFF:
            return True
        if value == 0x00:
            return False
        raise MalformedOperationBytes(f"invalid boolean byte 0x{value:02x}")

    def int32(self) -> int:
        return struct.unpack('>i', self.take(4))[0]

    def nat(self) -> int:
        value, self.offset = zarith.read_nat(self.data, self.offset)
        return value

    def length_prefixed(self) -> bytes:
        (length,) = struct.unpack('>I', self.take(4))
        return self.take(length)

    def expression(self) -> micheline.MichelineExpression:
        return micheline.decode(self.length_prefixed())

    def key_hash(self) -> str:
        tag = self.byte()
        kinds = _invert(KEY_HASH_TAGS)
        if tag not in kinds:
            raise MalformedOperationBytes(f"unknown key hash tag {tag}")
        return base58.encode(self.take(20), kinds[tag])

    def address(self) -> str:
        tag = self.byte()
        if tag == 0:
            return self.key_hash()
        if tag == 1:
            contract = self.take(20)
            if self.byte() != 0:
                raise MalformedOperationBytes("originated contract id must end with padding byte 0x00")
            return base58.encode(contract, "KT1")
        raise MalformedOperationBytes(f"unknown contract id tag {tag}")

    def public_key(self) -> str:
        tag = self.byte()
        kinds = _invert(PUBLIC_KEY_TAGS)
        if tag not in kinds:
            raise MalformedOperationBytes(f"unknown public key tag {tag}")
        prefix = base58.get_prefix(kinds[tag])
        return base58.encode(self.take(prefix.payload_length), prefix)

    def hash(self, prefix: str) -> str:
        return base58.encode(self.take(base58.get_prefix(prefix).payload_length), prefix)

    def signature(self) -> str:
        return base58.encode(self.take(SIGNATURE_LENGTH), "edsig")


def _read_manager_fields(reader: _Reader) -> dict:
    return {
        'source': reader.key_hash(),
        'fee': reader.nat(),
        'counter': reader.nat(),
        'gas_limit': reader.nat(),
        'storage_limit': reader.nat(),
    }


def _read_parameters(reader: _Reader) -> Optional[Parameters]:
    if not reader.flag():
        return None
    tag = reader.byte()
    if tag == NAMED_ENTRYPOINT:
        entrypoint = micheline.decode_text(reader.take(reader.byte()), "entrypoint")
    else:
        names = _invert(ENTRYPOINT_TAGS)
        if tag not in names:
            raise MalformedOperationBytes(f"unknown entrypoint tag {tag}")
        entrypoint = names[tag]
    return Parameters(entrypoint, reader.expression())


def _read_inlined_endorsement(data: bytes) -> InlinedEndorsement:
    reader = _Reader(data)
    branch = reader.hash("branch")
    content = _read_content(reader)
    if not isinstance(content, Endorsement):
        raise MalformedOperationBytes(f"inlined operation must be an endorsement, got {content.kind}")
    signature = reader.signature()
    _expect_end(reader)
    return InlinedEndorsement(branch, content, signature)


def _read_block_header(data: bytes) -> BlockHeader:
    reader = _Reader(data)
    level = reader.int32()
    proto = reader.byte()
    predecessor = reader.hash("branch")
    timestamp = _seconds_to_timestamp(struct.unpack('>q', reader.take(8))[0])
    validation_pass = reader.byte()
    operations_hash = reader.hash("operations_hash")
    fitness_reader = _Reader(reader.length_prefixed())
    fitness = []
    while fitness_reader.remaining:
        fitness.append(fitness_reader.length_prefixed())
    context = reader.hash("context")
    priority = struct.unpack('>H', reader.take(2))[0]
    proof_of_work_nonce = reader.take(8)
    seed_nonce_hash = reader.hash("nonce_hash") if reader.flag() else None
    signature = reader.signature()
    _expect_end(reader)
    return BlockHeader(
        level=level,
        proto=proto,
        predecessor=predecessor,
        timestamp=timestamp,
        validation_pass=validation_pass,
        operations_hash=operations_hash,
        fitness=tuple(fitness),
        context=context,
        priority=priority,
        proof_of_work_nonce=proof_of_work_nonce,
        signature=signature,
        seed_nonce_hash=seed_nonce_hash,
    )


def _read_endorsement(reader: _Reader) -> Endorsement:
    return Endorsement(level=reader.int32())


def _read_seed_nonce_revelation(reader: _Reader) -> SeedNonceRevelation:
    return SeedNonceRevelation(level=reader.int32(), nonce=reader.take(32))


def _read_double_endorsement(reader: _Reader) -> DoubleEndorsementEvidence:
    op1 = _read_inlined_endorsement(reader.length_prefixed())
    op2 = _read_inlined_endorsement(reader.length_prefixed())
    return DoubleEndorsementEvidence(op1, op2)


def _read_double_baking(reader: _Reader) -> DoubleBakingEvidence:
    bh1 = _read_block_header(reader.length_prefixed())
    bh2 = _read_block_header(reader.length_prefixed())
    return DoubleBakingEvidence(bh1, bh2)


def _read_activate_account(reader: _Reader) -> ActivateAccount:
    return ActivateAccount(pkh=base58.encode(reader.take(20), "tz1"), secret=reader.take(20))


def _read_proposals(reader: _Reader) -> Proposals:
    source = reader.key_hash()
    period = reader.int32()
    hashes = _Reader(reader.length_prefixed())
    proposals = []
    while hashes.remaining:
        proposals.append(hashes.hash("protocol"))
    return Proposals(source, period, tuple(proposals))


def _read_ballot(reader: _Reader) -> Ballot:
    source = reader.key_hash()
    period = reader.int32()
    proposal = reader.hash("protocol")
    tag = reader.byte()
    names = _invert(BALLOT_TAGS)
    if tag not in names:
        raise MalformedOperationBytes(f"unknown ballot tag {tag}")
    return Ballot(source, period, proposal, names[tag])


def _read_reveal(reader: _Reader) -> Reveal:
    fields = _read_manager_fields(reader)
    return Reveal(public_key=reader.public_key(), **fields)


def _read_transaction(reader: _Reader) -> Transaction:
    fields = _read_manager_fields(reader)
    amount = reader.nat()
    destination = reader.address()
    parameters = _read_parameters(reader)
    return Transaction(amount=amount, destination=destination, parameters=parameters, **fields)


def _read_origination(reader: _Reader) -> Origination:
    fields = _read_manager_fields(reader)
    balance = reader.nat()
    delegate = reader.key_hash() if reader.flag() else None
    script = Script(code=reader.expression(), storage=reader.expression())
    return Origination(balance=balance, delegate=delegate, script=script, **fields)


def _read_delegation(reader: _Reader) -> Delegation:
    fields = _read_manager_fields(reader)
    delegate = reader.key_hash() if reader.flag() else None
    return Delegation(delegate=delegate, **fields)


CONTENT_READERS: Dict[int, Callable[[_Reader], OperationContent]] = {
    OPERATION_TAGS['endorsement']: _read_endorsement,
    OPERATION_TAGS['seed_nonce_revelation']: _read_seed_nonce_revelation,
    OPERATION_TAGS['double_endorsement_evidence']: _read_double_endorsement,
    OPERATION_TAGS['double_baking_evidence']: _read_double_baking,
    OPERATION_TAGS['activate_account']: _read_activate_account,
    OPERATION_TAGS['proposals']: _read_proposals,
    OPERATION_TAGS['ballot']: _read_ballot,
    OPERATION_TAGS['reveal']: _read_reveal,
    OPERATION_TAGS['transaction']: _read_transaction,
    OPERATION_TAGS['origination']: _read_origination,
    OPERATION_TAGS['delegation']: _read_delegation,
}


def _read_content(reader: _Reader) -> OperationContent:
    tag = reader.byte()
    try:
        read = CONTENT_READERS[tag]
    except KeyError:
        raise MalformedOperationBytes(f"unknown operation tag {tag}") from None
    return read(reader)


def _expect_end(reader: _Reader) -> None:
    if reader.remaining:
        raise MalformedOperationBytes(f"{reader.remaining} trailing bytes")


def unforge(
    data: Union[bytes, str],
    verify_signature: bool = False,
    public_key: Optional[str] = None,
) -> Tuple[str, List[OperationContent]]:
    """
    Decode forged operation bytes back into a branch and contents.

    Args:
        data: Forged bytes or hex
        verify_signature: Treat the trailing 64 bytes as a signature and check it
        public_key: edpk to verify with; defaults to the group's reveal key

    Returns:
        Tuple of (branch, contents)

    Raises:
        MalformedOperationBytes: truncated input, trailing bytes or unknown tags
        InvalidSignature: signature does not verify
    """
    if isinstance(data, str):
        try:
            data = bytes.fromhex(data)
        except ValueError as e:
            raise MalformedOperationBytes(f"invalid hex: {e}") from e

    signature = None
    if verify_signature:
        if len(data) < BRANCH_LENGTH + SIGNATURE_LENGTH:
            raise MalformedOperationBytes("too short to carry a signature")
        data, signature = data[:-SIGNATURE_LENGTH], data[-SIGNATURE_LENGTH:]

    reader = _Reader(data)
    branch = reader.hash("branch")
    contents = []
    while reader.remaining:
        contents.append(_read_content(reader))

    if signature is not None:
        _check_signature(data, signature, contents, public_key)
    return branch, contents


def _check_signature(data: bytes, signature: bytes, contents, public_key: Optional[str]) -> None:
    if public_key is None:
        reveals = [c for c in contents if isinstance(c, Reveal)]
        if not reveals:
            raise InvalidSignature("no public key given and the group reveals none")
        public_key = reveals[0].public_key
    if not verify(data, Signature(signature), public_key):
        raise InvalidSignature(f"signature does not verify against {public_key}")


def unforge_address(data: Union[bytes, str]) -> str:
    """
    Decode a 22-byte contract id or 21-byte key hash into its address.
    """
    if isinstance(data, str):
        try:
            data = bytes.fromhex(data)
        except ValueError as e:
            raise MalformedOperationBytes(f"invalid address hex: {e}") from e
    reader = _Reader(data)
    address = reader.key_hash() if len(data) == 21 else reader.address()
    _expect_end(reader)
    return address
