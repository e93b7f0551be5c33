"""
Micheline expressions and their binary and JSON encodings
"""

import struct
from dataclasses import dataclass
from typing import Any, Dict, Tuple, Union

from . import zarith
from .errors import MalformedOperationBytes, UnsupportedMichelsonPrimitive


# ============================================================================
# PRIMITIVES
# ============================================================================

# Index in this table is the primitive's 1-byte tag
PRIMITIVES = (
    "parameter", "storage", "code", "False", "Elt", "Left",
    "None", "Pair", "Right", "Some", "True", "Unit",
    "PACK", "UNPACK", "BLAKE2B", "SHA256", "SHA512", "ABS",
    "ADD", "AMOUNT", "AND", "BALANCE", "CAR", "CDR",
    "CHECK_SIGNATURE", "COMPARE", "CONCAT", "CONS", "CREATE_ACCOUNT", "CREATE_CONTRACT",
    "IMPLICIT_ACCOUNT", "DIP", "DROP", "DUP", "EDIV", "EMPTY_MAP",
    "EMPTY_SET", "EQ", "EXEC", "FAILWITH", "GE", "GET",
    "GT", "HASH_KEY", "IF", "IF_CONS", "IF_LEFT", "IF_NONE",
    "INT", "LAMBDA", "LE", "LEFT", "LOOP", "LSL",
    "LSR", "LT", "MAP", "MEM", "MUL", "NEG",
    "NEQ", "NIL", "NONE", "NOT", "NOW", "OR",
    "PAIR", "PUSH", "RIGHT", "SIZE", "SOME", "SOURCE",
    "SENDER", "SELF", "STEPS_TO_QUOTA", "SUB", "SWAP", "TRANSFER_TOKENS",
    "SET_DELEGATE", "UNIT", "UPDATE", "XOR", "ITER", "LOOP_LEFT",
    "ADDRESS", "CONTRACT", "ISNAT", "CAST", "RENAME", "bool",
    "contract", "int", "key", "key_hash", "lambda", "list",
    "map", "big_map", "nat", "option", "or", "pair",
    "set", "signature", "string", "bytes", "mutez", "timestamp",
    "unit", "operation", "address", "SLICE", "DIG", "DUG",
    "EMPTY_BIG_MAP", "APPLY", "chain_id", "CHAIN_ID", "LEVEL", "SELF_ADDRESS",
    "never", "NEVER", "UNPAIR", "VOTING_POWER", "TOTAL_VOTING_POWER", "KECCAK",
    "SHA3", "PAIRING_CHECK", "bls12_381_g1", "bls12_381_g2", "bls12_381_fr", "sapling_state",
    "sapling_transaction_deprecated", "SAPLING_EMPTY_STATE", "SAPLING_VERIFY_UPDATE", "ticket", "TICKET_DEPRECATED", "READ_TICKET",
    "SPLIT_TICKET", "JOIN_TICKETS", "GET_AND_UPDATE", "chest", "chest_key", "OPEN_CHEST",
    "VIEW", "view", "constant", "SUB_MUTEZ", "tx_rollup_l2_address", "MIN_BLOCK_TIME",
    "sapling_transaction", "EMIT", "Lambda_rec", "LAMBDA_REC", "TICKET", "BYTES",
    "NAT",
)

PRIMITIVE_TAGS: Dict[str, int] = {name: tag for tag, name in enumerate(PRIMITIVES)}

TAG_INT = 0x00
TAG_STRING = 0x01
TAG_SEQUENCE = 0x02
TAG_PRIM_0 = 0x03
TAG_PRIM_0_ANNOTS = 0x04
TAG_PRIM_1 = 0x05
TAG_PRIM_1_ANNOTS = 0x06
TAG_PRIM_2 = 0x07
TAG_PRIM_2_ANNOTS = 0x08
TAG_PRIM_N = 0x09
TAG_BYTES = 0x0A


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class MichelineInt:
    """Integer literal"""
    value: int


@dataclass(frozen=True)
class MichelineString:
    """String literal"""
    value: str


@dataclass(frozen=True)
class MichelineBytes:
    """Byte string literal"""
    value: bytes


@dataclass(frozen=True)
class MichelinePrim:
    """Primitive application with optional arguments and annotations"""
    prim: str
    args: Tuple["MichelineExpression", ...] = ()
    annots: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'args', tuple(self.args))
        object.__setattr__(self, 'annots', tuple(self.annots))


@dataclass(frozen=True)
class MichelineSequence:
    """Ordered sequence of expressions"""
    items: Tuple["MichelineExpression", ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'items', tuple(self.items))


MichelineExpression = Union[
    MichelineInt, MichelineString, MichelineBytes, MichelinePrim, MichelineSequence
]


def prim(name: str, *args: MichelineExpression, annots: Tuple[str, ...] = ()) -> MichelinePrim:
    """Shorthand for building a primitive application."""
    return MichelinePrim(name, args, annots)


# ============================================================================
# BINARY ENCODING
# ============================================================================

def _length_prefixed(data: bytes) -> bytes:
    return struct.pack('>I', len(data)) + data


def _primitive_tag(name: str) -> int:
    try:
        return PRIMITIVE_TAGS[name]
    except KeyError:
        raise UnsupportedMichelsonPrimitive(f"unknown primitive {name!r}") from None


def encode(expr: MichelineExpression) -> bytes:
    """
    Encode an expression into Micheline binary.

    Args:
        expr: Expression tree

    Returns:
        Encoded bytes

    Example:
        >>> encode(MichelineInt(-10)).hex()
        '004a'
    """
    if isinstance(expr, MichelineInt):
        return bytes([TAG_INT]) + zarith.encode_int(expr.value)
    if isinstance(expr, MichelineString):
        return bytes([TAG_STRING]) + _length_prefixed(expr.value.encode('utf-8'))
    if isinstance(expr, MichelineBytes):
        return bytes([TAG_BYTES]) + _length_prefixed(bytes(expr.value))
    if isinstance(expr, MichelineSequence):
        return bytes([TAG_SEQUENCE]) + _length_prefixed(b''.join(encode(item) for item in expr.items))
    if isinstance(expr, MichelinePrim):
        return _encode_prim(expr)
    raise TypeError(f"not a Micheline expression: {expr!r}")


def _encode_prim(expr: MichelinePrim) -> bytes:
    tag = _primitive_tag(expr.prim)
    args = b''.join(encode(arg) for arg in expr.args)
    annots = _length_prefixed(' '.join(expr.annots).encode('utf-8')) if expr.annots else b''

    if len(expr.args) < 3:
        # 0, 1, 2 args map to tags 3, 5, 7; annotations add one
        node_tag = TAG_PRIM_0 + 2 * len(expr.args) + (1 if expr.annots else 0)
        return bytes([node_tag, tag]) + args + annots

    # Three or more args always carry an annotation length, zero when absent
    return bytes([TAG_PRIM_N, tag]) + _length_prefixed(args) + (annots or bytes(4))


def _read_length(data: bytes, offset: int, end: int) -> Tuple[int, int]:
    if offset + 4 > end:
        raise MalformedOperationBytes("truncated length prefix")
    (length,) = struct.unpack_from('>I', data, offset)
    offset += 4
    if offset + length > end:
        raise MalformedOperationBytes(f"length {length} runs past end of input")
    return length, offset


def decode_text(raw: bytes, what: str) -> str:
    """UTF-8 decode, reporting invalid input as malformed bytes."""
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise MalformedOperationBytes(f"invalid UTF-8 in {what} {raw.hex()}: {e}") from e


def _read_annots(data: bytes, offset: int, end: int) -> Tuple[Tuple[str, ...], int]:
    length, offset = _read_length(data, offset, end)
    text = decode_text(data[offset:offset + length], "annotations")
    return (tuple(text.split(' ')) if text else ()), offset + length


def read_expression(data: bytes, offset: int = 0) -> Tuple[MichelineExpression, int]:
    """
    Read one expression from a byte stream.

    Returns:
        Tuple of (expression, offset after the expression)
    """
    return _read_expression(data, offset, len(data))


def _read_expression(data: bytes, offset: int, end: int) -> Tuple[MichelineExpression, int]:
    if offset >= end:
        raise MalformedOperationBytes("truncated Micheline expression")
    node_tag = data[offset]
    offset += 1

    if node_tag == TAG_INT:
        value, offset = zarith.read_int(data, offset)
        if offset > end:
            raise MalformedOperationBytes("zarith integer runs past end of its container")
        return MichelineInt(value), offset

    if node_tag in (TAG_STRING, TAG_BYTES, TAG_SEQUENCE):
        length, offset = _read_length(data, offset, end)
        stop = offset + length
        if node_tag == TAG_STRING:
            return MichelineString(decode_text(data[offset:stop], "string")), stop
        if node_tag == TAG_BYTES:
            return MichelineBytes(bytes(data[offset:stop])), stop
        items = []
        while offset < stop:
            item, offset = _read_expression(data, offset, stop)
            items.append(item)
        return MichelineSequence(tuple(items)), stop

    if TAG_PRIM_0 <= node_tag <= TAG_PRIM_N:
        if offset >= end:
            raise MalformedOperationBytes("truncated primitive tag")
        tag = data[offset]
        offset += 1
        if tag >= len(PRIMITIVES):
            raise UnsupportedMichelsonPrimitive(f"unknown primitive tag 0x{tag:02x}")
        name = PRIMITIVES[tag]

        args = []
        annots: Tuple[str, ...] = ()
        if node_tag == TAG_PRIM_N:
            length, offset = _read_length(data, offset, end)
            stop = offset + length
            while offset < stop:
                arg, offset = _read_expression(data, offset, stop)
                args.append(arg)
            annots, offset = _read_annots(data, offset, end)
        else:
            arg_count = (node_tag - TAG_PRIM_0) // 2
            for _ in range(arg_count):
                arg, offset = _read_expression(data, offset, end)
                args.append(arg)
            if (node_tag - TAG_PRIM_0) % 2:
                annots, offset = _read_annots(data, offset, end)
        return MichelinePrim(name, tuple(args), annots), offset

    raise MalformedOperationBytes(f"unknown Micheline node tag 0x{node_tag:02x}")


def decode(data: bytes) -> MichelineExpression:
    """Decode exactly one expression, rejecting trailing bytes."""
    expr, offset = read_expression(data)
    if offset != len(data):
        raise MalformedOperationBytes(f"{len(data) - offset} trailing bytes after expression")
    return expr


# ============================================================================
# JSON
# ============================================================================

def from_json(obj: Any) -> MichelineExpression:
    """
    Convert node JSON (as returned by json.loads) into an expression.

    Example:
        >>> from_json({"prim": "Pair", "args": [{"int": "1"}, {"int": "12"}]})
        MichelinePrim(prim='Pair', args=(MichelineInt(value=1), MichelineInt(value=12)), annots=())
    """
    if isinstance(obj, list):
        return MichelineSequence(tuple(from_json(item) for item in obj))
    if not isinstance(obj, dict):
        raise MalformedOperationBytes(f"not a Micheline JSON node: {obj!r}")
    if 'int' in obj:
        return MichelineInt(int(obj['int']))
    if 'string' in obj:
        return MichelineString(obj['string'])
    if 'bytes' in obj:
        return MichelineBytes(bytes.fromhex(obj['bytes']))
    if 'prim' in obj:
        return MichelinePrim(
            obj['prim'],
            tuple(from_json(arg) for arg in obj.get('args', [])),
            tuple(obj.get('annots', [])),
        )
    raise MalformedOperationBytes(f"not a Micheline JSON node: {obj!r}")


def to_json(expr: MichelineExpression) -> Any:
    """Convert an expression into node JSON."""
    if isinstance(expr, MichelineInt):
        return {'int': str(expr.value)}
    if isinstance(expr, MichelineString):
        return {'string': expr.value}
    if isinstance(expr, MichelineBytes):
        return {'bytes': expr.value.hex()}
    if isinstance(expr, MichelineSequence):
        return [to_json(item) for item in expr.items]
    if isinstance(expr, MichelinePrim):
        node: Dict[str, Any] = {'prim': expr.prim}
        if expr.args:
            node['args'] = [to_json(arg) for arg in expr.args]
        if expr.annots:
            node['annots'] = list(expr.annots)
        return node
    raise TypeError(f"not a Micheline expression: {expr!r}")
