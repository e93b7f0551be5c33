"""
Tests for packing and script expression hashes
"""

import pytest

from tezos_sdk import expression_hash, pack, unpack
from tezos_sdk.errors import MalformedOperationBytes
from tezos_sdk.micheline import MichelineInt, MichelineString, prim
from tezos_sdk.pack import (
    hash_address,
    hash_bytes,
    hash_int,
    hash_key_hash,
    hash_string,
    hash_value,
    pack_address,
    pack_int,
    pack_string,
    unpack_address,
)


class TestPack:
    """Tests for packing values."""

    def test_string(self):
        assert pack_string("123123123") == "050100000009313233313233313233"
        assert pack(MichelineString("123123123")) == "050100000009313233313233313233"

    @pytest.mark.parametrize("value,expected", [
        (-10, "05004a"),
        (-11110, "0500e6ad01"),
        (11110, "0500a6ad01"),
        (0, "050000"),
        (2147483748, "0500a481808010"),
    ])
    def test_int(self, value, expected):
        assert pack_int(value) == expected

    def test_implicit_address(self):
        packed = pack_address("tz1WfxXzNgcsMrQBV6YHChmyQgNVvfo44ihi")
        assert packed == "050a0000001600007906bec05de5c0bbaf5f6062fc33096ec29e9f30"

    def test_originated_address(self):
        packed = pack_address("KT1TPBnfPq7XpCjL11HTzAeBkyxrSxUuskS9")
        assert packed == "050a0000001601ce399e401363480455445f652d8bbaed24b52b3400"


class TestUnpack:
    """Tests for unpacking values."""

    def test_int(self):
        assert unpack("0500a6ad01") == MichelineInt(11110)

    def test_pair(self):
        value = prim("Pair", MichelineInt(1), MichelineString("one"))
        assert unpack(pack(value)) == value

    def test_address(self):
        packed = "050a0000001601ce399e401363480455445f652d8bbaed24b52b3400"
        assert unpack_address(packed) == "KT1TPBnfPq7XpCjL11HTzAeBkyxrSxUuskS9"

    def test_missing_marker(self):
        with pytest.raises(MalformedOperationBytes):
            unpack("0000")

    def test_empty(self):
        with pytest.raises(MalformedOperationBytes):
            unpack(b"")

    def test_invalid_hex(self):
        with pytest.raises(MalformedOperationBytes, match="hex"):
            unpack("05zz")

    def test_not_an_address(self):
        with pytest.raises(MalformedOperationBytes):
            unpack_address("050000")


class TestExpressionHash:
    """Tests for expr hashes of packed values."""

    def test_int(self):
        assert hash_int(9) == "exprtvAzqNE9zfpBLL9nKEaY1Dd2rznyG9iTFtECJvDkuub1bj3XvW"
        assert hash_int(-9) == "exprvH9jru3NJN4ZTNwwkCdC1PPLkWLWCoe6JxhcJ3a39mD5Bd4NH4"

    def test_address(self):
        address = "tz1S82rGFZK8cVbNDpP1Hf9VhTUa4W8oc2WV"
        expected = "expru1LH1CafV3yYgs9BkbrMWWfAE9ye3RdWwyndr9MKYN8w5VQ7Rt"
        assert hash_address(address) == expected
        assert hash_address(address) == expression_hash(pack_address(address))
        assert pack_address(address).startswith("050a00000016")

    def test_string(self):
        expected = "expruGmscHLuUazE7d79EepWCnDuPJreo8R87wsDGUgKAuH4E5ayEj"
        assert hash_string("Tezos Tacos Nachos") == expected

    def test_key_hash(self):
        expected = "expruqnFVtyPKd2KcrjkiJTaqE1WU1fEf8K1ajHvzgKz5pcc5sZyjn"
        assert hash_key_hash("tz1eEnQhbwf6trb8Q8mPb2RaPkNk2rN7BKi8") == expected

    def test_bytes(self):
        expected = "exprunb7V121UYKTTbQGj6UQrpgXcZE3F71TrNMUkw9WtARMzht9tN"
        assert hash_bytes(bytes.fromhex("0a0a0a")) == expected

    def test_micheline_pair(self):
        expected = "exprupozG51AtT7yZUy5sg6VbJQ4b9omAE1PKD2PXvqi2YBuZqoKG3"
        assert hash_value(prim("Pair", MichelineInt(1), MichelineInt(12))) == expected

    def test_hex_and_bytes_agree(self):
        packed = pack_int(9)
        assert expression_hash(packed) == expression_hash(bytes.fromhex(packed))
        assert expression_hash(packed).startswith("expr")
