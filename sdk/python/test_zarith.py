"""
Tests for Zarith natural and integer encoding
"""

import pytest

from tezos_sdk import zarith
from tezos_sdk.errors import MalformedOperationBytes


class TestNat:
    """Tests for unsigned naturals."""

    @pytest.mark.parametrize("value,expected", [
        (0, "00"),
        (1, "01"),
        (127, "7f"),
        (128, "8001"),
        (10100, "f44e"),
        (12345, "b960"),
        (1200000, "809f49"),
        (20000000000, "8090dfc04a"),
    ])
    def test_known_values(self, value, expected):
        assert zarith.encode_nat(value).hex() == expected
        assert zarith.decode_nat(bytes.fromhex(expected)) == value

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            zarith.encode_nat(-1)

    def test_arbitrary_precision(self):
        value = 2 ** 256 + 12345
        assert zarith.decode_nat(zarith.encode_nat(value)) == value

    def test_read_returns_offset(self):
        data = bytes.fromhex("ff" + "f44e" + "01")
        value, offset = zarith.read_nat(data, 1)
        assert value == 10100
        assert offset == 3


class TestInt:
    """Tests for signed integers."""

    @pytest.mark.parametrize("value,expected", [
        (0, "00"),
        (-1, "41"),
        (-10, "4a"),
        (63, "3f"),
        (64, "8001"),
        (11110, "a6ad01"),
        (-11110, "e6ad01"),
        (2147483748, "a481808010"),
    ])
    def test_known_values(self, value, expected):
        assert zarith.encode_int(value).hex() == expected
        assert zarith.decode_int(bytes.fromhex(expected)) == value

    def test_arbitrary_precision(self):
        for value in (2 ** 130, -(2 ** 130) - 7):
            assert zarith.decode_int(zarith.encode_int(value)) == value


class TestMalformed:
    """Tests for truncated and trailing input."""

    def test_dangling_continuation(self):
        with pytest.raises(MalformedOperationBytes):
            zarith.decode_nat(b"\x80")

    def test_dangling_continuation_int(self):
        with pytest.raises(MalformedOperationBytes):
            zarith.decode_int(b"\xa6\xad")

    def test_empty_input(self):
        with pytest.raises(MalformedOperationBytes):
            zarith.decode_int(b"")

    def test_trailing_bytes(self):
        with pytest.raises(MalformedOperationBytes):
            zarith.decode_nat(b"\x01\x02")
