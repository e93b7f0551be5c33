"""
Tests for tezos_sdk/operations.py

Tests batch payment building against a mocked node.
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest

from tezos_sdk import BatchPaymentBuilder, Payment, Wallet, base58, create_batch_payment, unforge
from tezos_sdk.errors import BatchPaymentError, PreapplyRejected
from tezos_sdk.models import BlockHead, Endorsement, Reveal, Transaction


# ============================================================================
# TEST DATA
# ============================================================================

BRANCH = base58.encode(bytes(range(32)), "branch")
PROTOCOL = base58.encode(bytes(32), "protocol")
DESTINATIONS = [base58.encode(i.to_bytes(20, "big"), "tz1") for i in range(1, 501)]


def create_mock_client(counter: int = 10):
    """Create a node client mock that accepts every preapply."""
    client = Mock()
    client.get_head.return_value = BlockHead(hash=BRANCH, protocol=PROTOCOL, level=100)
    client.get_counter.return_value = counter
    client.preapply_operations.return_value = [{"contents": []}]
    client.inject_operation.return_value = "ooHash"
    return client


def create_payments(count: int, amount: str = "1.5"):
    return [Payment(DESTINATIONS[i], Decimal(amount)) for i in range(count)]


def decode_batch(operation: str, wallet: Wallet):
    """Verify the trailing signature and return the transactions."""
    branch, contents = unforge(operation, verify_signature=True, public_key=wallet.public_key)
    assert branch == BRANCH
    return contents


@pytest.fixture(scope="module")
def wallet():
    return Wallet.generate()


# ============================================================================
# BATCHING
# ============================================================================

class TestBatching:
    """Tests for splitting payments into batches."""

    def test_single_batch(self, wallet):
        client = create_mock_client()
        operations = BatchPaymentBuilder(client).create_batch_payment(
            create_payments(3), wallet, fee=1420
        )

        assert len(operations) == 1
        contents = decode_batch(operations[0], wallet)
        assert [c.counter for c in contents] == [11, 12, 13]
        assert all(isinstance(c, Transaction) for c in contents)
        assert all(c.amount == 1500000 for c in contents)
        assert all(c.fee == 1420 and c.source == wallet.address for c in contents)
        assert [c.destination for c in contents] == DESTINATIONS[:3]

    def test_batches_are_capped_at_200(self, wallet):
        client = create_mock_client()
        operations = create_batch_payment(client, create_payments(450), wallet, fee=1420, batch_size=1000)

        assert [len(decode_batch(op, wallet)) for op in operations] == [200, 200, 50]

    def test_counters_continue_across_batches(self, wallet):
        client = create_mock_client(counter=41)
        operations = BatchPaymentBuilder(client).create_batch_payment(
            create_payments(7), wallet, fee=1420, batch_size=3
        )

        counters = [c.counter for op in operations for c in decode_batch(op, wallet)]
        assert counters == list(range(42, 49))
        client.get_head.assert_called_once()
        client.get_counter.assert_called_once_with(wallet.address)
        assert client.preapply_operations.call_count == 3

    def test_gas_and_storage_limits(self, wallet):
        client = create_mock_client()
        operations = BatchPaymentBuilder(client).create_batch_payment(
            create_payments(2), wallet, fee=1, gas_limit=20000, storage_limit=300
        )
        contents = decode_batch(operations[0], wallet)
        assert all(c.gas_limit == 20000 and c.storage_limit == 300 for c in contents)

    def test_preapply_receives_signed_contents(self, wallet):
        client = create_mock_client()
        BatchPaymentBuilder(client).create_batch_payment(create_payments(2), wallet, fee=1420)

        head, contents, signature = client.preapply_operations.call_args[0]
        assert head.hash == BRANCH
        assert [c["counter"] for c in contents] == ["11", "12"]
        assert signature.startswith("edsig")

    def test_invalid_batch_size(self, wallet):
        with pytest.raises(ValueError):
            BatchPaymentBuilder(create_mock_client()).create_batch_payment(
                create_payments(1), wallet, fee=1, batch_size=0
            )


class TestAmounts:
    """Tests for payment amount handling."""

    def test_xtz_rounds_half_up_to_mutez(self, wallet):
        client = create_mock_client()
        payments = [Payment(DESTINATIONS[0], Decimal("0.0000015")), Payment(DESTINATIONS[1], Decimal("2"))]
        operations = BatchPaymentBuilder(client).create_batch_payment(payments, wallet, fee=1)

        assert [c.amount for c in decode_batch(operations[0], wallet)] == [2, 2000000]

    def test_zero_amounts_are_skipped(self, wallet):
        client = create_mock_client()
        payments = [
            Payment(DESTINATIONS[0], Decimal("0")),
            Payment(DESTINATIONS[1], Decimal("0.0000001")),
            Payment(DESTINATIONS[2], Decimal("1")),
        ]
        operations = BatchPaymentBuilder(client).create_batch_payment(payments, wallet, fee=1)

        contents = decode_batch(operations[0], wallet)
        assert [c.destination for c in contents] == [DESTINATIONS[2]]
        assert contents[0].counter == 11

    def test_nothing_to_pay(self, wallet):
        client = create_mock_client()
        assert BatchPaymentBuilder(client).create_batch_payment([], wallet, fee=1) == []
        client.get_head.assert_not_called()


class TestRejection:
    """Tests for preapply rejections."""

    def test_rejected_batch_raises_with_all_results(self, wallet):
        client = create_mock_client()
        rejection = PreapplyRejected("counter_in_the_past", [{"id": "proto.counter_in_the_past"}])
        client.preapply_operations.side_effect = [None, rejection, None]

        with pytest.raises(BatchPaymentError) as exc_info:
            BatchPaymentBuilder(client).create_batch_payment(
                create_payments(5), wallet, fee=1, batch_size=2
            )

        error = exc_info.value
        assert len(error.results) == 3
        assert [r.ok for r in error.results] == [True, False, True]
        assert error.failures == [error.results[1]]
        assert error.failures[0].error is rejection
        assert error.failures[0].operation is None
        assert error.results[2].counter_start == 15

    def test_build_batches_reports_without_raising(self, wallet):
        client = create_mock_client()
        client.preapply_operations.side_effect = PreapplyRejected("balance_too_low")

        results = BatchPaymentBuilder(client).build_batches(create_payments(3), wallet, fee=1)
        assert len(results) == 1
        assert not results[0].ok
        assert results[0].payments == create_payments(3)

    def test_inject(self, wallet):
        client = create_mock_client()
        assert BatchPaymentBuilder(client).inject("abcd") == "ooHash"
        client.inject_operation.assert_called_once_with("abcd")


# ============================================================================
# COUNTER ASSIGNMENT
# ============================================================================

class TestForgeOperation:
    """Tests for forging arbitrary contents with chain counters."""

    def create_contents(self, wallet):
        other = DESTINATIONS[-1]
        return [
            Reveal(
                source=wallet.address, fee=1257, counter=0, gas_limit=10000, storage_limit=0,
                public_key=wallet.public_key,
            ),
            Transaction(
                source=other, fee=1, counter=7, gas_limit=1, storage_limit=0,
                amount=1, destination=wallet.address,
            ),
            Transaction(
                source=wallet.address, fee=1420, counter=99, gas_limit=10307, storage_limit=0,
                amount=5, destination=DESTINATIONS[0],
            ),
            Endorsement(level=100),
        ]

    def test_counters_follow_chain_counter(self, wallet):
        client = create_mock_client(counter=41)
        group = BatchPaymentBuilder(client).forge_operation(wallet.address, self.create_contents(wallet))

        client.get_counter.assert_called_once_with(wallet.address)
        assert group.branch == BRANCH
        assert [getattr(c, "counter", None) for c in group.contents] == [42, 7, 43, None]
        assert group.contents[0].public_key == wallet.public_key

    def test_explicit_branch_skips_head(self, wallet):
        client = create_mock_client()
        other_branch = base58.encode(bytes(32), "branch")
        group = BatchPaymentBuilder(client).forge_operation(
            wallet.address, self.create_contents(wallet)[:1], branch=other_branch
        )

        assert group.branch == other_branch
        client.get_head.assert_not_called()

    def test_forge_bytes_round_trip(self, wallet):
        client = create_mock_client(counter=0)
        contents = [c for c in self.create_contents(wallet) if getattr(c, "source", None) == wallet.address]
        forged = BatchPaymentBuilder(client).forge_bytes(wallet.address, contents)

        branch, decoded = unforge(forged)
        assert branch == BRANCH
        assert [c.counter for c in decoded] == [1, 2]
        assert [c.kind for c in decoded] == ["reveal", "transaction"]
