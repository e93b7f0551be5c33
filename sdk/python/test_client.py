"""
Tests for the node RPC client with a mocked HTTP session
"""

from unittest.mock import Mock, patch

import pytest
import requests

from tezos_sdk import ClientConfig, TezosClient
from tezos_sdk.errors import PreapplyRejected, RPCError
from tezos_sdk.models import BlockHead


# ============================================================================
# TEST DATA
# ============================================================================

BASE_URL = "http://node.example:8732"
DELEGATE = "tz1LSAycAVcNdYnXCy18bwVksXci8gUC2YpA"

CONSTANTS = {
    "blocks_per_cycle": 4096,
    "preserved_cycles": 5,
    "blocks_per_roll_snapshot": 256,
}


def create_response(payload, status_code=200):
    """Create a mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    response.text = str(payload)
    return response


def route(responses):
    """Session.request side effect answering by URL path."""
    def request(method, url, json=None, timeout=None):
        path = url[len(BASE_URL):]
        if path not in responses:
            return create_response({"error": path}, status_code=404)
        return create_response(responses[path])
    return request


@pytest.fixture
def client():
    client = TezosClient(BASE_URL + "/", timeout=5)
    yield client
    client.close()


# ============================================================================
# TESTS
# ============================================================================

class TestConfiguration:
    """Tests for client construction."""

    def test_defaults(self):
        client = TezosClient()
        assert client.base_url == "http://localhost:8732"
        assert client.timeout == 30
        assert client.chain == "main"

    def test_config_object(self):
        client = TezosClient(config=ClientConfig(base_url=BASE_URL, timeout=3, chain="NetXdQprcVkpaWU"))
        assert client.base_url == BASE_URL
        assert client.timeout == 3
        assert client.chain == "NetXdQprcVkpaWU"

    def test_context_manager_closes_session(self):
        client = TezosClient(BASE_URL)
        with patch.object(client.session, "close") as close:
            with client:
                pass
        close.assert_called_once()


class TestQueries:
    """Tests for read-only RPCs."""

    def test_get_head(self, client):
        header = {"hash": "BLhead", "protocol": "PsProto", "level": 100, "chain_id": "NetXchain"}
        with patch.object(client.session, "request", side_effect=route({"/chains/main/blocks/head/header": header})) as request:
            head = client.get_head()
        assert head == BlockHead("BLhead", "PsProto", 100, "NetXchain")
        request.assert_called_once_with("GET", BASE_URL + "/chains/main/blocks/head/header", json=None, timeout=5)

    def test_get_counter_and_balance(self, client):
        responses = {
            f"/chains/main/blocks/head/context/contracts/{DELEGATE}/counter": "41",
            f"/chains/main/blocks/BLsnap/context/contracts/{DELEGATE}/balance": "1500000",
        }
        with patch.object(client.session, "request", side_effect=route(responses)):
            assert client.get_counter(DELEGATE) == 41
            assert client.get_balance(DELEGATE, "BLsnap") == 1500000

    def test_delegate_queries(self, client):
        responses = {
            f"/chains/main/blocks/BLsnap/context/delegates/{DELEGATE}/staking_balance": "9000",
            f"/chains/main/blocks/BLsnap/context/delegates/{DELEGATE}/delegated_contracts": ["KT1a", "tz1b"],
        }
        with patch.object(client.session, "request", side_effect=route(responses)):
            assert client.get_staking_balance(DELEGATE, "BLsnap") == 9000
            assert client.get_delegations(DELEGATE, "BLsnap") == ["KT1a", "tz1b"]

    def test_constants_are_cached(self, client):
        responses = {"/chains/main/blocks/head/context/constants": CONSTANTS}
        with patch.object(client.session, "request", side_effect=route(responses)) as request:
            client.get_constants()
            client.get_constants()
        assert request.call_count == 1

    def test_cycle_rewards(self, client):
        responses = {
            "/chains/main/blocks/head/context/constants": CONSTANTS,
            f"/chains/main/blocks/{301 * 4096 + 1}/context/raw/json/contracts/index/{DELEGATE}/frozen_balance/300/": {
                "deposits": "1000", "fees": "20", "rewards": "123456",
            },
        }
        with patch.object(client.session, "request", side_effect=route(responses)):
            assert client.get_cycle_rewards(DELEGATE, 300) == 123456

    def test_snapshot_block_hash(self, client):
        level = (300 - 5 - 2) * 4096 + (7 + 1) * 256
        responses = {
            "/chains/main/blocks/head/context/constants": CONSTANTS,
            "/chains/main/blocks/head/header": {"hash": "BLhead", "protocol": "P", "level": 2000000},
            f"/chains/main/blocks/{300 * 4096 + 1}/context/raw/json/cycle/300": {"roll_snapshot": 7},
            f"/chains/main/blocks/{level}/hash": "BLsnap",
        }
        with patch.object(client.session, "request", side_effect=route(responses)):
            assert client.get_snapshot_block_hash(300) == "BLsnap"

    def test_snapshot_of_future_cycle_reads_head(self, client):
        level = (300 - 5 - 2) * 4096 + (3 + 1) * 256
        responses = {
            "/chains/main/blocks/head/context/constants": CONSTANTS,
            "/chains/main/blocks/head/header": {"hash": "BLhead", "protocol": "P", "level": 1000},
            "/chains/main/blocks/head/context/raw/json/cycle/300": {"roll_snapshot": 3},
            f"/chains/main/blocks/{level}/hash": "BLsnap",
        }
        with patch.object(client.session, "request", side_effect=route(responses)):
            assert client.get_snapshot_block_hash(300) == "BLsnap"


class TestErrors:
    """Tests for RPC error mapping."""

    def test_http_error(self, client):
        with patch.object(client.session, "request", side_effect=route({})):
            with pytest.raises(RPCError) as exc_info:
                client.get_counter(DELEGATE)
        assert exc_info.value.status_code == 404
        assert exc_info.value.payload == {"error": f"/chains/main/blocks/head/context/contracts/{DELEGATE}/counter"}

    def test_connection_error(self, client):
        with patch.object(client.session, "request", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(RPCError) as exc_info:
                client.get_head()
        assert exc_info.value.status_code is None


class TestOperations:
    """Tests for preapply and injection."""

    HEAD = BlockHead("BLhead", "PsProto")
    CONTENTS = [{"kind": "transaction", "counter": "11"}]

    def test_preapply_applied(self, client):
        results = [{"contents": [{"kind": "transaction", "metadata": {"operation_result": {"status": "applied"}}}]}]
        with patch.object(client.session, "request", return_value=create_response(results)) as request:
            assert client.preapply_operations(self.HEAD, self.CONTENTS, "edsigabc") == results

        method, url = request.call_args[0]
        assert method == "POST"
        assert url == BASE_URL + "/chains/main/blocks/head/helpers/preapply/operations"
        assert request.call_args[1]["json"] == [{
            "protocol": "PsProto",
            "branch": "BLhead",
            "contents": self.CONTENTS,
            "signature": "edsigabc",
        }]

    def test_preapply_failed_status(self, client):
        results = [{"contents": [{"kind": "transaction", "metadata": {"operation_result": {"status": "failed"}}}]}]
        with patch.object(client.session, "request", return_value=create_response(results)):
            with pytest.raises(PreapplyRejected) as exc_info:
                client.preapply_operations(self.HEAD, self.CONTENTS, "edsigabc")
        assert exc_info.value.payload == results

    def test_preapply_http_error(self, client):
        errors = [{"kind": "temporary", "id": "proto.counter_in_the_past"}]
        with patch.object(client.session, "request", return_value=create_response(errors, status_code=500)):
            with pytest.raises(PreapplyRejected) as exc_info:
                client.preapply_operations(self.HEAD, self.CONTENTS, "edsigabc")
        assert exc_info.value.payload == errors

    def test_preapply_connection_error_is_not_a_rejection(self, client):
        with patch.object(client.session, "request", side_effect=requests.Timeout("slow")):
            with pytest.raises(RPCError) as exc_info:
                client.preapply_operations(self.HEAD, self.CONTENTS, "edsigabc")
        assert not isinstance(exc_info.value, PreapplyRejected)

    def test_inject(self, client):
        with patch.object(client.session, "request", return_value=create_response("ooHash")) as request:
            assert client.inject_operation("abcd") == "ooHash"
        request.assert_called_once_with(
            "POST", BASE_URL + "/injection/operation?chain=main", json="abcd", timeout=5
        )
