"""Tests for block, header and transaction retrieval."""

from __future__ import annotations

import httpx
import pytest

from ethlink.errors import (
    InconsistentBlockDataError,
    MalformedResponseError,
    MissingUncleHeaderError,
    NotFoundError,
    RpcError,
    RpcTimeoutError,
    TransportError,
    WrongInclusionError,
)
from ethlink.node.client import Client
from ethlink.node.types import EMPTY_ROOT_HASH, EMPTY_UNCLE_HASH, FilterQuery

from conftest import (
    BLOCK_HASH,
    NONEMPTY_ROOT,
    NONEMPTY_UNCLES,
    TEST_ADDRESS,
    FakeNode,
    rpc_block,
    rpc_header,
    signed_tx_payload,
    transport_for,
)

UNCLE_A = "0x" + "0a" * 32
UNCLE_B = "0x" + "0b" * 32


class TestBlockFetch:
    """Tests for block_by_hash / block_by_number."""

    def test_empty_block(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByNumber", rpc_block(number=5))
        blk = client.block_by_number(5)
        assert blk.number == 5
        assert blk.hash == BLOCK_HASH
        assert blk.transactions == ()
        assert blk.uncles == ()
        assert node.calls == [("eth_getBlockByNumber", ["0x5", True])]

    def test_latest_and_pending_tags(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByNumber", rpc_block())
        client.block_by_number()
        client.block_by_number(-1)
        assert [params[0] for _, params in node.calls] == ["latest", "pending"]

    def test_block_with_transactions(self, node: FakeNode, client: Client) -> None:
        txs = (signed_tx_payload(0), signed_tx_payload(1, legacy=True))
        node.set("eth_getBlockByHash", rpc_block(transactions=txs, base_fee=10**9))
        blk = client.block_by_hash(BLOCK_HASH)
        assert len(blk.transactions) == 2
        assert blk.base_fee == 10**9
        assert blk.transaction(txs[1]["hash"]).nonce == 1

    def test_block_not_found(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", None)
        with pytest.raises(NotFoundError):
            client.block_by_hash(BLOCK_HASH)

    def test_not_found_is_not_a_transport_error(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getTransactionByHash", None)
        with pytest.raises(NotFoundError) as exc_info:
            client.transaction_by_hash("0x" + "99" * 32)
        assert not isinstance(exc_info.value, TransportError)


class TestBlockConsistency:
    """The header roots must agree with the body lists."""

    def test_uncles_listed_but_header_says_none(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(uncles=(UNCLE_A,), sha3_uncles=EMPTY_UNCLE_HASH))
        with pytest.raises(InconsistentBlockDataError, match="non-empty uncle list"):
            client.block_by_hash(BLOCK_HASH)

    def test_header_has_uncles_but_list_empty(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(sha3_uncles=NONEMPTY_UNCLES))
        with pytest.raises(InconsistentBlockDataError, match="empty uncle list"):
            client.block_by_hash(BLOCK_HASH)

    def test_transactions_listed_but_root_empty(self, node: FakeNode, client: Client) -> None:
        payload = rpc_block(transactions=(signed_tx_payload(0),), tx_root=EMPTY_ROOT_HASH)
        node.set("eth_getBlockByHash", payload)
        with pytest.raises(InconsistentBlockDataError, match="non-empty transaction list"):
            client.block_by_hash(BLOCK_HASH)

    def test_root_set_but_transactions_empty(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(tx_root=NONEMPTY_ROOT))
        with pytest.raises(InconsistentBlockDataError, match="empty transaction list"):
            client.block_by_hash(BLOCK_HASH)

    def test_inconsistency_is_a_malformed_response(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(tx_root=NONEMPTY_ROOT))
        with pytest.raises(MalformedResponseError):
            client.block_by_hash(BLOCK_HASH)

    def test_transaction_without_signature(self, node: FakeNode, client: Client) -> None:
        tx = signed_tx_payload(0)
        del tx["r"]
        node.set("eth_getBlockByHash", rpc_block(transactions=(tx,)))
        with pytest.raises(MalformedResponseError, match="without signature"):
            client.block_by_hash(BLOCK_HASH)

    def test_header_missing_required_field(self, node: FakeNode, client: Client) -> None:
        payload = rpc_block()
        del payload["stateRoot"]
        node.set("eth_getBlockByHash", payload)
        with pytest.raises(MalformedResponseError, match="stateRoot"):
            client.block_by_hash(BLOCK_HASH)


class TestUncles:
    """Uncle headers come from one batched round trip."""

    def test_uncles_fetched_in_one_batch(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(uncles=(UNCLE_A, UNCLE_B)))
        node.set(
            "eth_getUncleByBlockHashAndIndex",
            lambda block_hash, index: rpc_header(number=int(index, 16) + 100, block_hash=UNCLE_A),
        )
        blk = client.block_by_hash(BLOCK_HASH)
        assert [u.number for u in blk.uncles] == [100, 101]
        assert node.batches == [["eth_getUncleByBlockHashAndIndex"] * 2]
        assert ("eth_getUncleByBlockHashAndIndex", [BLOCK_HASH, "0x1"]) in node.calls

    def test_null_uncle_fails_the_whole_block(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(uncles=(UNCLE_A, UNCLE_B)))
        node.set(
            "eth_getUncleByBlockHashAndIndex",
            lambda block_hash, index: None if index == "0x1" else rpc_header(block_hash=UNCLE_A),
        )
        with pytest.raises(MissingUncleHeaderError, match="uncle 1"):
            client.block_by_hash(BLOCK_HASH)

    def test_uncle_error_fails_the_whole_block(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(uncles=(UNCLE_A,)))
        node.fail("eth_getUncleByBlockHashAndIndex", message="header not available")
        with pytest.raises(RpcError, match="header not available"):
            client.block_by_hash(BLOCK_HASH)

    def test_dropped_uncle_response_is_a_missing_header(self, node: FakeNode) -> None:
        node.set("eth_getBlockByHash", rpc_block(uncles=(UNCLE_A, UNCLE_B)))
        node.set("eth_getUncleByBlockHashAndIndex", lambda block_hash, index: rpc_header(block_hash=UNCLE_A))

        def handler(request: httpx.Request) -> httpx.Response:
            response = node(request)
            body = response.json()
            if isinstance(body, list):
                return httpx.Response(200, json=body[:1])
            return response

        with transport_for(handler) as client:
            with pytest.raises(MissingUncleHeaderError, match="uncle 1") as exc_info:
                client.block_by_hash(BLOCK_HASH)
        assert isinstance(exc_info.value.__cause__, RpcError)


class TestHeaders:
    """Tests for header_by_hash / header_by_number."""

    def test_header_by_number_requests_no_bodies(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByNumber", rpc_header(number=9, base_fee=7))
        head = client.header_by_number(9)
        assert head.number == 9
        assert head.base_fee == 7
        assert node.calls == [("eth_getBlockByNumber", ["0x9", False])]

    def test_pre_london_header_has_no_base_fee(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_header())
        assert client.header_by_hash(BLOCK_HASH).base_fee is None

    def test_header_not_found(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByNumber", None)
        with pytest.raises(NotFoundError):
            client.header_by_number(10**9)


class TestTransactions:
    """Tests for transaction lookups and sender resolution."""

    def test_transaction_by_hash_pending_flag(self, node: FakeNode, client: Client) -> None:
        mined = signed_tx_payload(0)
        pending = signed_tx_payload(1, block_hash=None)
        node.set("eth_getTransactionByHash", lambda h: mined if h == mined["hash"] else pending)
        assert client.transaction_by_hash(mined["hash"])[1] is False
        tx, is_pending = client.transaction_by_hash(pending["hash"])
        assert is_pending is True
        assert tx.nonce == 1

    def test_sender_from_block_needs_no_rpc(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(transactions=(signed_tx_payload(0),)))
        blk = client.block_by_hash(BLOCK_HASH)
        calls_before = len(node.calls)
        sender = client.transaction_sender(blk.transactions[0], BLOCK_HASH, 0)
        assert sender.lower() == TEST_ADDRESS.lower()
        assert len(node.calls) == calls_before

    def test_sender_with_other_block_hash_asks_the_node(self, node: FakeNode, client: Client) -> None:
        payload = signed_tx_payload(0)
        node.set("eth_getBlockByHash", rpc_block(transactions=(payload,)))
        other = "0x" + "c3" * 32
        node.set("eth_getTransactionByBlockHashAndIndex", dict(payload, blockHash=other))
        blk = client.block_by_hash(BLOCK_HASH)
        sender = client.transaction_sender(blk.transactions[0], other, 0)
        assert sender.lower() == TEST_ADDRESS.lower()
        assert node.count("eth_getTransactionByBlockHashAndIndex") == 1

    def test_wrong_inclusion(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockByHash", rpc_block(transactions=(signed_tx_payload(0),)))
        node.set("eth_getTransactionByBlockHashAndIndex", signed_tx_payload(5))
        blk = client.block_by_hash(BLOCK_HASH)
        with pytest.raises(WrongInclusionError):
            client.transaction_sender(blk.transactions[0], "0x" + "c3" * 32, 0)

    def test_empty_slot_is_wrong_inclusion(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getTransactionByHash", signed_tx_payload(0, report_sender=False))
        node.set("eth_getTransactionByBlockHashAndIndex", None)
        tx, _ = client.transaction_by_hash("0xabc")
        with pytest.raises(WrongInclusionError):
            client.transaction_sender(tx, BLOCK_HASH, 3)

    def test_transaction_in_block(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getTransactionByBlockHashAndIndex", signed_tx_payload(2))
        assert client.transaction_in_block(BLOCK_HASH, 2).nonce == 2
        assert node.calls[-1] == ("eth_getTransactionByBlockHashAndIndex", [BLOCK_HASH, "0x2"])

    def test_receipt(self, node: FakeNode, client: Client) -> None:
        node.set(
            "eth_getTransactionReceipt",
            {
                "transactionHash": "0x" + "12" * 32,
                "status": "0x1",
                "cumulativeGasUsed": "0x5208",
                "gasUsed": "0x5208",
                "blockHash": BLOCK_HASH,
                "blockNumber": "0x1",
                "transactionIndex": "0x0",
                "logs": [
                    {
                        "address": "0x" + "22" * 20,
                        "topics": ["0x" + "33" * 32],
                        "data": "0x01",
                        "logIndex": "0x0",
                    }
                ],
                "type": "0x2",
            },
        )
        rcpt = client.transaction_receipt("0x" + "12" * 32)
        assert rcpt.succeeded
        assert rcpt.gas_used == 21000
        assert rcpt.logs[0].data == b"\x01"

    def test_missing_receipt(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getTransactionReceipt", None)
        with pytest.raises(NotFoundError):
            client.transaction_receipt("0x" + "12" * 32)


class TestStateAccess:
    """Account state, sync status and log queries."""

    def test_not_syncing(self, node: FakeNode, client: Client) -> None:
        node.set("eth_syncing", False)
        assert client.sync_progress() is None

    def test_sync_progress(self, node: FakeNode, client: Client) -> None:
        node.set("eth_syncing", {"startingBlock": "0x10", "currentBlock": "0x20", "highestBlock": "0x30"})
        progress = client.sync_progress()
        assert (progress.starting_block, progress.current_block, progress.highest_block) == (16, 32, 48)
        assert progress.known_states == 0

    def test_network_id_is_decimal(self, node: FakeNode, client: Client) -> None:
        node.set("net_version", "10")
        assert client.network_id() == 10

    def test_network_id_garbage(self, node: FakeNode, client: Client) -> None:
        node.set("net_version", "0xa")
        with pytest.raises(MalformedResponseError):
            client.network_id()

    def test_storage_and_code(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getStorageAt", "0x" + "00" * 31 + "2a")
        node.set("eth_getCode", "0x6080")
        assert client.storage_at(TEST_ADDRESS, "0x0", 7)[-1] == 42
        assert client.code_at(TEST_ADDRESS) == bytes.fromhex("6080")
        assert node.calls[0] == ("eth_getStorageAt", [TEST_ADDRESS, "0x0", "0x7"])
        assert node.calls[1] == ("eth_getCode", [TEST_ADDRESS, "latest"])

    def test_nonce_at(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getTransactionCount", "0x5")
        assert client.nonce_at(TEST_ADDRESS, 3) == 5
        assert node.calls == [("eth_getTransactionCount", [TEST_ADDRESS, "0x3"])]

    def test_transaction_counts(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getBlockTransactionCountByHash", "0x3")
        node.set("eth_getBlockTransactionCountByNumber", "0x9")
        assert client.transaction_count(BLOCK_HASH) == 3
        assert client.pending_transaction_count() == 9
        assert node.calls[1] == ("eth_getBlockTransactionCountByNumber", ["pending"])

    def test_filter_logs(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getLogs", [{
            "address": TEST_ADDRESS,
            "topics": ["0x" + "cc" * 32],
            "data": "0x01",
            "blockNumber": "0x5",
            "logIndex": "0x2",
        }])
        logs = client.filter_logs(FilterQuery(addresses=(TEST_ADDRESS,), from_block=5))
        assert len(logs) == 1
        assert logs[0].data == b"\x01"
        assert (logs[0].block_number, logs[0].index) == (5, 2)
        assert node.calls[0][1][0]["address"] == [TEST_ADDRESS]

    def test_filter_logs_none(self, node: FakeNode, client: Client) -> None:
        node.set("eth_getLogs", None)
        assert client.filter_logs(FilterQuery()) == []


class TestTransportFailures:
    """Transport problems keep their own error kinds."""

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with transport_for(handler) as client:
            with pytest.raises(RpcTimeoutError):
                client.block_number()

    def test_connection_refused(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with transport_for(handler) as client:
            with pytest.raises(TransportError) as exc_info:
                client.block_by_number(1)
        assert not isinstance(exc_info.value, NotFoundError)

    def test_http_error_status(self) -> None:
        with transport_for(lambda request: httpx.Response(502, text="bad gateway")) as client:
            with pytest.raises(TransportError):
                client.chain_id()

    def test_rpc_error_carries_code(self, node: FakeNode, client: Client) -> None:
        node.fail("eth_blockNumber", code=-32005, message="limit exceeded")
        with pytest.raises(RpcError) as exc_info:
            client.block_number()
        assert exc_info.value.code == -32005
        assert "eth_blockNumber" in str(exc_info.value)
