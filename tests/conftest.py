"""
Shared fixtures: an in-process fake node behind a real RpcConnection.

``FakeNode`` is an ``httpx.MockTransport`` handler answering JSON-RPC by
method name, so the client's whole request path (framing, batching, error
mapping) runs exactly as it does against a real endpoint.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx
import pytest
from eth_account import Account

from ethlink.node.client import Client
from ethlink.node.types import EMPTY_ROOT_HASH, EMPTY_UNCLE_HASH

# Throwaway key used throughout the eth-account documentation.
TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = Account.from_key(TEST_KEY).address

WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
DAI = "0x6b175474e89094c44da98b954eedeac495271d0f"

BLOCK_HASH = "0x" + "b1" * 32
PARENT_HASH = "0x" + "a0" * 32
NONEMPTY_ROOT = "0x" + "cd" * 32
NONEMPTY_UNCLES = "0x" + "ef" * 32


class FakeNode:
    """Answers JSON-RPC requests from a ``method -> result`` table.

    A result may be a callable taking the request params. Methods without
    an entry answer with the standard "method not found" error.
    """

    def __init__(self) -> None:
        self.results: dict[str, Any] = {}
        self.errors: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, list[Any]]] = []
        self.batches: list[list[str]] = []

    def set(self, method: str, result: Any) -> "FakeNode":
        self.results[method] = result
        return self

    def fail(self, method: str, code: int = -32000, message: str = "execution reverted") -> "FakeNode":
        self.errors[method] = {"code": code, "message": message}
        return self

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def count(self, method: str) -> int:
        return self.methods().count(method)

    def _reply(self, req: dict[str, Any]) -> dict[str, Any]:
        method = req["method"]
        params = req.get("params", [])
        self.calls.append((method, params))
        reply: dict[str, Any] = {"jsonrpc": "2.0", "id": req["id"]}
        if method in self.errors:
            reply["error"] = self.errors[method]
        elif method not in self.results:
            reply["error"] = {"code": -32601, "message": f"the method {method} does not exist"}
        else:
            result = self.results[method]
            reply["result"] = result(*params) if callable(result) else result
        return reply

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if isinstance(body, list):
            self.batches.append([item["method"] for item in body])
            return httpx.Response(200, json=[self._reply(item) for item in body])
        return httpx.Response(200, json=self._reply(body))


def rpc_header(
    number: int = 1,
    block_hash: str = BLOCK_HASH,
    base_fee: Optional[int] = None,
    sha3_uncles: str = EMPTY_UNCLE_HASH,
    tx_root: str = EMPTY_ROOT_HASH,
) -> dict[str, Any]:
    header = {
        "number": hex(number),
        "hash": block_hash,
        "parentHash": PARENT_HASH,
        "sha3Uncles": sha3_uncles,
        "stateRoot": "0x" + "5a" * 32,
        "transactionsRoot": tx_root,
        "receiptsRoot": EMPTY_ROOT_HASH,
        "miner": "0x" + "00" * 20,
        "logsBloom": "0x" + "00" * 256,
        "difficulty": "0x0",
        "gasLimit": hex(30_000_000),
        "gasUsed": "0x0",
        "timestamp": hex(1_700_000_000),
        "extraData": "0x",
        "mixHash": "0x" + "00" * 32,
        "nonce": "0x0000000000000000",
    }
    if base_fee is not None:
        header["baseFeePerGas"] = hex(base_fee)
    return header


def rpc_block(
    number: int = 1,
    block_hash: str = BLOCK_HASH,
    transactions: tuple = (),
    uncles: tuple = (),
    base_fee: Optional[int] = None,
    sha3_uncles: Optional[str] = None,
    tx_root: Optional[str] = None,
) -> dict[str, Any]:
    """A block payload whose header roots agree with its body unless overridden."""
    if sha3_uncles is None:
        sha3_uncles = NONEMPTY_UNCLES if uncles else EMPTY_UNCLE_HASH
    if tx_root is None:
        tx_root = NONEMPTY_ROOT if transactions else EMPTY_ROOT_HASH
    block = rpc_header(number, block_hash, base_fee, sha3_uncles, tx_root)
    block["transactions"] = list(transactions)
    block["uncles"] = list(uncles)
    return block


def signed_tx_payload(
    nonce: int = 0,
    block_hash: Optional[str] = BLOCK_HASH,
    legacy: bool = False,
    key: str = TEST_KEY,
    report_sender: bool = True,
) -> dict[str, Any]:
    """Sign a transfer locally and render it the way a node reports it."""
    account = Account.from_key(key)
    fields: dict[str, Any] = {
        "nonce": nonce,
        "gas": 21_000,
        "to": "0x" + "11" * 20,
        "value": 10**15,
        "data": "0x",
        "chainId": 1,
    }
    if legacy:
        fields["gasPrice"] = 20 * 10**9
    else:
        fields["type"] = 2
        fields["maxFeePerGas"] = 30 * 10**9
        fields["maxPriorityFeePerGas"] = 2 * 10**9
    signed = account.sign_transaction(fields)

    payload: dict[str, Any] = {
        "hash": "0x" + bytes(signed.hash).hex(),
        "nonce": hex(nonce),
        "gas": hex(fields["gas"]),
        "to": fields["to"],
        "value": hex(fields["value"]),
        "input": "0x",
        "v": hex(signed.v),
        "r": hex(signed.r),
        "s": hex(signed.s),
    }
    if legacy:
        payload["type"] = "0x0"
        payload["gasPrice"] = hex(fields["gasPrice"])
    else:
        payload["type"] = "0x2"
        payload["chainId"] = "0x1"
        payload["maxFeePerGas"] = hex(fields["maxFeePerGas"])
        payload["maxPriorityFeePerGas"] = hex(fields["maxPriorityFeePerGas"])
        payload["accessList"] = []
        payload["yParity"] = hex(signed.v)
    if block_hash is not None:
        payload["blockHash"] = block_hash
        payload["blockNumber"] = "0x1"
        payload["transactionIndex"] = hex(nonce)
    if report_sender:
        payload["from"] = account.address.lower()
    return payload


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def client(node: FakeNode):
    c = Client.dial("http://node.test", timeout=5.0, transport=httpx.MockTransport(node))
    yield c
    c.close()


def transport_for(handler: Callable[[httpx.Request], httpx.Response]) -> Client:
    return Client.dial("http://node.test", timeout=5.0, transport=httpx.MockTransport(handler))
