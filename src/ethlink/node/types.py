"""
Chain data types decoded from JSON-RPC payloads.

The node speaks hex-encoded JSON; everything here converts that into plain
Python values once (ints for quantities, bytes for opaque data, 0x strings
for hashes and addresses) so the rest of the client never touches hex.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import rlp
from eth_account import Account

from ..errors import MalformedResponseError
from ..utils import address_to_bytes, hex_to_bytes, hex_to_int, keccak256, same_hash, to_block_number_arg

# keccak256(rlp([])) and the root of an empty trie.
EMPTY_UNCLE_HASH = "0x1dcc4de8dec75d7aab85b567b6ccd41ad312451b948a7413f0a142fd40d49347"
EMPTY_ROOT_HASH = "0x56e81f171bcc55a6ff8345e692c0f86e5b48e01b996cadc001622fb5e363b421"

LEGACY_TX_TYPE = 0
ACCESS_LIST_TX_TYPE = 1
DYNAMIC_FEE_TX_TYPE = 2


def _require(payload: dict[str, Any], key: str, what: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise MalformedResponseError(f"{what}: missing field '{key}'")
    return value


@dataclass(frozen=True)
class Header:
    parent_hash: str
    uncle_hash: str
    state_root: str
    tx_root: str
    receipt_root: str
    number: Optional[int]
    hash: Optional[str] = None
    coinbase: Optional[str] = None
    bloom: bytes = b""
    difficulty: int = 0
    gas_limit: int = 0
    gas_used: int = 0
    time: int = 0
    extra: bytes = b""
    mix_digest: Optional[str] = None
    nonce: Optional[str] = None
    base_fee: Optional[int] = None
    withdrawals_hash: Optional[str] = None

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Header":
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"header: expected an object, got {type(payload).__name__}")
        return cls(
            parent_hash=_require(payload, "parentHash", "header"),
            uncle_hash=_require(payload, "sha3Uncles", "header"),
            state_root=_require(payload, "stateRoot", "header"),
            tx_root=_require(payload, "transactionsRoot", "header"),
            receipt_root=_require(payload, "receiptsRoot", "header"),
            number=hex_to_int(payload.get("number")),
            hash=payload.get("hash"),
            coinbase=payload.get("miner"),
            bloom=hex_to_bytes(payload.get("logsBloom")),
            difficulty=hex_to_int(payload.get("difficulty")) or 0,
            gas_limit=hex_to_int(payload.get("gasLimit")) or 0,
            gas_used=hex_to_int(payload.get("gasUsed")) or 0,
            time=hex_to_int(payload.get("timestamp")) or 0,
            extra=hex_to_bytes(payload.get("extraData")),
            mix_digest=payload.get("mixHash"),
            nonce=payload.get("nonce"),
            base_fee=hex_to_int(payload.get("baseFeePerGas")),
            withdrawals_hash=payload.get("withdrawalsRoot"),
        )

    @property
    def has_uncles(self) -> bool:
        return not same_hash(self.uncle_hash, EMPTY_UNCLE_HASH)

    @property
    def has_transactions(self) -> bool:
        return not same_hash(self.tx_root, EMPTY_ROOT_HASH)


@dataclass(frozen=True)
class TxInclusion:
    """Side-channel metadata the node reports next to a transaction."""

    block_number: Optional[int] = None
    block_hash: Optional[str] = None
    sender: Optional[str] = None

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "TxInclusion":
        return cls(
            block_number=hex_to_int(payload.get("blockNumber")),
            block_hash=payload.get("blockHash"),
            sender=payload.get("from"),
        )


def _access_list_rlp(access_list: Sequence[dict[str, Any]]) -> list:
    return [
        [address_to_bytes(item["address"]), [hex_to_bytes(k).rjust(32, b"\x00") for k in item.get("storageKeys", [])]]
        for item in access_list
    ]


@dataclass
class Transaction:
    """A signed transaction as the node reports it.

    ``_sender_cache`` holds ``(block_hash, sender)`` when the node told us
    who sent the transaction; it is only trusted for that exact block hash.
    """

    type: int
    nonce: int
    gas: int
    to: Optional[str]
    value: int
    data: bytes
    v: int
    r: int
    s: int
    chain_id: Optional[int] = None
    gas_price: Optional[int] = None
    gas_tip_cap: Optional[int] = None
    gas_fee_cap: Optional[int] = None
    access_list: tuple = ()
    hash: Optional[str] = None
    _sender_cache: Optional[tuple[str, str]] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Transaction":
        if not isinstance(payload, dict):
            raise MalformedResponseError(f"transaction: expected an object, got {type(payload).__name__}")
        if payload.get("r") is None or payload.get("s") is None:
            raise MalformedResponseError("server returned transaction without signature")

        tx_type = hex_to_int(payload.get("type")) or LEGACY_TX_TYPE
        v = payload.get("yParity") if tx_type != LEGACY_TX_TYPE and payload.get("yParity") is not None else payload.get("v")
        data = payload.get("input", payload.get("data"))
        tx = cls(
            type=tx_type,
            nonce=hex_to_int(_require(payload, "nonce", "transaction")),
            gas=hex_to_int(_require(payload, "gas", "transaction")),
            to=payload.get("to"),
            value=hex_to_int(payload.get("value")) or 0,
            data=hex_to_bytes(data),
            v=hex_to_int(v) or 0,
            r=hex_to_int(payload["r"]),
            s=hex_to_int(payload["s"]),
            chain_id=hex_to_int(payload.get("chainId")),
            gas_price=hex_to_int(payload.get("gasPrice")),
            gas_tip_cap=hex_to_int(payload.get("maxPriorityFeePerGas")),
            gas_fee_cap=hex_to_int(payload.get("maxFeePerGas")),
            access_list=tuple(payload.get("accessList") or ()),
        )
        tx.hash = payload.get("hash") or tx.compute_hash()
        return tx

    def raw(self) -> bytes:
        """Re-serialize the signed payload into its canonical wire form."""
        to = address_to_bytes(self.to) if self.to else b""
        if self.type == LEGACY_TX_TYPE:
            return rlp.encode([
                self.nonce, self.gas_price or 0, self.gas, to, self.value, self.data,
                self.v, self.r, self.s,
            ])
        if self.chain_id is None:
            raise MalformedResponseError(f"typed transaction {self.hash} without chainId")
        access_list = _access_list_rlp(self.access_list)
        if self.type == ACCESS_LIST_TX_TYPE:
            body = [
                self.chain_id, self.nonce, self.gas_price or 0, self.gas, to, self.value,
                self.data, access_list, self.v, self.r, self.s,
            ]
        elif self.type == DYNAMIC_FEE_TX_TYPE:
            body = [
                self.chain_id, self.nonce, self.gas_tip_cap or 0, self.gas_fee_cap or 0,
                self.gas, to, self.value, self.data, access_list, self.v, self.r, self.s,
            ]
        else:
            raise MalformedResponseError(f"unsupported transaction type {self.type} for local serialization")
        return bytes([self.type]) + rlp.encode(body)

    def compute_hash(self) -> str:
        return "0x" + keccak256(self.raw()).hex()

    def recover_sender(self) -> str:
        """Recover the sender from the signature (the slow path)."""
        return Account.recover_transaction(self.raw())

    def cache_sender(self, block_hash: str, sender: str) -> None:
        self._sender_cache = (block_hash, sender)

    def cached_sender(self, block_hash: str) -> Optional[str]:
        cached = self._sender_cache
        if cached is None or not same_hash(cached[0], block_hash):
            return None
        return cached[1]


def decode_rpc_transaction(payload: dict[str, Any]) -> tuple[Transaction, TxInclusion]:
    """Decode a transaction object and seed its sender cache from ``from``."""
    tx = Transaction.from_rpc(payload)
    meta = TxInclusion.from_rpc(payload)
    if meta.sender is not None and meta.block_hash is not None:
        tx.cache_sender(meta.block_hash, meta.sender)
    return tx, meta


@dataclass(frozen=True)
class Block:
    header: Header
    transactions: tuple[Transaction, ...] = ()
    uncle_hashes: tuple[str, ...] = ()
    uncles: tuple[Header, ...] = ()

    @property
    def hash(self) -> Optional[str]:
        return self.header.hash

    @property
    def number(self) -> Optional[int]:
        return self.header.number

    @property
    def base_fee(self) -> Optional[int]:
        return self.header.base_fee

    def transaction(self, tx_hash: str) -> Optional[Transaction]:
        for tx in self.transactions:
            if same_hash(tx.hash, tx_hash):
                return tx
        return None


@dataclass(frozen=True)
class Log:
    address: str
    topics: tuple[str, ...]
    data: bytes
    block_number: Optional[int] = None
    tx_hash: Optional[str] = None
    tx_index: Optional[int] = None
    block_hash: Optional[str] = None
    index: Optional[int] = None
    removed: bool = False

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Log":
        return cls(
            address=_require(payload, "address", "log"),
            topics=tuple(payload.get("topics", [])),
            data=hex_to_bytes(payload.get("data")),
            block_number=hex_to_int(payload.get("blockNumber")),
            tx_hash=payload.get("transactionHash"),
            tx_index=hex_to_int(payload.get("transactionIndex")),
            block_hash=payload.get("blockHash"),
            index=hex_to_int(payload.get("logIndex")),
            removed=bool(payload.get("removed", False)),
        )


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    status: Optional[int]
    cumulative_gas_used: int
    gas_used: int
    logs: tuple[Log, ...] = ()
    type: int = LEGACY_TX_TYPE
    block_hash: Optional[str] = None
    block_number: Optional[int] = None
    transaction_index: Optional[int] = None
    contract_address: Optional[str] = None
    effective_gas_price: Optional[int] = None
    bloom: bytes = b""

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Receipt":
        return cls(
            tx_hash=_require(payload, "transactionHash", "receipt"),
            status=hex_to_int(payload.get("status")),
            cumulative_gas_used=hex_to_int(payload.get("cumulativeGasUsed")) or 0,
            gas_used=hex_to_int(payload.get("gasUsed")) or 0,
            logs=tuple(Log.from_rpc(item) for item in payload.get("logs", [])),
            type=hex_to_int(payload.get("type")) or LEGACY_TX_TYPE,
            block_hash=payload.get("blockHash"),
            block_number=hex_to_int(payload.get("blockNumber")),
            transaction_index=hex_to_int(payload.get("transactionIndex")),
            contract_address=payload.get("contractAddress"),
            effective_gas_price=hex_to_int(payload.get("effectiveGasPrice")),
            bloom=hex_to_bytes(payload.get("logsBloom")),
        )

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass(frozen=True)
class SyncProgress:
    starting_block: int
    current_block: int
    highest_block: int
    pulled_states: int = 0
    known_states: int = 0


@dataclass(frozen=True)
class CallMsg:
    """Arguments of a simulated call (eth_call / eth_estimateGas)."""

    to: Optional[str]
    data: bytes = b""
    from_address: Optional[str] = None
    value: Optional[int] = None
    gas: int = 0
    gas_price: Optional[int] = None
    gas_fee_cap: Optional[int] = None
    gas_tip_cap: Optional[int] = None

    def to_rpc(self) -> dict[str, Any]:
        arg: dict[str, Any] = {"to": self.to}
        if self.from_address:
            arg["from"] = self.from_address
        if self.data:
            arg["data"] = "0x" + self.data.hex()
        if self.value is not None:
            arg["value"] = hex(self.value)
        if self.gas:
            arg["gas"] = hex(self.gas)
        if self.gas_price is not None:
            arg["gasPrice"] = hex(self.gas_price)
        if self.gas_fee_cap is not None:
            arg["maxFeePerGas"] = hex(self.gas_fee_cap)
        if self.gas_tip_cap is not None:
            arg["maxPriorityFeePerGas"] = hex(self.gas_tip_cap)
        return arg


@dataclass(frozen=True)
class FilterQuery:
    addresses: tuple[str, ...] = ()
    topics: tuple[Any, ...] = ()
    from_block: Optional[int] = None
    to_block: Optional[int] = None
    block_hash: Optional[str] = None

    def to_rpc(self) -> dict[str, Any]:
        arg: dict[str, Any] = {
            "address": list(self.addresses),
            "topics": list(self.topics),
        }
        if self.block_hash is not None:
            if self.from_block is not None or self.to_block is not None:
                raise ValueError("cannot specify both block_hash and from_block/to_block")
            arg["blockHash"] = self.block_hash
        else:
            arg["fromBlock"] = "0x0" if self.from_block is None else to_block_number_arg(self.from_block)
            arg["toBlock"] = to_block_number_arg(self.to_block)
        return arg
