"""
Typed Ethereum JSON-RPC client.

``Client`` wraps one shared ``RpcConnection`` and turns raw node responses
into validated domain objects. It also owns the per-contract ABI cache used
by ``call`` and the transaction builders, and the memoized chain id used to
sign transactions.

Every method is a blocking network round trip and may be called from any
number of threads at once.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

import httpx

from ..config import get_timeout
from ..errors import (
    InconsistentBlockDataError,
    MalformedResponseError,
    MissingUncleHeaderError,
    NoContractCodeError,
    NotFoundError,
    ResultDecodingError,
    WrongInclusionError,
)
from ..utils import hex_to_bytes, hex_to_int, same_hash, to_block_number_arg
from .abi import ERC20_ABI, AbiCache
from .rpc import BatchElem, RpcConnection
from .sender import SenderLookup, ServerSenderLookup
from .subscription import DEFAULT_POLL_INTERVAL, Subscription
from .types import (
    Block,
    CallMsg,
    FilterQuery,
    Header,
    Log,
    Receipt,
    SyncProgress,
    Transaction,
    decode_rpc_transaction,
)

if TYPE_CHECKING:
    from .tx import SignedTx, TransactOpts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallOpts:
    """Options for read-only contract calls.

    ``pending`` runs against the pending state; otherwise ``block_number``
    selects a historical height (``None`` means latest).
    """

    pending: bool = False
    block_number: Optional[int] = None
    from_address: Optional[str] = None
    timeout: Optional[float] = None


class Client:
    """Typed wrappers for the Ethereum JSON-RPC API."""

    def __init__(
        self,
        conn: RpcConnection,
        timeout: Optional[float] = None,
        sender_lookup: Optional[SenderLookup] = None,
    ) -> None:
        self._conn = conn
        self.timeout = timeout if timeout is not None else conn.timeout
        self.abis = AbiCache()
        self.sender_lookup: SenderLookup = sender_lookup or ServerSenderLookup()
        self._chain_id: Optional[int] = None
        self._chain_id_lock = threading.Lock()

    @classmethod
    def dial(
        cls,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> "Client":
        """Connect a client to the given URL (default: ``ETHLINK_RPC_URL``)."""
        timeout = timeout if timeout is not None else get_timeout()
        conn = RpcConnection(url, timeout=timeout, transport=transport, headers=headers)
        return cls(conn, timeout=timeout)

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    @property
    def connection(self) -> RpcConnection:
        return self._conn

    def _call(self, method: str, *params: Any, timeout: Optional[float] = None) -> Any:
        return self._conn.call(method, params, timeout=timeout)

    def _quantity(self, method: str, *params: Any, timeout: Optional[float] = None) -> int:
        result = self._call(method, *params, timeout=timeout)
        value = hex_to_int(result)
        if value is None:
            raise MalformedResponseError(f"{method}: expected a quantity, got null")
        return value

    # ------------------------------------------------------------------
    # Blockchain access
    # ------------------------------------------------------------------

    def chain_id(self, timeout: Optional[float] = None) -> int:
        """Fetch the chain id for transaction replay protection (always a round trip)."""
        return self._quantity("eth_chainId", timeout=timeout)

    def cached_chain_id(self) -> int:
        """Chain id fetched once per client and reused for its lifetime.

        The connected endpoint is assumed to stay on one chain for the whole
        session; this is not re-validated per call.
        """
        if self._chain_id is None:
            with self._chain_id_lock:
                if self._chain_id is None:
                    self._chain_id = self.chain_id(timeout=self.timeout)
                    logger.debug("memoized chain id %d", self._chain_id)
        return self._chain_id

    def block_number(self) -> int:
        """Most recent block number."""
        return self._quantity("eth_blockNumber")

    def block_by_hash(self, block_hash: str) -> Block:
        """
        Return the full block with the given hash.

        Loading full blocks requires two requests when the block has uncles.
        Use ``header_by_hash`` when transactions and uncles are not needed.
        """
        return self._get_block("eth_getBlockByHash", block_hash, True)

    def block_by_number(self, number: Optional[int] = None) -> Block:
        """Full block from the canonical chain; ``None`` means latest."""
        return self._get_block("eth_getBlockByNumber", to_block_number_arg(number), True)

    def _get_block(self, method: str, *args: Any) -> Block:
        raw = self._call(method, *args)
        if not raw:
            raise NotFoundError(f"{method}{list(args)!r}: block not found")

        # The payload carries both views of the block.
        head = Header.from_rpc(raw)
        block_hash = raw.get("hash")
        uncle_hashes = tuple(raw.get("uncles") or ())
        tx_payloads = raw.get("transactions") or []

        # Quick-verify transaction and uncle lists.
        if not head.has_uncles and uncle_hashes:
            raise InconsistentBlockDataError(
                "server returned non-empty uncle list but block header indicates no uncles"
            )
        if head.has_uncles and not uncle_hashes:
            raise InconsistentBlockDataError(
                "server returned empty uncle list but block header indicates uncles"
            )
        if not head.has_transactions and tx_payloads:
            raise InconsistentBlockDataError(
                "server returned non-empty transaction list but block header indicates no transactions"
            )
        if head.has_transactions and not tx_payloads:
            raise InconsistentBlockDataError(
                "server returned empty transaction list but block header indicates transactions"
            )

        uncles = self._get_uncles(block_hash, len(uncle_hashes)) if uncle_hashes else ()

        txs = []
        for payload in tx_payloads:
            if not isinstance(payload, dict):
                raise MalformedResponseError(f"{method}: expected full transaction objects")
            # Fills the sender cache, keyed by the block hash the node reported.
            tx, _ = decode_rpc_transaction(payload)
            txs.append(tx)

        return Block(
            header=head,
            transactions=tuple(txs),
            uncle_hashes=uncle_hashes,
            uncles=uncles,
        )

    def _get_uncles(self, block_hash: Optional[str], count: int) -> tuple[Header, ...]:
        # Uncle headers are not part of the block response; fetch all in one batch.
        reqs = [
            BatchElem("eth_getUncleByBlockHashAndIndex", [block_hash, hex(i)])
            for i in range(count)
        ]
        self._conn.batch_call(reqs, timeout=self.timeout)

        uncles = []
        for i, req in enumerate(reqs):
            if not req.answered:
                raise MissingUncleHeaderError(
                    f"no response for uncle {i} of block {block_hash}"
                ) from req.error
            if req.error is not None:
                raise req.error
            if req.result is None:
                raise MissingUncleHeaderError(f"got null header for uncle {i} of block {block_hash}")
            uncles.append(Header.from_rpc(req.result))
        return tuple(uncles)

    def header_by_hash(self, block_hash: str) -> Header:
        raw = self._call("eth_getBlockByHash", block_hash, False)
        if not raw:
            raise NotFoundError(f"header {block_hash} not found")
        return Header.from_rpc(raw)

    def header_by_number(self, number: Optional[int] = None, timeout: Optional[float] = None) -> Header:
        """Header from the canonical chain; ``None`` means latest."""
        arg = to_block_number_arg(number)
        raw = self._call("eth_getBlockByNumber", arg, False, timeout=timeout)
        if not raw:
            raise NotFoundError(f"header {arg} not found")
        return Header.from_rpc(raw)

    def transaction_by_hash(self, tx_hash: str) -> tuple[Transaction, bool]:
        """Return the transaction and whether it is still pending."""
        raw = self._call("eth_getTransactionByHash", tx_hash)
        if not raw:
            raise NotFoundError(f"transaction {tx_hash} not found")
        tx, meta = decode_rpc_transaction(raw)
        return tx, meta.block_number is None

    def transaction_sender(self, tx: Transaction, block_hash: str, index: int) -> str:
        """
        Sender of a transaction included at ``block_hash``/``index``.

        Transactions fetched through this client usually resolve without any
        RPC because the node already reported their sender. Otherwise the
        node is asked for the transaction at that slot, and its answer is
        only trusted when the hashes match.

        Raises:
            WrongInclusionError: If the slot holds a different transaction
        """
        sender = self.sender_lookup.lookup(tx, block_hash)
        if sender is not None:
            return sender

        meta = self._call("eth_getTransactionByBlockHashAndIndex", block_hash, hex(index))
        if not meta or not meta.get("hash") or not same_hash(meta.get("hash"), tx.hash):
            raise WrongInclusionError(
                f"wrong inclusion block/index: transaction {tx.hash} is not at {block_hash}[{index}]"
            )
        if not meta.get("from"):
            raise MalformedResponseError(f"transaction at {block_hash}[{index}] has no sender")
        return meta["from"]

    def transaction_count(self, block_hash: str) -> int:
        """Total number of transactions in the given block."""
        return self._quantity("eth_getBlockTransactionCountByHash", block_hash)

    def transaction_in_block(self, block_hash: str, index: int) -> Transaction:
        raw = self._call("eth_getTransactionByBlockHashAndIndex", block_hash, hex(index))
        if not raw:
            raise NotFoundError(f"no transaction at {block_hash}[{index}]")
        tx, _ = decode_rpc_transaction(raw)
        return tx

    def transaction_receipt(self, tx_hash: str) -> Receipt:
        """Receipt of a mined transaction. Pending transactions have none."""
        raw = self._call("eth_getTransactionReceipt", tx_hash)
        if not raw:
            raise NotFoundError(f"receipt for {tx_hash} not found")
        return Receipt.from_rpc(raw)

    def sync_progress(self) -> Optional[SyncProgress]:
        """Current sync progress, or ``None`` when the node is not syncing."""
        raw = self._call("eth_syncing")
        if raw is False or raw is None:
            return None
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"eth_syncing: unexpected result {raw!r}")
        return SyncProgress(
            starting_block=hex_to_int(raw.get("startingBlock")) or 0,
            current_block=hex_to_int(raw.get("currentBlock")) or 0,
            highest_block=hex_to_int(raw.get("highestBlock")) or 0,
            pulled_states=hex_to_int(raw.get("pulledStates")) or 0,
            known_states=hex_to_int(raw.get("knownStates")) or 0,
        )

    def subscribe_new_head(
        self,
        channel: "queue.Queue[Header]",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> Subscription:
        """Deliver every new canonical head onto ``channel``."""
        filter_id = self._call("eth_newBlockFilter")
        return Subscription(
            self._conn, filter_id, channel, self.header_by_hash, poll_interval
        ).start()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    def network_id(self) -> int:
        version = self._call("net_version")
        try:
            return int(version, 10)
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(f"invalid net_version result {version!r}") from exc

    def balance_at(self, account: str, block_number: Optional[int] = None) -> int:
        """Wei balance of ``account``; ``None`` means latest block."""
        return self._quantity("eth_getBalance", account, to_block_number_arg(block_number))

    def storage_at(self, account: str, key: str, block_number: Optional[int] = None) -> bytes:
        return hex_to_bytes(self._call("eth_getStorageAt", account, key, to_block_number_arg(block_number)))

    def code_at(self, account: str, block_number: Optional[int] = None, timeout: Optional[float] = None) -> bytes:
        return hex_to_bytes(
            self._call("eth_getCode", account, to_block_number_arg(block_number), timeout=timeout)
        )

    def nonce_at(self, account: str, block_number: Optional[int] = None) -> int:
        return self._quantity("eth_getTransactionCount", account, to_block_number_arg(block_number))

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def filter_logs(self, query: FilterQuery) -> list[Log]:
        result = self._call("eth_getLogs", query.to_rpc())
        return [Log.from_rpc(item) for item in result or []]

    def subscribe_filter_logs(
        self,
        query: FilterQuery,
        channel: "queue.Queue[Log]",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> Subscription:
        """Deliver logs matching ``query`` onto ``channel`` as they appear."""
        filter_id = self._call("eth_newFilter", query.to_rpc())
        return Subscription(
            self._conn, filter_id, channel, Log.from_rpc, poll_interval
        ).start()

    # ------------------------------------------------------------------
    # Pending state
    # ------------------------------------------------------------------

    def pending_balance_at(self, account: str) -> int:
        return self._quantity("eth_getBalance", account, "pending")

    def pending_storage_at(self, account: str, key: str) -> bytes:
        return hex_to_bytes(self._call("eth_getStorageAt", account, key, "pending"))

    def pending_code_at(self, account: str, timeout: Optional[float] = None) -> bytes:
        return hex_to_bytes(self._call("eth_getCode", account, "pending", timeout=timeout))

    def pending_nonce_at(self, account: str, timeout: Optional[float] = None) -> int:
        """Nonce to use for the account's next transaction."""
        return self._quantity("eth_getTransactionCount", account, "pending", timeout=timeout)

    def pending_transaction_count(self) -> int:
        return self._quantity("eth_getBlockTransactionCountByNumber", "pending")

    # ------------------------------------------------------------------
    # Contract calling
    # ------------------------------------------------------------------

    def call_contract(
        self, msg: CallMsg, block_number: Optional[int] = None, timeout: Optional[float] = None
    ) -> bytes:
        """Execute a message call in the node's VM without mining it."""
        return hex_to_bytes(
            self._call("eth_call", msg.to_rpc(), to_block_number_arg(block_number), timeout=timeout)
        )

    def pending_call_contract(self, msg: CallMsg, timeout: Optional[float] = None) -> bytes:
        return hex_to_bytes(self._call("eth_call", msg.to_rpc(), "pending", timeout=timeout))

    def suggest_gas_price(self, timeout: Optional[float] = None) -> int:
        return self._quantity("eth_gasPrice", timeout=timeout)

    def suggest_gas_tip_cap(self, timeout: Optional[float] = None) -> int:
        """Suggested priority fee for dynamic-fee transactions."""
        return self._quantity("eth_maxPriorityFeePerGas", timeout=timeout)

    def estimate_gas(self, msg: CallMsg, timeout: Optional[float] = None) -> int:
        """Gas needed to execute ``msg`` against the pending state.

        There is no guarantee this is the true requirement once other
        transactions land, but it is a reasonable default.
        """
        return self._quantity("eth_estimateGas", msg.to_rpc(), timeout=timeout)

    def send_transaction(self, signed: "SignedTx") -> str:
        """Inject a signed transaction into the pending pool. Returns its hash."""
        result = self._call("eth_sendRawTransaction", signed.raw_hex)
        logger.debug("sent transaction %s", result or signed.hash)
        return result or signed.hash

    def call(
        self,
        contract: str,
        method: str,
        abi_json: str,
        *params: Any,
        opts: Optional[CallOpts] = None,
        results: Optional[list] = None,
    ) -> list:
        """
        Invoke a constant contract method.

        Args:
            contract: 0x-prefixed contract address
            method: Method name as keyed in the parsed ABI
            abi_json: JSON ABI description (parsed once per contract address)
            *params: Method arguments
            opts: State view and sender for the call
            results: Destination; when it already holds an element, outputs
                are unpacked into ``results[0]``, otherwise appended

        Returns:
            ``results`` after filling

        Raises:
            ArgumentEncodingError: If the arguments do not fit the ABI
            NoContractCodeError: If the call returned nothing and there is no code
        """
        opts = opts or CallOpts()
        if results is None:
            results = []

        parsed = self.abis.resolve(contract, abi_json)
        data = parsed.pack(method, *params)
        msg = CallMsg(to=contract, data=data, from_address=opts.from_address)
        timeout = opts.timeout if opts.timeout is not None else self.timeout

        if opts.pending:
            output = self.pending_call_contract(msg, timeout=timeout)
            if not output:
                # Make sure we have a contract to operate on, and bail out otherwise.
                if not self.pending_code_at(contract, timeout=timeout):
                    raise NoContractCodeError(f"no contract code at {contract} (pending)")
        else:
            output = self.call_contract(msg, opts.block_number, timeout=timeout)
            if not output:
                if not self.code_at(contract, opts.block_number, timeout=timeout):
                    raise NoContractCodeError(
                        f"no contract code at {contract} ({to_block_number_arg(opts.block_number)})"
                    )

        if not output:
            return results
        if not results:
            results.extend(parsed.unpack(method, output))
            return results
        parsed.unpack_into(results[0], method, output)
        return results

    def balance_of(self, address: str, contract: str) -> int:
        """ERC-20 ``balanceOf(address)`` on ``contract``."""
        results = self.call(contract, "balanceOf", ERC20_ABI, address)
        if not results or not isinstance(results[0], int):
            raise ResultDecodingError(f"balanceOf on {contract}: results[0] is not an integer")
        return results[0]

    # ------------------------------------------------------------------
    # Transaction building
    # ------------------------------------------------------------------

    def build_contract_tx(
        self,
        private_key: str,
        method: str,
        abi_json: str,
        contract: str,
        *params: Any,
        opts: Optional["TransactOpts"] = None,
    ) -> "SignedTx":
        from .tx import build_contract_tx

        return build_contract_tx(self, private_key, method, abi_json, contract, *params, opts=opts)

    def build_transfer_tx(
        self, private_key: str, to: str, opts: Optional["TransactOpts"] = None
    ) -> "SignedTx":
        from .tx import build_transfer_tx

        return build_transfer_tx(self, private_key, to, opts=opts)


def dial(url: Optional[str] = None, timeout: Optional[float] = None, **kwargs: Any) -> Client:
    return Client.dial(url, timeout=timeout, **kwargs)


__all__ = ["CallOpts", "Client", "dial"]
