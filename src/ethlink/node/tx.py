"""
Transaction Builder - fee policy, nonce/gas resolution and signing.

Turns "call this method" or "send this value" into a signed transaction
ready for ``Client.send_transaction``. Building never broadcasts.

The fee decision is a small table, resolved once per build into a
``FeePolicy`` before any fee is fetched:

    gas_price  tip/fee cap  base fee   ->  policy
    set        set          -              ConflictingFeeFieldsError
    set        -            any            LEGACY_FIXED
    -          set          none           DynamicFeeNotActiveError
    -          -            none           LEGACY_SUGGESTED
    -          tip set      set            DYNAMIC_EXPLICIT
    -          tip unset    set            DYNAMIC_SUGGESTED
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from ..errors import (
    ConflictingFeeFieldsError,
    DynamicFeeNotActiveError,
    FeeCapBelowTipCapError,
    NoContractCodeError,
)
from ..utils import to_checksum_address
from ..wallet.eth import get_account
from .types import DYNAMIC_FEE_TX_TYPE, LEGACY_TX_TYPE, CallMsg

if TYPE_CHECKING:
    from eth_account.signers.local import LocalAccount

    from .client import Client

logger = logging.getLogger(__name__)

# Intrinsic gas of a plain value transfer.
TRANSFER_GAS = 21_000


class FeePolicy(enum.Enum):
    LEGACY_FIXED = "legacy-fixed"
    LEGACY_SUGGESTED = "legacy-suggested"
    DYNAMIC_EXPLICIT = "dynamic-explicit"
    DYNAMIC_SUGGESTED = "dynamic-suggested"

    @property
    def dynamic(self) -> bool:
        return self in (FeePolicy.DYNAMIC_EXPLICIT, FeePolicy.DYNAMIC_SUGGESTED)


@dataclass(frozen=True)
class TransactOpts:
    """Caller choices for a build; ``None`` means "resolve it for me"."""

    nonce: Optional[int] = None
    value: int = 0
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None
    gas_fee_cap: Optional[int] = None
    gas_tip_cap: Optional[int] = None
    timeout: Optional[float] = None

    @property
    def has_dynamic_fields(self) -> bool:
        return self.gas_fee_cap is not None or self.gas_tip_cap is not None


@dataclass(frozen=True)
class Fees:
    policy: FeePolicy
    gas_price: Optional[int] = None
    gas_tip_cap: Optional[int] = None
    gas_fee_cap: Optional[int] = None


@dataclass(frozen=True)
class SignedTx:
    """A signed transaction, ready for broadcast."""

    raw: bytes
    hash: str
    sender: str
    fields: dict[str, Any]
    policy: FeePolicy

    @property
    def raw_hex(self) -> str:
        return "0x" + self.raw.hex()

    @property
    def type(self) -> int:
        return self.fields.get("type", LEGACY_TX_TYPE)


def check_fee_fields(opts: TransactOpts) -> None:
    """Reject contradictory fee requests. Pure; runs before any RPC."""
    if opts.gas_price is not None and opts.has_dynamic_fields:
        raise ConflictingFeeFieldsError(
            "both gasPrice and (maxFeePerGas or maxPriorityFeePerGas) specified"
        )


def select_fee_policy(opts: TransactOpts, base_fee: Optional[int]) -> FeePolicy:
    """Pick the fee policy from the caller's fields and the head's base fee."""
    check_fee_fields(opts)
    if base_fee is not None and opts.gas_price is None:
        if opts.gas_tip_cap is not None:
            return FeePolicy.DYNAMIC_EXPLICIT
        return FeePolicy.DYNAMIC_SUGGESTED
    if opts.has_dynamic_fields:
        raise DynamicFeeNotActiveError(
            "maxFeePerGas or maxPriorityFeePerGas specified but london is not active yet"
        )
    if opts.gas_price is not None:
        return FeePolicy.LEGACY_FIXED
    return FeePolicy.LEGACY_SUGGESTED


def resolve_fees(
    client: "Client",
    policy: FeePolicy,
    opts: TransactOpts,
    base_fee: Optional[int],
    timeout: Optional[float] = None,
) -> Fees:
    """Fill in the fee fields a policy needs, asking the node where required."""
    if policy is FeePolicy.LEGACY_FIXED:
        return Fees(policy, gas_price=opts.gas_price)
    if policy is FeePolicy.LEGACY_SUGGESTED:
        return Fees(policy, gas_price=client.suggest_gas_price(timeout=timeout))

    if policy is FeePolicy.DYNAMIC_EXPLICIT:
        tip = opts.gas_tip_cap
    else:
        tip = client.suggest_gas_tip_cap(timeout=timeout)

    fee_cap = opts.gas_fee_cap
    if fee_cap is None:
        # Room for two blocks of base-fee increase.
        fee_cap = tip + 2 * (base_fee or 0)
    if fee_cap < tip:
        raise FeeCapBelowTipCapError(f"maxFeePerGas ({fee_cap}) < maxPriorityFeePerGas ({tip})")
    return Fees(policy, gas_tip_cap=tip, gas_fee_cap=fee_cap)


def _resolve_nonce(client: "Client", sender: str, opts: TransactOpts, timeout: Optional[float]) -> int:
    if opts.nonce is not None:
        return opts.nonce
    return client.pending_nonce_at(sender, timeout=timeout)


def _timeout(client: "Client", opts: TransactOpts) -> float:
    return opts.timeout if opts.timeout is not None else client.timeout


def _assemble(
    nonce: int,
    fees: Fees,
    gas: int,
    to: str,
    value: int,
    data: bytes,
    chain_id: int,
) -> dict[str, Any]:
    tx: dict[str, Any] = {
        "nonce": nonce,
        "gas": gas,
        "to": to_checksum_address(to),
        "value": value,
        "data": "0x" + data.hex(),
        "chainId": chain_id,
    }
    if fees.policy.dynamic:
        tx["type"] = DYNAMIC_FEE_TX_TYPE
        tx["maxFeePerGas"] = fees.gas_fee_cap
        tx["maxPriorityFeePerGas"] = fees.gas_tip_cap
    else:
        tx["gasPrice"] = fees.gas_price
    return tx


def _sign(account: "LocalAccount", tx: dict[str, Any], policy: FeePolicy) -> SignedTx:
    # The chainId in the payload selects replay-protected signing.
    signed = account.sign_transaction(tx)
    return SignedTx(
        raw=bytes(signed.raw_transaction),
        hash="0x" + bytes(signed.hash).hex(),
        sender=account.address,
        fields=tx,
        policy=policy,
    )


def _build(
    client: "Client",
    account: "LocalAccount",
    to: str,
    data: bytes,
    opts: TransactOpts,
    is_contract: bool,
) -> SignedTx:
    timeout = _timeout(client, opts)
    nonce = _resolve_nonce(client, account.address, opts, timeout)

    head = client.header_by_number(None, timeout=timeout)
    policy = select_fee_policy(opts, head.base_fee)
    fees = resolve_fees(client, policy, opts, head.base_fee, timeout=timeout)
    logger.debug("fee policy %s for %s (base fee %s)", policy.value, account.address, head.base_fee)

    gas = opts.gas_limit
    if not gas:
        if is_contract:
            # Gas estimation cannot succeed without code for method invocations.
            if not client.pending_code_at(to, timeout=timeout):
                raise NoContractCodeError(f"no contract code at {to} (pending)")
            msg = CallMsg(
                to=to,
                data=data,
                from_address=account.address,
                value=opts.value,
                gas_price=fees.gas_price,
                gas_fee_cap=fees.gas_fee_cap,
                gas_tip_cap=fees.gas_tip_cap,
            )
            gas = client.estimate_gas(msg, timeout=timeout)
        else:
            gas = TRANSFER_GAS

    chain_id = client.cached_chain_id()
    tx = _assemble(nonce, fees, gas, to, opts.value, data, chain_id)
    return _sign(account, tx, policy)


def build_contract_tx(
    client: "Client",
    private_key: str,
    method: str,
    abi_json: str,
    contract: str,
    *params: Any,
    opts: Optional[TransactOpts] = None,
) -> SignedTx:
    """
    Build and sign a contract method invocation.

    Args:
        client: Connected client (ABI cache, chain id, RPC)
        private_key: hex private key of the sender
        method: Method name as keyed in the parsed ABI
        abi_json: JSON ABI description of the contract
        contract: 0x-prefixed contract address
        *params: Method arguments
        opts: Nonce, value, gas and fee choices

    Returns:
        SignedTx (not broadcast)
    """
    if not contract:
        raise ValueError("contract address is required")
    opts = opts or TransactOpts()
    check_fee_fields(opts)
    account = get_account(private_key)

    parsed = client.abis.resolve(contract, abi_json)
    data = parsed.pack(method, *params)
    return _build(client, account, contract, data, opts, is_contract=True)


def build_transfer_tx(
    client: "Client",
    private_key: str,
    to: str,
    opts: Optional[TransactOpts] = None,
) -> SignedTx:
    """Build and sign a plain value transfer (21000 gas unless told otherwise)."""
    if not to:
        raise ValueError("recipient address is required")
    opts = opts or TransactOpts()
    check_fee_fields(opts)
    account = get_account(private_key)
    return _build(client, account, to, b"", opts, is_contract=False)
