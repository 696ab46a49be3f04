"""
Batched read-only calls through the Multicall2 contract.

Many ``eth_call``s collapse into one: each call is ``(target, calldata)``
and the contract returns ``(success, return_data)`` per call, all against
the same block.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from ..utils import to_checksum_address

if TYPE_CHECKING:
    from ..node.client import CallOpts, Client

logger = logging.getLogger(__name__)

MULTICALL2_ADDRESS = "0x5ba1e12693dc8f9c48aad8770482f4739beed696"

_CALLS = {
    "components": [
        {"internalType": "address", "name": "target", "type": "address"},
        {"internalType": "bytes", "name": "callData", "type": "bytes"},
    ],
    "internalType": "struct Multicall2.Call[]",
    "name": "calls",
    "type": "tuple[]",
}
_RESULTS = {
    "components": [
        {"internalType": "bool", "name": "success", "type": "bool"},
        {"internalType": "bytes", "name": "returnData", "type": "bytes"},
    ],
    "internalType": "struct Multicall2.Result[]",
    "name": "returnData",
    "type": "tuple[]",
}

MULTICALL2_ABI = json.dumps([
    {
        "inputs": [{"internalType": "bool", "name": "requireSuccess", "type": "bool"}, _CALLS],
        "name": "tryAggregate",
        "outputs": [_RESULTS],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "bool", "name": "requireSuccess", "type": "bool"}, _CALLS],
        "name": "tryBlockAndAggregate",
        "outputs": [
            {"internalType": "uint256", "name": "blockNumber", "type": "uint256"},
            {"internalType": "bytes32", "name": "blockHash", "type": "bytes32"},
            _RESULTS,
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
])


@dataclass(frozen=True)
class Multicall2Call:
    target: str
    call_data: bytes


@dataclass(frozen=True)
class Multicall2Result:
    success: bool
    return_data: bytes


def multicall(
    client: "Client",
    calls: Sequence[Multicall2Call],
    require_success: bool = False,
    opts: Optional["CallOpts"] = None,
    address: str = MULTICALL2_ADDRESS,
) -> list[Multicall2Result]:
    """
    Run ``calls`` in one ``tryAggregate`` round trip.

    Args:
        client: Connected client
        calls: Target and ABI-encoded calldata per call
        require_success: Revert the whole batch if any call fails
        opts: State view for the batch
        address: Multicall2 deployment to use

    Returns:
        One result per call, in order
    """
    payload = [(to_checksum_address(c.target), bytes(c.call_data)) for c in calls]
    logger.debug("multicall of %d calls via %s", len(payload), address)
    results = client.call(address, "tryAggregate", MULTICALL2_ABI, require_success, payload, opts=opts)
    if not results:
        return []
    return [Multicall2Result(bool(ok), bytes(data)) for ok, data in results[0]]
