"""
Error taxonomy for ethlink.

Every condition the client can report derives from ``EthlinkError`` so
callers can catch the whole family at once, while the concrete classes
keep "the thing does not exist" apart from "the node lied" and from
"the network is down".

None of these are retried internally; retry policy belongs to the caller.
"""

from __future__ import annotations

from typing import Any, Optional


class EthlinkError(Exception):
    pass


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(EthlinkError):
    """The request never produced a usable JSON-RPC response."""


class RpcTimeoutError(TransportError):
    """The request exceeded its deadline."""


class RpcError(TransportError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return super().__str__()
        return f"{super().__str__()} (code {self.code})"


# ---------------------------------------------------------------------------
# Chain data
# ---------------------------------------------------------------------------


class NotFoundError(EthlinkError):
    """Block, transaction or receipt is unknown to the node."""


class MalformedResponseError(EthlinkError):
    """The node returned a payload that cannot be a valid answer."""


class InconsistentBlockDataError(MalformedResponseError):
    """Header and body of a block response contradict each other."""


class MissingUncleHeaderError(EthlinkError):
    pass


class WrongInclusionError(EthlinkError):
    """Caller and node disagree on which transaction sits at a block/index."""


# ---------------------------------------------------------------------------
# ABI
# ---------------------------------------------------------------------------


class AbiError(EthlinkError):
    pass


class MalformedABIError(AbiError):
    pass


class ArgumentEncodingError(AbiError):
    pass


class ResultDecodingError(AbiError):
    pass


class NoContractCodeError(EthlinkError):
    """The target address has no code in the state being queried."""


# ---------------------------------------------------------------------------
# Fee policy
# ---------------------------------------------------------------------------


class FeePolicyError(EthlinkError):
    pass


class ConflictingFeeFieldsError(FeePolicyError):
    pass


class FeeCapBelowTipCapError(FeePolicyError):
    pass


class DynamicFeeNotActiveError(FeePolicyError):
    pass
