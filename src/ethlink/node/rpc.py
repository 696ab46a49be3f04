"""
JSON-RPC 2.0 connection over HTTP.

Lightweight alternative to web3.py's providers: one pooled ``httpx.Client``
per connection, single calls and batch calls, and a strict mapping of
failures onto the ethlink error taxonomy (timeouts, transport failures and
node-side JSON-RPC errors stay distinguishable).
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from ..config import DEFAULT_TIMEOUT, get_rpc_url
from ..errors import RpcError, RpcTimeoutError, TransportError

logger = logging.getLogger(__name__)


@dataclass
class BatchElem:
    """One sub-request of a batch; ``result``/``error`` are filled in place."""

    method: str
    params: Sequence[Any] = ()
    result: Any = None
    error: Optional[RpcError] = None
    answered: bool = False


def _rpc_error(err: Any, method: str) -> RpcError:
    if isinstance(err, dict):
        return RpcError(
            f"{method}: {err.get('message', 'unknown error')}",
            code=err.get("code"),
            data=err.get("data"),
        )
    return RpcError(f"{method}: {err}")


class RpcConnection:
    """A shared handle to one JSON-RPC endpoint.

    Safe to use from several threads at once; ``httpx.Client`` pools its
    connections and request ids come from a shared counter.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.url = url or get_rpc_url()
        self.timeout = timeout
        self._ids = itertools.count(1)
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers=headers,
        )

    def __enter__(self) -> "RpcConnection":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def _post(self, payload: Any, label: str, timeout: Optional[float]) -> Any:
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = self._client.post(self.url, json=payload, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RpcTimeoutError(f"{label}: request timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{label}: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{label}: response is not valid JSON") from exc

    def call(self, method: str, params: Sequence[Any] = (), timeout: Optional[float] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_call")
            params: RPC parameters
            timeout: Per-call timeout in seconds (default: connection timeout)

        Returns:
            Result field from the RPC response (``None`` for JSON null)

        Raises:
            RpcTimeoutError: If the deadline is exceeded
            TransportError: If the HTTP exchange fails
            RpcError: If the node returns a JSON-RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": list(params),
            "id": next(self._ids),
        }
        logger.debug("rpc call %s %s", method, payload["params"])
        data = self._post(payload, method, timeout)

        if not isinstance(data, dict):
            raise TransportError(f"{method}: unexpected response shape")
        if data.get("error") is not None:
            raise _rpc_error(data["error"], method)

        return data.get("result")

    def batch_call(self, elems: Sequence[BatchElem], timeout: Optional[float] = None) -> None:
        """
        Send several requests in one HTTP round trip.

        Each element's ``result`` or ``error`` is filled in place. A failure
        of the exchange itself raises; per-element JSON-RPC errors do not.
        """
        if not elems:
            return

        first_id = next(self._ids)
        ids = [first_id] + [next(self._ids) for _ in elems[1:]]
        payload = [
            {"jsonrpc": "2.0", "method": e.method, "params": list(e.params), "id": i}
            for e, i in zip(elems, ids)
        ]
        label = f"batch[{len(elems)}]"
        logger.debug("rpc %s %s", label, sorted({e.method for e in elems}))
        data = self._post(payload, label, timeout)

        if not isinstance(data, list):
            if isinstance(data, dict) and data.get("error") is not None:
                raise _rpc_error(data["error"], label)
            raise TransportError(f"{label}: expected a JSON array response")

        # Servers may answer out of order; match by id.
        by_id = {item.get("id"): item for item in data if isinstance(item, dict)}
        for elem, req_id in zip(elems, ids):
            item = by_id.get(req_id)
            if item is None:
                elem.error = RpcError(f"{elem.method}: missing response in batch")
                continue
            elem.answered = True
            if item.get("error") is not None:
                elem.error = _rpc_error(item["error"], elem.method)
            else:
                elem.result = item.get("result")
