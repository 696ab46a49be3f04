"""
Polled subscriptions for HTTP endpoints.

HTTP cannot push, so ``newHeads`` and ``logs`` are served from node-side
filters: install one, poll ``eth_getFilterChanges`` from a daemon thread,
and put every decoded item on the caller's queue. Nothing is buffered
beyond that queue and nothing missed is replayed.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable, Optional

from ..errors import EthlinkError
from .rpc import RpcConnection

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class Subscription:
    """
    Handle for one polled filter.

    Args:
        conn: Shared RPC connection
        filter_id: Id returned by eth_newFilter / eth_newBlockFilter
        channel: Caller-provided queue receiving decoded items
        decode: Turns one filter change into the item to deliver
        poll_interval: Seconds between polls
    """

    def __init__(
        self,
        conn: RpcConnection,
        filter_id: str,
        channel: "queue.Queue[Any]",
        decode: Callable[[Any], Any],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.filter_id = filter_id
        self.error: Optional[Exception] = None
        self._conn = conn
        self._channel = channel
        self._decode = decode
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._closed = False
        self._thread = threading.Thread(
            target=self._run, name=f"ethlink-sub-{filter_id}", daemon=True
        )

    def start(self) -> "Subscription":
        self._thread.start()
        return self

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def poll_once(self) -> int:
        """Fetch pending changes and deliver them. Returns how many were delivered."""
        changes = self._conn.call("eth_getFilterChanges", [self.filter_id]) or []
        for change in changes:
            self._channel.put(self._decode(change))
        return len(changes)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.poll_once()
            except EthlinkError as exc:
                logger.warning("subscription %s stopped: %s", self.filter_id, exc)
                self.error = exc
                self._stop.set()
                return
            self._stop.wait(self._poll_interval)

    def unsubscribe(self) -> None:
        """Stop polling and uninstall the node-side filter."""
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=self._poll_interval + 1)
        try:
            self._conn.call("eth_uninstallFilter", [self.filter_id])
        except EthlinkError as exc:
            logger.debug("uninstall of filter %s failed: %s", self.filter_id, exc)
