"""Online/offline notifications for the synchronizer."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional


logger = logging.getLogger("tracker.sync.connectivity")

Listener = Callable[[bool], None]
Probe = Callable[[], Awaitable[bool]]


class ConnectivitySignal:
    """Current reachability of the data store plus change notifications."""

    def __init__(self, online: bool = True) -> None:
        self._online = bool(online)
        # called in subscription order
        self._listeners: Dict[Listener, None] = {}

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, callback: Listener) -> None:
        self._listeners[callback] = None

    def unsubscribe(self, callback: Listener) -> None:
        self._listeners.pop(callback, None)

    def set_online(self, online: bool) -> None:
        online = bool(online)
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception:
                logger.exception("Connectivity listener %r failed", listener)


def tcp_probe(host: Optional[str], port: int = 443, timeout: float = 3.0) -> Probe:
    """Build a probe that reports whether ``host:port`` accepts a TCP connection."""

    async def _probe() -> bool:
        if not host:
            return False
        try:
            _reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    return _probe


async def watch_connectivity(signal: ConnectivitySignal, probe: Probe, interval: float) -> None:
    """Poll ``probe`` forever and forward its answer to ``signal``."""

    while True:
        try:
            online = await probe()
        except Exception:
            logger.exception("Connectivity probe crashed")
            online = False
        signal.set_online(online)
        await asyncio.sleep(interval)


__all__ = ["ConnectivitySignal", "tcp_probe", "watch_connectivity"]
