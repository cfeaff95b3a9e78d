from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

Listener = Callable[[bool], Awaitable[None] | None]


class ConnectivityMonitor:
    """Online/offline flag with transition notifications.

    The flag can be driven manually (``set_online``) or by ``watch``, which
    probes ``probe_url`` every ``interval`` seconds.
    """

    def __init__(self, *, online: bool = True, probe_url: str = "", probe_timeout: float = 5.0):
        self._online = online
        self.probe_url = probe_url
        self.probe_timeout = probe_timeout
        self._listeners: list[Listener] = []
        self._pending: set[asyncio.Task] = set()

    @property
    def is_online(self) -> bool:
        return self._online

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def set_online(self, online: bool) -> bool:
        """Update the flag; returns True when it actually changed."""
        online = bool(online)
        if online == self._online:
            return False
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            result = listener(online)
            if asyncio.iscoroutine(result):
                try:
                    loop = asyncio.get_running_loop()
                except RuntimeError:
                    result.close()
                    logger.warning("No running event loop, skipped async connectivity listener")
                    continue
                task = loop.create_task(result)
                self._pending.add(task)
                task.add_done_callback(self._on_listener_done)
        return True

    def _on_listener_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Connectivity listener failed: %s", exc)

    async def drain_listeners(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def probe(self, client: httpx.AsyncClient | None = None) -> bool:
        if not self.probe_url:
            return self._online
        try:
            if client is None:
                async with httpx.AsyncClient(timeout=self.probe_timeout) as owned:
                    resp = await owned.head(self.probe_url)
            else:
                resp = await client.head(self.probe_url)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            return False
        # Any HTTP answer, even an error status, means the network is reachable.
        logger.debug("Connectivity probe answered %s", resp.status_code)
        return True

    async def check(self, client: httpx.AsyncClient | None = None) -> bool:
        online = await self.probe(client)
        self.set_online(online)
        return online

    async def watch(self, interval: Callable[[], float]) -> None:
        """Probe forever; ``interval`` is re-read each cycle so settings apply live."""
        async with httpx.AsyncClient(timeout=self.probe_timeout) as client:
            while True:
                try:
                    await self.check(client)
                except Exception:
                    logger.exception("Connectivity check failed")
                await asyncio.sleep(max(1.0, interval()))
