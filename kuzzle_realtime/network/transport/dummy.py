"""In-memory transport for offline testing."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

from kuzzle_realtime.network.transport.base import BaseTransport, TransportEvents

LOGGER = logging.getLogger(__name__)


class DummyTransport(BaseTransport):
    """Loopback transport: records outbound frames and lets callers inject events."""

    def __init__(self, settings=None, *, auto_open: bool = False) -> None:
        self._settings = settings
        self._auto_open = auto_open
        self._events: Optional[TransportEvents] = None
        self._open = False
        self._closed = asyncio.Event()
        self._ready = asyncio.Event()
        self.sent: list[dict[str, Any]] = []

    @property
    def is_open(self) -> bool:
        return self._open

    async def run(self, events: TransportEvents) -> None:
        self._events = events
        self._closed.clear()
        self._ready.set()
        if self._auto_open:
            await self.open()
        await self._closed.wait()

    async def send(self, data: str) -> None:
        if not self._open:
            raise RuntimeError("Dummy transport not connected")
        LOGGER.debug("Dummy transport send(): %s", data)
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        LOGGER.debug("Dummy transport close()")
        if self._open:
            await self.drop("client closed")
        self._closed.set()

    async def open(self) -> None:
        await self._ready.wait()
        assert self._events is not None
        self._open = True
        await self._events.on_open()

    async def drop(self, reason: str = "connection lost") -> None:
        assert self._events is not None
        self._open = False
        await self._events.on_close(reason)

    async def feed(self, message: dict[str, Any] | str) -> None:
        """Deliver one inbound frame as if it came from the server."""

        await self._ready.wait()
        assert self._events is not None
        raw = message if isinstance(message, str) else json.dumps(message)
        await self._events.on_message(raw)

    def frames(self, **match: Any) -> list[dict[str, Any]]:
        return [frame for frame in self.sent if all(frame.get(k) == v for k, v in match.items())]
