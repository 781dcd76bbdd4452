"""WebSocket transport implementation."""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed
from websockets.typing import Subprotocol

from kuzzle_realtime.config import ClientSettings
from kuzzle_realtime.network.transport.base import BaseTransport, TransportEvents

LOGGER = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """WebSocket transport backed by ``websockets``' reconnecting client."""

    def __init__(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._ws: Optional[ClientConnection] = None
        self._closing = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    async def run(self, events: TransportEvents) -> None:
        self._closing = False
        subprotocols = [Subprotocol(name) for name in self._settings.subprotocols] or None
        LOGGER.info("Connecting to Kuzzle WebSocket at %s", self._settings.url)
        try:
            # Iterating connect() reconnects with the library's own backoff.
            async for ws in connect(
                self._settings.url,
                subprotocols=subprotocols,
                open_timeout=self._settings.open_timeout_seconds,
                ping_interval=None,
            ):
                self._ws = ws
                await events.on_open()
                reason = "connection closed"
                try:
                    async for raw in ws:
                        LOGGER.debug("WebSocket receive: %s", raw)
                        await events.on_message(raw)
                except ConnectionClosed as exc:
                    reason = str(exc)
                else:
                    if ws.close_reason:
                        reason = ws.close_reason
                finally:
                    self._ws = None
                await events.on_close(reason)
                if self._closing:
                    return
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("WebSocket transport stopped: %s", exc)
            await events.on_error(exc)
            raise

    async def send(self, data: str) -> None:
        if not self._ws:
            raise RuntimeError("WebSocket transport not connected")
        LOGGER.debug("WebSocket send: %s", data)
        await self._ws.send(data)

    async def close(self) -> None:
        self._closing = True
        if self._ws:
            LOGGER.info("Closing WebSocket transport")
            await self._ws.close()
