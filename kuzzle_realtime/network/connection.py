"""Connection wrapper that owns the underlying transport lifecycle."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from kuzzle_realtime.config import ClientSettings
from kuzzle_realtime.network.transport.base import BaseTransport

LOGGER = logging.getLogger(__name__)


class ConnectionError(RuntimeError):
    """Raised when a frame cannot be handed to the transport."""


class Connection:
    """Runs the transport in a background task and relays its lifecycle events."""

    def __init__(
        self,
        settings: ClientSettings,
        transport_factory: Callable[[ClientSettings], BaseTransport],
        *,
        on_connected: Optional[Callable[[], Awaitable[None]]] = None,
        on_disconnect: Optional[Callable[[str], Awaitable[None]]] = None,
        on_error: Optional[Callable[[BaseException], Awaitable[None]]] = None,
        on_message: Optional[Callable[[str | bytes], Awaitable[None]]] = None,
    ) -> None:
        self._settings = settings
        self._transport_factory = transport_factory
        self._transport: Optional[BaseTransport] = None
        self._run_task: Optional[asyncio.Task[None]] = None
        self._on_connected = on_connected
        self._on_disconnect = on_disconnect
        self._on_error = on_error
        self._on_message = on_message

    @property
    def transport(self) -> Optional[BaseTransport]:
        return self._transport

    @property
    def is_open(self) -> bool:
        return bool(self._transport and self._transport.is_open)

    async def start(self) -> None:
        """Create the transport and start driving it."""

        if self._run_task and not self._run_task.done():
            return
        self._transport = self._transport_factory(self._settings)
        self._run_task = asyncio.create_task(self._run(self._transport), name="transport-run")

    async def stop(self) -> None:
        """Close the transport and stop the background task."""

        transport = self._transport
        if transport:
            try:
                await transport.close()
            except Exception:  # noqa: BLE001
                LOGGER.debug("Suppress transport close error", exc_info=True)
        if self._run_task:
            self._run_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._run_task
        self._run_task = None
        self._transport = None

    async def send(self, message: dict[str, Any]) -> None:
        """Serialise and send one frame; fails fast when the socket is not open."""

        transport = self._transport
        if not transport or not transport.is_open:
            raise ConnectionError("Transport not connected")
        data = json.dumps(message)
        try:
            await transport.send(data)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Transport send failed: %s", exc)
            raise ConnectionError(str(exc)) from exc

    async def _run(self, transport: BaseTransport) -> None:
        try:
            await transport.run(self)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Transport stopped unexpectedly")

    # TransportEvents

    async def on_open(self) -> None:
        LOGGER.info("Socket opened to %s", self._settings.url)
        if self._on_connected:
            await self._safe_call(self._on_connected)

    async def on_close(self, reason: str) -> None:
        LOGGER.info("Socket closed [%s]", reason)
        if self._on_disconnect:
            await self._safe_call(self._on_disconnect, reason)

    async def on_error(self, exc: BaseException) -> None:
        LOGGER.warning("Socket error: %s", exc)
        if self._on_error:
            await self._safe_call(self._on_error, exc)

    async def on_message(self, raw: str | bytes) -> None:
        if self._on_message:
            await self._on_message(raw)

    async def _safe_call(self, fn: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await fn(*args)
        except Exception:  # noqa: BLE001
            LOGGER.debug("Suppress connection callback error", exc_info=True)
