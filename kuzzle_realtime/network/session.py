"""Session layer: inbound dispatch chain and connection lifecycle wiring."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import json
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from kuzzle_realtime.config import ClientSettings
from kuzzle_realtime.handlers import AuthenticationHandler, MessageHandler, PingHandler, RequestHandler
from kuzzle_realtime.models import Envelope
from kuzzle_realtime.network.connection import Connection, ConnectionError
from kuzzle_realtime.network.transport.base import BaseTransport
from kuzzle_realtime.realtime import Realtime
from kuzzle_realtime.session_state import ConnectionState, SessionContext

LOGGER = logging.getLogger(__name__)

LIFECYCLE_EVENTS = frozenset({"open", "close", "error"})

Listener = Callable[..., Any]


@dataclass
class Session:
    """Owns the connection and routes every inbound frame through the handler chain.

    Handlers are offered each envelope in order (keepalive, authentication,
    request correlation, realtime delivery); the first one returning ``True``
    claims it.
    """

    settings: ClientSettings
    transport_factory: Callable[[ClientSettings], BaseTransport]
    context: SessionContext = field(default_factory=SessionContext)

    ping_handler: PingHandler = field(init=False)
    auth_handler: AuthenticationHandler = field(init=False)
    request_handler: RequestHandler = field(init=False)
    realtime: Realtime = field(init=False)

    _conn: Optional[Connection] = field(default=None, init=False, repr=False)
    _handlers: List[MessageHandler] = field(default_factory=list, init=False, repr=False)
    _listeners: Dict[str, List[Listener]] = field(default_factory=lambda: defaultdict(list), init=False, repr=False)
    _restore_task: Optional[asyncio.Task[None]] = field(default=None, init=False, repr=False)
    _opened: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.settings.auth_token and not self.context.auth_token:
            self.context.auth_token = self.settings.auth_token
        self.ping_handler = PingHandler(self.send, interval_seconds=float(self.settings.ping_interval_seconds))
        self.request_handler = RequestHandler(
            self.send,
            context=self.context,
            timeout_seconds=float(self.settings.request_timeout_seconds),
        )
        self.auth_handler = AuthenticationHandler(self.request_handler)
        self.realtime = Realtime(self.request_handler)
        self._handlers = [self.ping_handler, self.auth_handler, self.request_handler, self.realtime]

    @property
    def is_connected(self) -> bool:
        return bool(self._conn and self._conn.is_open)

    @property
    def connection(self) -> Optional[Connection]:
        return self._conn

    def on(self, event: str, listener: Listener) -> None:
        """Register a listener for ``open``, ``close`` (reason) or ``error`` (exception)."""

        if event not in LIFECYCLE_EVENTS:
            raise ValueError(f"Unknown lifecycle event: {event}")
        self._listeners[event].append(listener)

    async def start(self) -> None:
        if self._conn is None:
            self._conn = Connection(
                self.settings,
                self.transport_factory,
                on_connected=self._on_transport_connected,
                on_disconnect=self._on_transport_disconnect,
                on_error=self._on_transport_error,
                on_message=self._on_transport_message,
            )
        await self._conn.start()

    async def stop(self) -> None:
        self.ping_handler.stop()
        restore_task = self._restore_task
        if restore_task:
            restore_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await restore_task
        self._restore_task = None

        if self._conn:
            await self._conn.stop()
        self._conn = None
        self._opened.clear()
        self.request_handler.fail_pending(ConnectionError("Session stopped"))
        self.context.transition(ConnectionState.STOPPED)

    async def wait_until_connected(self, timeout: Optional[float] = None) -> None:
        await asyncio.wait_for(self._opened.wait(), timeout)

    async def send(self, message: dict[str, Any]) -> None:
        if not self._conn:
            raise ConnectionError("Connection not started")
        await self._conn.send(message)

    async def dispatch(self, envelope: Envelope) -> bool:
        """Offer ``envelope`` to each handler in turn; returns whether one claimed it."""

        for handler in self._handlers:
            if await handler.handle_message(envelope):
                return True
        LOGGER.debug("Unhandled frame room=%s requestId=%s", envelope.room, envelope.request_id)
        return False

    async def _on_transport_message(self, raw: str | bytes) -> None:
        try:
            envelope = Envelope.model_validate(json.loads(raw))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            LOGGER.warning("Dropping malformed frame: %s", exc)
            return
        try:
            await self.dispatch(envelope)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Failed to process inbound frame")

    async def _on_transport_connected(self) -> None:
        self.context.transition(ConnectionState.OPEN)
        self._opened.set()
        self.ping_handler.start()
        # Replay responses arrive on the receive loop that called us.
        if self._restore_task and not self._restore_task.done():
            self._restore_task.cancel()
        self._restore_task = asyncio.create_task(self._restore(), name="restore-subscriptions")
        await self._emit("open")

    async def _on_transport_disconnect(self, reason: str) -> None:
        self.ping_handler.stop()
        self._opened.clear()
        self.context.transition(ConnectionState.CLOSED)
        if self.settings.fail_pending_on_disconnect:
            self.request_handler.fail_pending(ConnectionError(f"Connection closed: {reason}"))
        await self._emit("close", reason)

    async def _on_transport_error(self, exc: BaseException) -> None:
        await self._emit("error", exc)

    async def _restore(self) -> None:
        try:
            await self.realtime.restore_subscriptions()
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001
            LOGGER.exception("Subscription restore failed")

    async def _emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(event, ())):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001
                LOGGER.exception("Lifecycle listener failed: %s", listener)
