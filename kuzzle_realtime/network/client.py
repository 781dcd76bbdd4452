"""Client facade: wires the session stack and exposes the public API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from kuzzle_realtime.config import ClientSettings, get_settings
from kuzzle_realtime.controllers import AuthController, CollectionController, DocumentController, IndexController
from kuzzle_realtime.handlers import RequestHandler
from kuzzle_realtime.models import Envelope
from kuzzle_realtime.network.session import Listener, Session
from kuzzle_realtime.network.transport.base import BaseTransport
from kuzzle_realtime.network.transport.dummy import DummyTransport
from kuzzle_realtime.network.transport.websocket import WebSocketTransport
from kuzzle_realtime.realtime import Realtime
from kuzzle_realtime.session_state import SessionContext

LOGGER = logging.getLogger(__name__)


def default_transport_factory(settings: ClientSettings) -> BaseTransport:
    if settings.transport == "dummy":
        return DummyTransport(settings)
    return WebSocketTransport(settings)


@dataclass
class RealtimeClient:
    """One persistent connection shared by requests, keepalive and realtime subscriptions.

    Usage::

        async with RealtimeClient(ClientSettings(host="kuzzle.local")) as client:
            now = await client.send_request({"controller": "server", "action": "now"})
    """

    settings: ClientSettings = field(default_factory=get_settings)
    transport_factory: Callable[[ClientSettings], BaseTransport] = default_transport_factory

    session: Session = field(init=False)
    auth: AuthController = field(init=False)
    collection: CollectionController = field(init=False)
    document: DocumentController = field(init=False)
    index: IndexController = field(init=False)

    def __post_init__(self) -> None:
        self.session = Session(settings=self.settings, transport_factory=self.transport_factory)
        handler = self.session.request_handler
        self.auth = AuthController(handler)
        self.collection = CollectionController(handler)
        self.document = DocumentController(handler)
        self.index = IndexController(handler)

    @property
    def request_handler(self) -> RequestHandler:
        return self.session.request_handler

    @property
    def realtime(self) -> Realtime:
        return self.session.realtime

    @property
    def context(self) -> SessionContext:
        return self.session.context

    @property
    def instance_id(self) -> str:
        return self.session.context.instance_id

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    @property
    def transport(self) -> Optional[BaseTransport]:
        conn = self.session.connection
        return conn.transport if conn else None

    async def start(self) -> None:
        LOGGER.info("Connecting to %s", self.settings.url)
        await self.session.start()

    async def stop(self) -> None:
        await self.session.stop()
        LOGGER.info("Client stopped")

    async def wait_until_connected(self, timeout: Optional[float] = None) -> None:
        """Block until the socket is open; raises ``TimeoutError`` after ``timeout`` seconds."""

        await self.session.wait_until_connected(timeout)

    def on(self, event: str, listener: Listener) -> None:
        self.session.on(event, listener)

    async def send_request(self, payload: Mapping[str, Any]) -> Envelope:
        return await self.session.request_handler.send_request(payload)

    def set_auth_token(self, token: Optional[str]) -> None:
        self.session.request_handler.set_auth_token(token)

    def set_volatile_data(self, data: Mapping[str, Any]) -> None:
        self.session.request_handler.set_volatile_data(data)

    async def __aenter__(self) -> "RealtimeClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
