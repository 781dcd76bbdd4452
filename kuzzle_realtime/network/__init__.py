"""Network stack (transport/connection/session/client) for the realtime server."""

from kuzzle_realtime.network.client import RealtimeClient, default_transport_factory
from kuzzle_realtime.network.connection import Connection, ConnectionError
from kuzzle_realtime.network.session import Session
from kuzzle_realtime.network.transport.base import BaseTransport
from kuzzle_realtime.network.transport.dummy import DummyTransport
from kuzzle_realtime.network.transport.websocket import WebSocketTransport

__all__ = [
    "RealtimeClient",
    "Session",
    "Connection",
    "ConnectionError",
    "BaseTransport",
    "WebSocketTransport",
    "DummyTransport",
    "default_transport_factory",
]
