"""Transport implementations for the realtime connection."""

from .base import BaseTransport, TransportEvents
from .dummy import DummyTransport
from .websocket import WebSocketTransport

__all__ = ["BaseTransport", "TransportEvents", "DummyTransport", "WebSocketTransport"]
