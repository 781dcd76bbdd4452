"""Asyncio client for the Kuzzle realtime protocol over a single WebSocket."""

from kuzzle_realtime.config import ClientSettings, get_settings
from kuzzle_realtime.errors import KuzzleRealtimeError, ProtocolError, RequestTimeoutError, SubscriptionError
from kuzzle_realtime.network import ConnectionError, RealtimeClient

__all__ = [
    "ClientSettings",
    "ConnectionError",
    "KuzzleRealtimeError",
    "ProtocolError",
    "RealtimeClient",
    "RequestTimeoutError",
    "SubscriptionError",
    "get_settings",
]
