"""Exceptions surfaced to callers of the realtime client."""

from __future__ import annotations

from kuzzle_realtime.models import ErrorPayload


class KuzzleRealtimeError(RuntimeError):
    """Base class for errors raised by the client."""


class RequestTimeoutError(KuzzleRealtimeError, TimeoutError):
    """Raised when no response arrives within the request timeout."""

    def __init__(self, request_id: str, timeout: float) -> None:
        super().__init__("Request timed out")
        self.request_id = request_id
        self.timeout = timeout


class ProtocolError(KuzzleRealtimeError):
    """Raised when the server answers a request with a populated error field."""

    def __init__(self, error: ErrorPayload) -> None:
        super().__init__(error.message or error.id or "request failed")
        self.error = error

    @property
    def id(self) -> str | None:
        return self.error.id

    @property
    def status(self) -> int | None:
        return self.error.status


class SubscriptionError(KuzzleRealtimeError):
    """Raised when the server refuses a subscription."""
