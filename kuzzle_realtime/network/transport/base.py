"""Transport abstractions for the realtime connection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol


class TransportEvents(Protocol):
    """Lifecycle callbacks a transport reports to its owner."""

    async def on_open(self) -> None:
        ...

    async def on_close(self, reason: str) -> None:
        ...

    async def on_error(self, exc: BaseException) -> None:
        ...

    async def on_message(self, raw: str | bytes) -> None:
        ...


class BaseTransport(ABC):
    """Abstract WebSocket-like transport.

    ``run`` drives the socket until ``close`` is called, reporting lifecycle
    events and every inbound frame, in arrival order, to ``events``. Socket
    concerns (TLS, framing, reconnection) belong to the implementation.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    async def run(self, events: TransportEvents) -> None:
        ...

    @abstractmethod
    async def send(self, data: str) -> None:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
