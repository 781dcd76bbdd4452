from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Protocol

from kuzzle_realtime.models import Envelope

SendFrame = Callable[[Dict[str, Any]], Awaitable[None]]


class MessageHandler(Protocol):
    """One stage of the inbound dispatch chain.

    ``handle_message`` returns ``True`` when the stage claimed the envelope,
    which stops the chain.
    """

    async def handle_message(self, envelope: Envelope) -> bool:
        ...
