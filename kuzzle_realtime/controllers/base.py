from __future__ import annotations

from typing import Any

from kuzzle_realtime.handlers.request_handler import RequestHandler
from kuzzle_realtime.models import Envelope


class Controller:
    """Builds ``{controller, action, ...}`` payloads for one server controller."""

    name: str = ""

    def __init__(self, request_handler: RequestHandler) -> None:
        self.request_handler = request_handler

    async def _request(self, action: str, **fields: Any) -> Envelope:
        # Unset optional arguments are left out of the frame entirely.
        payload = {"controller": self.name, "action": action}
        payload.update({key: value for key, value in fields.items() if value is not None})
        return await self.request_handler.send_request(payload)

    async def _result(self, action: str, **fields: Any) -> Any:
        response = await self._request(action, **fields)
        return response.result
