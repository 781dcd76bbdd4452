from __future__ import annotations

from typing import Any

from kuzzle_realtime.controllers.base import Controller


class IndexController(Controller):
    name = "index"

    async def exists(self, index: str) -> bool:
        return await self._result("exists", index=index)

    async def create(self, index: str) -> Any:
        return await self._result("create", index=index)
