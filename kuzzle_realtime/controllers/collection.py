from __future__ import annotations

from typing import Any, Mapping, Optional

from kuzzle_realtime.controllers.base import Controller


class CollectionController(Controller):
    name = "collection"

    async def exists(self, index: str, collection: str) -> bool:
        return await self._result("exists", index=index, collection=collection)

    async def create(self, index: str, collection: str, mapping: Optional[Mapping[str, Any]] = None) -> Any:
        body = dict(mapping) if mapping is not None else None
        return await self._result("create", index=index, collection=collection, body=body)
