from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from kuzzle_realtime.controllers.base import Controller


class DocumentController(Controller):
    """Document CRUD and search; every method returns the response ``result``."""

    name = "document"

    async def create(
        self,
        index: str,
        collection: str,
        body: Mapping[str, Any],
        id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._result("create", index=index, collection=collection, _id=id, body=dict(body))

    async def update(self, index: str, collection: str, id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._result("update", index=index, collection=collection, _id=id, body=dict(body))

    async def get(self, index: str, collection: str, id: str) -> Dict[str, Any]:
        return await self._result("get", index=index, collection=collection, _id=id)

    async def exists(self, index: str, collection: str, id: str) -> bool:
        return await self._result("exists", index=index, collection=collection, _id=id)

    async def delete(self, index: str, collection: str, id: str) -> str:
        """Delete a document and return its id."""

        result = await self._result("delete", index=index, collection=collection, _id=id)
        return result["_id"]

    async def search(
        self,
        index: str,
        collection: str,
        body: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Dict[str, Any]:
        """Run a search; ``options`` (``from``, ``size``, ``scroll``...) go on the request as-is."""

        return await self._result(
            "search",
            index=index,
            collection=collection,
            body=dict(body) if body is not None else {},
            **options,
        )
