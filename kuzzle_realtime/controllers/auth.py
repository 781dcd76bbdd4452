from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from kuzzle_realtime.controllers.base import Controller


class AuthController(Controller):
    name = "auth"

    async def get_current_user(self) -> Dict[str, Any]:
        return await self._result("getCurrentUser")

    async def login(
        self,
        strategy: str,
        credentials: Mapping[str, Any],
        expires_in: Optional[Union[str, int]] = None,
    ) -> Dict[str, Any]:
        """Log in with ``strategy`` and keep the returned token for later requests.

        ``expires_in`` accepts the server's duration format (``"2h"``) or milliseconds.
        """

        result = await self._result("login", body=dict(credentials), strategy=strategy, expiresIn=expires_in)
        if isinstance(result, dict) and result.get("jwt"):
            self.request_handler.set_auth_token(result["jwt"])
        return result

    async def logout(self, global_: bool = False) -> None:
        """Revoke the current token (every session of the user when ``global_``) and forget it."""

        await self._request("logout", **{"global": global_})
        self.request_handler.set_auth_token(None)
