"""Request/response correlation over the shared connection."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from kuzzle_realtime.errors import ProtocolError, RequestTimeoutError
from kuzzle_realtime.handlers.base import SendFrame
from kuzzle_realtime.models import Envelope
from kuzzle_realtime.session_state import SessionContext

LOGGER = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    future: asyncio.Future[Envelope]
    timer: asyncio.TimerHandle
    controller: Optional[str] = None
    action: Optional[str] = None


@dataclass
class RequestHandler:
    """Tags outgoing requests with an id and resolves them from matching replies."""

    send: SendFrame
    context: SessionContext = field(default_factory=SessionContext)
    timeout_seconds: float = 5.0

    _pending: Dict[str, PendingRequest] = field(default_factory=dict, init=False, repr=False)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, request_id: str) -> bool:
        return request_id in self._pending

    def set_auth_token(self, token: Optional[str]) -> None:
        LOGGER.debug("Auth token %s", "set" if token else "cleared")
        self.context.auth_token = token

    def set_volatile_data(self, data: Mapping[str, Any]) -> None:
        self.context.volatile = dict(data)

    def build_request(self, payload: Mapping[str, Any], request_id: str) -> Dict[str, Any]:
        message: Dict[str, Any] = {
            **payload,
            "requestId": request_id,
            "volatile": self.context.outgoing_volatile(),
        }
        if self.context.auth_token:
            message["jwt"] = self.context.auth_token
        return message

    async def send_request(self, payload: Mapping[str, Any]) -> Envelope:
        """Send ``payload`` and wait for the reply carrying the same request id.

        Raises ``RequestTimeoutError`` when nothing arrives in time,
        ``ProtocolError`` when the reply carries an error and the connection's
        ``ConnectionError`` when the frame cannot be sent.
        """

        request_id = str(uuid.uuid4())
        while request_id in self._pending:
            request_id = str(uuid.uuid4())
        message = self.build_request(payload, request_id)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Envelope] = loop.create_future()
        timer = loop.call_later(self.timeout_seconds, self._expire, request_id)
        self._pending[request_id] = PendingRequest(
            future=future,
            timer=timer,
            controller=message.get("controller"),
            action=message.get("action"),
        )
        LOGGER.debug("Sending request %s %s:%s", request_id, message.get("controller"), message.get("action"))
        try:
            await self.send(message)
        except Exception:
            self._discard(request_id)
            raise
        return await future

    async def handle_message(self, envelope: Envelope) -> bool:
        request_id = envelope.request_id
        # Notifications reuse ``room`` for their channel id; only direct replies echo the request id there.
        if request_id is None or envelope.room != request_id:
            return False
        pending = self._pending.pop(request_id, None)
        if pending is None:
            LOGGER.debug("Ignoring reply for unknown request %s", request_id)
            return False
        pending.timer.cancel()
        if pending.future.done():
            return True
        if envelope.error is not None:
            LOGGER.debug(
                "Request %s %s:%s failed: %s",
                request_id,
                pending.controller,
                pending.action,
                envelope.error.id,
            )
            pending.future.set_exception(ProtocolError(envelope.error))
        else:
            pending.future.set_result(envelope)
        return True

    def fail_pending(self, exc: BaseException) -> None:
        """Fail every in-flight request with ``exc``."""

        if self._pending:
            LOGGER.debug("Failing %s pending requests: %s", len(self._pending), exc)
        for request_id in list(self._pending):
            pending = self._pending.pop(request_id)
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.set_exception(exc)

    def _expire(self, request_id: str) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return
        LOGGER.warning(
            "Request %s %s:%s timed out after %.2fs",
            request_id,
            pending.controller,
            pending.action,
            self.timeout_seconds,
        )
        if not pending.future.done():
            pending.future.set_exception(RequestTimeoutError(request_id, self.timeout_seconds))

    def _discard(self, request_id: str) -> None:
        pending = self._pending.pop(request_id, None)
        if pending:
            pending.timer.cancel()
            if not pending.future.done():
                pending.future.cancel()
