"""Liveness ping/pong handling."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from kuzzle_realtime.handlers.base import SendFrame
from kuzzle_realtime.models import PING_FRAME, PONG_FRAME, Envelope

LOGGER = logging.getLogger(__name__)


@dataclass
class PingHandler:
    send: SendFrame
    interval_seconds: float = 5.0

    _ping_task: Optional[asyncio.Task[None]] = field(default=None, init=False, repr=False)

    async def handle_message(self, envelope: Envelope) -> bool:
        if not envelope.is_keepalive:
            return False
        if envelope.p == PING_FRAME["p"]:
            await self.send(dict(PONG_FRAME))
        return True

    def start(self, interval_seconds: Optional[float] = None) -> None:
        """(Re)start the periodic ping; any running loop is cancelled first."""

        self.stop()
        if interval_seconds is not None:
            self.interval_seconds = interval_seconds
        self._ping_task = asyncio.create_task(self._ping_loop(), name="keepalive-ping")

    def stop(self) -> None:
        task = self._ping_task
        self._ping_task = None
        if task and not task.done():
            task.cancel()

    @property
    def running(self) -> bool:
        return self._ping_task is not None and not self._ping_task.done()

    async def _ping_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.send(dict(PING_FRAME))
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Keepalive ping failed: %s", exc)
