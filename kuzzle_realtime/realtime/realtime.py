"""Subscription registry: rooms, local observers and replay after reconnect."""

from __future__ import annotations

import asyncio
import copy
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from kuzzle_realtime.errors import ProtocolError, SubscriptionError
from kuzzle_realtime.handlers.request_handler import RequestHandler
from kuzzle_realtime.models import DocumentTarget, Envelope, PresenceTarget, PublishTarget, SubscriptionResult
from kuzzle_realtime.realtime.room import ChannelInterest, NotificationCallback, Room

LOGGER = logging.getLogger(__name__)

Unsubscribe = Callable[[], Awaitable[int]]
TargetT = TypeVar("TargetT", bound=BaseModel)


def room_id_of(channel: str) -> str:
    return channel.split("-", 1)[0]


def _coerce_target(model: Type[TargetT], target: Union[TargetT, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(target, model):
        return target.model_dump()
    return model.model_validate(target).model_dump()


@dataclass
class Realtime:
    """Maps server rooms/channels to local callbacks.

    Every subscribe payload is kept, keyed by channel, for as long as the
    channel has an observer so that ``restore_subscriptions`` can resend it
    verbatim on a new connection.
    """

    request_handler: RequestHandler

    _rooms: Dict[str, Room] = field(default_factory=dict, init=False, repr=False)
    _replay: Dict[str, Dict[str, Any]] = field(default_factory=dict, init=False, repr=False)

    @property
    def rooms(self) -> Dict[str, Room]:
        return dict(self._rooms)

    @property
    def replay_payloads(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._replay)

    async def subscribe_to_document_notifications(
        self,
        target: Union[DocumentTarget, Mapping[str, Any]],
        filters: Optional[Mapping[str, Any]],
        callback: NotificationCallback,
        interested_in_self: bool = True,
    ) -> Unsubscribe:
        payload = {
            **_coerce_target(DocumentTarget, target),
            "controller": "realtime",
            "action": "subscribe",
            "body": dict(filters or {}),
            "users": "none",
        }
        return await self._subscribe(payload, callback, interested_in_self)

    async def subscribe_to_presence_notifications(
        self,
        target: Union[PresenceTarget, Mapping[str, Any]],
        filters: Optional[Mapping[str, Any]],
        callback: NotificationCallback,
        interested_in_self: bool = True,
    ) -> Unsubscribe:
        payload = {
            **_coerce_target(PresenceTarget, target),
            "controller": "realtime",
            "action": "subscribe",
            "body": dict(filters or {}),
            "scope": "none",
        }
        return await self._subscribe(payload, callback, interested_in_self)

    async def send_ephemeral_notification(
        self,
        target: Union[PublishTarget, Mapping[str, Any]],
        payload: Mapping[str, Any],
    ) -> Envelope:
        return await self.request_handler.send_request(
            {
                **_coerce_target(PublishTarget, target),
                "controller": "realtime",
                "action": "publish",
                "body": dict(payload),
            }
        )

    async def handle_message(self, envelope: Envelope) -> bool:
        channel = envelope.room
        if not channel:
            return False
        room = self._rooms.get(room_id_of(channel))
        if room is None or not room.has_channel(channel):
            LOGGER.debug("No observer for channel %s", channel)
            return False
        from_self = self.request_handler.context.is_from_self(envelope.volatile)
        return room.notify_channel(channel, envelope, from_self=from_self)

    async def restore_subscriptions(self) -> None:
        """Resend every recorded subscribe payload and wait for all of them."""

        if not self._replay:
            return
        entries: List[Tuple[str, Dict[str, Any]]] = list(self._replay.items())
        LOGGER.info("Restoring %s subscriptions", len(entries))
        outcomes = await asyncio.gather(
            *(self.request_handler.send_request(payload) for _, payload in entries),
            return_exceptions=True,
        )
        for (channel, payload), outcome in zip(entries, outcomes):
            if isinstance(outcome, BaseException):
                LOGGER.warning("Failed to restore subscription on channel %s: %s", channel, outcome)
                continue
            self._rebind(channel, payload, outcome)

    async def _subscribe(
        self,
        payload: Dict[str, Any],
        callback: NotificationCallback,
        interested_in_self: bool,
    ) -> Unsubscribe:
        # The replay entry must not follow later changes to the caller's filters.
        payload = copy.deepcopy(payload)
        try:
            response = await self.request_handler.send_request(payload)
        except ProtocolError as exc:
            raise SubscriptionError(f"{exc.error.id} - {exc.error.message}") from exc

        result = SubscriptionResult.model_validate(response.result)
        self._replay[result.channel] = payload
        room = self._rooms.get(result.room_id)
        if room is None:
            room = self._rooms[result.room_id] = Room(result.room_id)
        interest = ChannelInterest(notify=callback, interested_in_self=interested_in_self)
        room.add_observer(result.channel, interest)
        LOGGER.debug("Subscribed to %s:%s on channel %s", payload.get("index"), payload.get("collection"), result.channel)
        return functools.partial(self._unsubscribe, interest)

    async def _unsubscribe(self, interest: ChannelInterest) -> int:
        room = self._rooms.get(interest.room_id)
        if room is None:
            return 0
        if not room.remove_observer(interest.channel, interest):
            return room.total
        if not room.has_channel(interest.channel):
            self._replay.pop(interest.channel, None)
        if room.has_remaining_interest():
            return room.total

        del self._rooms[room.room_id]
        LOGGER.debug("Leaving room %s, no observer left", room.room_id)
        await self.request_handler.send_request(
            {"controller": "realtime", "action": "unsubscribe", "body": {"roomId": room.room_id}}
        )
        return 0

    def _rebind(self, channel: str, payload: Dict[str, Any], response: Envelope) -> None:
        try:
            result = SubscriptionResult.model_validate(response.result)
        except ValidationError as exc:
            LOGGER.warning("Unexpected replay response for channel %s: %s", channel, exc)
            return
        if result.channel == channel:
            return
        old_room = self._rooms.get(room_id_of(channel))
        if old_room is None or not old_room.has_channel(channel):
            return

        LOGGER.info("Channel %s is now %s", channel, result.channel)
        new_room = self._rooms.get(result.room_id)
        if new_room is None:
            new_room = self._rooms[result.room_id] = Room(result.room_id)
        old_room.move_channel(channel, result.channel, new_room)
        self._replay.pop(channel, None)
        self._replay[result.channel] = payload
        if not old_room.has_remaining_interest():
            self._rooms.pop(old_room.room_id, None)
