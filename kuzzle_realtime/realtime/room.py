from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from kuzzle_realtime.models import DocumentNotification, Envelope, Notification, PresenceNotification

LOGGER = logging.getLogger(__name__)

NotificationCallback = Callable[[Any], Any]


@dataclass(eq=False)
class ChannelInterest:
    """One observer registered on a channel; compared by identity."""

    notify: NotificationCallback
    interested_in_self: bool = True
    room_id: str = ""
    channel: str = ""


def map_notification(envelope: Envelope) -> Optional[Notification]:
    """Turn a raw notification envelope into the object handed to observers."""

    if envelope.type == "document":
        return DocumentNotification(
            type="ephemeral" if envelope.event == "publish" else "document",
            event=envelope.event,
            scope=envelope.scope,
            timestamp=envelope.timestamp,
            payload=envelope.result,
        )
    if envelope.type == "user":
        return PresenceNotification(
            scope=envelope.user or envelope.scope,
            current_users_in_room=envelope.result_dict.get("count"),
            timestamp=envelope.timestamp,
            volatile=envelope.volatile or {},
        )
    return None


@dataclass
class Room:
    """Observers of one server room, grouped by channel.

    A channel entry exists only while it has at least one observer; the owning
    registry drops the room once ``has_remaining_interest`` turns false.
    """

    room_id: str

    _channels: Dict[str, List[ChannelInterest]] = field(default_factory=dict, init=False, repr=False)
    _callback_tasks: set[asyncio.Task[Any]] = field(default_factory=set, init=False, repr=False)

    def add_observer(self, channel: str, interest: ChannelInterest) -> None:
        interest.room_id = self.room_id
        interest.channel = channel
        self._channels.setdefault(channel, []).append(interest)

    def remove_observer(self, channel: str, interest: ChannelInterest) -> bool:
        observers = self._channels.get(channel)
        if not observers:
            return False
        for index, candidate in enumerate(observers):
            if candidate is interest:
                del observers[index]
                break
        else:
            return False
        if not observers:
            del self._channels[channel]
        return True

    def move_channel(self, old_channel: str, new_channel: str, target: Optional[Room] = None) -> None:
        """Re-key a channel's observers, optionally into another room."""

        observers = self._channels.pop(old_channel, None)
        if not observers:
            return
        destination = target or self
        for interest in observers:
            interest.room_id = destination.room_id
            interest.channel = new_channel
        destination._channels.setdefault(new_channel, []).extend(observers)

    def has_channel(self, channel: str) -> bool:
        return bool(self._channels.get(channel))

    def has_remaining_interest(self) -> bool:
        return bool(self._channels)

    @property
    def total(self) -> int:
        return sum(len(observers) for observers in self._channels.values())

    def infos(self) -> Dict[str, Any]:
        return {
            "room_id": self.room_id,
            "total": self.total,
            "per_channel": {channel: len(observers) for channel, observers in self._channels.items()},
        }

    def notify_channel(self, channel: str, envelope: Envelope, *, from_self: bool) -> bool:
        observers = self._channels.get(channel)
        if not observers:
            return False
        notification = map_notification(envelope)
        if notification is None:
            LOGGER.debug("Ignoring %s notification on channel %s", envelope.type, channel)
            return True
        for interest in list(observers):
            if from_self and not interest.interested_in_self:
                continue
            self._invoke(interest, notification)
        return True

    def _invoke(self, interest: ChannelInterest, notification: Notification) -> None:
        try:
            result = interest.notify(notification)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Notification callback failed in room %s", self.room_id)
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task[Any]) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Notification callback failed in room %s", self.room_id, exc_info=exc)
