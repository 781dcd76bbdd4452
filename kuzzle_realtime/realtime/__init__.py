from .realtime import Realtime, Unsubscribe, room_id_of
from .room import ChannelInterest, NotificationCallback, Room, map_notification

__all__ = [
    "ChannelInterest",
    "NotificationCallback",
    "Realtime",
    "Room",
    "Unsubscribe",
    "map_notification",
    "room_id_of",
]
