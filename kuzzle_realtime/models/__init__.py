from .envelope import PING_FRAME, PONG_FRAME, Envelope, ErrorPayload
from .notifications import (
    DocumentNotification,
    DocumentTarget,
    Notification,
    PresenceNotification,
    PresenceTarget,
    PublishTarget,
    SubscriptionResult,
    SubscriptionScopeInterest,
    SubscriptionUserInterest,
)

__all__ = [
    "PING_FRAME",
    "PONG_FRAME",
    "Envelope",
    "ErrorPayload",
    "DocumentNotification",
    "DocumentTarget",
    "Notification",
    "PresenceNotification",
    "PresenceTarget",
    "PublishTarget",
    "SubscriptionResult",
    "SubscriptionScopeInterest",
    "SubscriptionUserInterest",
]
