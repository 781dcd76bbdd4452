"""Inbound dispatch stages, in chain order."""

from .auth_handler import AuthenticationHandler
from .base import MessageHandler, SendFrame
from .ping_handler import PingHandler
from .request_handler import PendingRequest, RequestHandler

__all__ = [
    "AuthenticationHandler",
    "MessageHandler",
    "SendFrame",
    "PingHandler",
    "PendingRequest",
    "RequestHandler",
]
