from __future__ import annotations

import logging
from dataclasses import dataclass

from kuzzle_realtime.handlers.request_handler import RequestHandler
from kuzzle_realtime.models import Envelope

LOGGER = logging.getLogger(__name__)

INVALID_TOKEN_ERROR_ID = "security.token.invalid"
TOKEN_EXPIRED_TYPE = "TokenExpired"


@dataclass
class AuthenticationHandler:
    """Drops the stored token when the server reports it unusable.

    Never claims a frame: the request the error belongs to is still resolved
    by the request handler further down the chain.
    """

    request_handler: RequestHandler

    async def handle_message(self, envelope: Envelope) -> bool:
        invalid = envelope.error is not None and envelope.error.id == INVALID_TOKEN_ERROR_ID
        if invalid or envelope.type == TOKEN_EXPIRED_TYPE:
            if self.request_handler.context.auth_token:
                LOGGER.info("Server rejected the auth token; clearing it")
            self.request_handler.set_auth_token(None)
        return False
