"""Session metadata shared by every outgoing request."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

INSTANCE_ID_KEY = "sdkInstanceId"


class ConnectionState(enum.Enum):
    IDLE = "IDLE"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    STOPPED = "STOPPED"


@dataclass
class SessionContext:
    """Ambient metadata read at send time.

    ``instance_id`` is generated once per client and echoed back by the server
    in notification volatile data, which is how self-authored notifications are
    recognised.
    """

    instance_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    auth_token: Optional[str] = field(default=None, repr=False)
    volatile: Dict[str, Any] = field(default_factory=dict)
    state: ConnectionState = ConnectionState.IDLE
    last_transition_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    def transition(self, next_state: ConnectionState) -> None:
        self.state = next_state
        self.last_transition_at = datetime.now(tz=timezone.utc)

    def outgoing_volatile(self) -> Dict[str, Any]:
        return {**self.volatile, INSTANCE_ID_KEY: self.instance_id}

    def is_from_self(self, volatile: Optional[Dict[str, Any]]) -> bool:
        return bool(volatile) and volatile.get(INSTANCE_ID_KEY) == self.instance_id
