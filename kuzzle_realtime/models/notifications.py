from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SubscriptionScopeInterest = Literal["all", "in", "out"]
SubscriptionUserInterest = Literal["all", "in", "out"]


class DocumentTarget(BaseModel):
    """Index/collection pair plus the document scope a subscription listens to."""

    model_config = ConfigDict(extra="allow")

    index: str
    collection: str
    scope: SubscriptionScopeInterest = "all"


class PresenceTarget(BaseModel):
    """Index/collection pair plus the user events a subscription listens to."""

    model_config = ConfigDict(extra="allow")

    index: str
    collection: str
    users: SubscriptionUserInterest = "all"


class PublishTarget(BaseModel):
    model_config = ConfigDict(extra="allow")

    index: str
    collection: str


class SubscriptionResult(BaseModel):
    """Result of a successful ``realtime:subscribe`` call.

    ``channel`` has the form ``"{room_id}-{hash}"``.
    """

    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")
    channel: str


class DocumentNotification(BaseModel):
    """Document change or ephemeral publish delivered to subscribers.

    ``type`` is ``"ephemeral"`` for publish events (no persisted ``_id`` in the
    payload) and ``"document"`` otherwise, in which case the payload carries
    ``_id``, ``_source`` and, on partial updates, ``_updatedFields``.
    """

    type: Literal["document", "ephemeral"]
    event: Optional[str] = None
    scope: Optional[str] = None
    timestamp: Optional[Union[int, float]] = None
    payload: Any = None

    @property
    def updated_fields(self) -> List[str]:
        if isinstance(self.payload, dict):
            return list(self.payload.get("_updatedFields") or [])
        return []


class PresenceNotification(BaseModel):
    """A user entered (``scope == "in"``) or left (``"out"``) the room."""

    scope: Optional[str] = None
    current_users_in_room: Optional[int] = None
    timestamp: Optional[Union[int, float]] = None
    volatile: Dict[str, Any] = Field(default_factory=dict)


Notification = Union[DocumentNotification, PresenceNotification]
