from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorPayload(BaseModel):
    """Error object returned by the server inside a response envelope."""

    model_config = ConfigDict(extra="allow")

    code: Optional[int] = None
    message: Optional[str] = ""
    id: Optional[str] = None
    props: Optional[List[Any]] = Field(default_factory=list)
    status: Optional[int] = None


class Envelope(BaseModel):
    """One JSON frame exchanged over the connection.

    The same shape serves as response, notification or keepalive frame depending
    on which fields are populated. ``room`` carries the request id on direct
    replies and the channel id on notifications.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    request_id: Optional[str] = Field(default=None, alias="requestId")
    room: Optional[str] = None
    result: Any = None
    error: Optional[ErrorPayload] = None
    scope: Optional[str] = None
    user: Optional[str] = None
    timestamp: Optional[Union[int, float]] = None
    type: Optional[str] = None
    event: Optional[str] = None
    volatile: Optional[Dict[str, Any]] = None
    controller: Optional[str] = None
    action: Optional[str] = None
    status: Optional[int] = None
    p: Optional[Literal[1, 2]] = None

    @property
    def is_keepalive(self) -> bool:
        return self.p is not None and self.model_fields_set == {"p"} and not self.model_extra

    @property
    def result_dict(self) -> Dict[str, Any]:
        return self.result if isinstance(self.result, dict) else {}


PING_FRAME: Dict[str, int] = {"p": 1}
PONG_FRAME: Dict[str, int] = {"p": 2}
