"""Outbound event models.

Events form a closed union discriminated on ``type`` so that consumers can
handle every case exhaustively. Instances are frozen because one event object
is shared by every queue it is pushed to.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """A chat message that has already been persisted.

    The core passes it through untouched; unknown fields are preserved.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    sender_identity_id: str
    room_id: str
    content: str
    message_id: str = Field(default_factory=lambda: uuid4().hex)
    created_at: datetime = Field(default_factory=_utcnow)


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class MessageEvent(_Event):
    """A new message in a room."""

    type: Literal["message"] = "message"
    message: ChatMessage


class MemberJoined(_Event):
    """A connection of ``identity_id`` joined the room."""

    type: Literal["member-joined"] = "member-joined"
    room_id: str
    identity_id: str


class MemberLeft(_Event):
    """A connection of ``identity_id`` left the room or disconnected."""

    type: Literal["member-left"] = "member-left"
    room_id: str
    identity_id: str


class Typing(_Event):
    type: Literal["typing"] = "typing"
    room_id: str
    identity_id: str


class StopTyping(_Event):
    type: Literal["stop-typing"] = "stop-typing"
    room_id: str
    identity_id: str


class Connected(_Event):
    """Sent to a connection once it is authenticated."""

    type: Literal["connected"] = "connected"
    identity_id: str


Event = Annotated[
    MessageEvent | MemberJoined | MemberLeft | Typing | StopTyping | Connected,
    Field(discriminator="type"),
]

event_adapter: TypeAdapter[Event] = TypeAdapter(Event)
