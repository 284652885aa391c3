"""Inbound frames accepted over the WebSocket, and the error frame sent back."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class AuthenticateFrame(BaseModel):
    type: Literal["authenticate"]
    token: str


class JoinFrame(BaseModel):
    type: Literal["join"]
    room_id: str


class LeaveFrame(BaseModel):
    type: Literal["leave"]
    room_id: str


class MessageFrame(BaseModel):
    """A message to fan out. ``message`` must at least carry ``content``."""

    type: Literal["message"]
    room_id: str
    message: dict[str, Any]


class TypingFrame(BaseModel):
    type: Literal["typing"]
    room_id: str


class StopTypingFrame(BaseModel):
    type: Literal["stop-typing"]
    room_id: str


InboundFrame = Annotated[
    AuthenticateFrame
    | JoinFrame
    | LeaveFrame
    | MessageFrame
    | TypingFrame
    | StopTypingFrame,
    Field(discriminator="type"),
]

frame_adapter: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)


class ErrorFrame(BaseModel):
    type: Literal["error"] = "error"
    code: str
    detail: str
