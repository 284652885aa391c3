"""roomcast: Real-time room fan-out for chat applications.

This package re-exports the core components. The WebSocket transport lives
in ``roomcast.transport`` and metrics in ``roomcast.otel``.
"""

from roomcast.broadcaster import BroadcastObserver, DeliveryReport, RoomBroadcaster
from roomcast.config import GatewayConfig, TransportConfig
from roomcast.errors import (
    AlreadyAuthenticated,
    DuplicateConnection,
    NotAMember,
    RoomcastError,
    Unauthorized,
    UnknownConnection,
)
from roomcast.events import (
    ChatMessage,
    Connected,
    Event,
    MemberJoined,
    MemberLeft,
    MessageEvent,
    StopTyping,
    Typing,
)
from roomcast.gateway import ChatGateway
from roomcast.outbound import Outbound, PushResult
from roomcast.presence import PresenceSession
from roomcast.registry import Connection, ConnectionRegistry

__version__ = "0.1.0"

__all__ = [
    # core
    "ChatGateway",
    "ConnectionRegistry",
    "Connection",
    "RoomBroadcaster",
    "BroadcastObserver",
    "DeliveryReport",
    "PresenceSession",
    "Outbound",
    "PushResult",
    # config
    "GatewayConfig",
    "TransportConfig",
    # events
    "ChatMessage",
    "Event",
    "MessageEvent",
    "MemberJoined",
    "MemberLeft",
    "Typing",
    "StopTyping",
    "Connected",
    # errors
    "RoomcastError",
    "UnknownConnection",
    "DuplicateConnection",
    "Unauthorized",
    "NotAMember",
    "AlreadyAuthenticated",
]
