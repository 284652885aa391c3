"""ChatGateway - the facade transports and REST handlers call."""

import logging
from collections.abc import Mapping
from types import TracebackType
from typing import Any

from roomcast.broadcaster import BroadcastObserver, DeliveryReport, RoomBroadcaster
from roomcast.config import GatewayConfig
from roomcast.errors import NotAMember
from roomcast.events import (
    ChatMessage,
    Connected,
    Event,
    MemberLeft,
    MessageEvent,
    StopTyping,
    Typing,
)
from roomcast.outbound import Outbound
from roomcast.presence import PresenceSession
from roomcast.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ChatGateway:
    """Entry point for connection lifecycle, room membership and message fan-out.

    The gateway never touches storage. Producers persist a message first and
    then hand it to :meth:`send_message` or :meth:`broadcast`.

    Methods are synchronous and may be called from the event loop or from
    worker threads. Events pushed from a thread are handed to the loop that
    drains the receiving connection, so its reader wakes immediately.

    Example:
        async with ChatGateway() as gateway:
            outbound = gateway.on_connect("c1")
            gateway.on_authenticate("c1", "alice")
            gateway.join_chat("c1", "room-1")
            gateway.send_message("c1", "room-1", {"content": "hi"})
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        registry: ConnectionRegistry | None = None,
        observers: tuple[BroadcastObserver, ...] = (),
    ) -> None:
        self._config = config or GatewayConfig()
        self._registry = registry or ConnectionRegistry(self._config.outbound_buffer_size)
        self._broadcaster = RoomBroadcaster(self._registry, observers)
        self._presence = PresenceSession(self._registry)
        self._closed = False

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def broadcaster(self) -> RoomBroadcaster:
        return self._broadcaster

    @property
    def presence(self) -> PresenceSession:
        return self._presence

    def on_connect(self, connection_id: str) -> Outbound:
        """Register a not-yet-authenticated connection and return its queue."""
        self._check_open()
        connection = self._registry.register(connection_id)
        logger.info("Connection %s opened", connection_id)
        return connection.outbound

    def on_authenticate(self, connection_id: str, identity_id: str) -> None:
        self._check_open()
        if not self._presence.authenticate(connection_id, identity_id):
            return
        if self._config.personal_rooms:
            self._registry.join(connection_id, identity_id)
        outbound = self._registry.outbound_of(connection_id)
        if outbound is not None:
            outbound.push(Connected(identity_id=identity_id))

    def join_chat(self, connection_id: str, room_id: str) -> None:
        self._check_open()
        self._presence.require_authenticated(connection_id)
        if self._config.announce_presence:
            self._broadcaster.join_room(connection_id, room_id)
        else:
            self._registry.join(connection_id, room_id)

    def leave_chat(self, connection_id: str, room_id: str) -> None:
        self._check_open()
        self._presence.require_authenticated(connection_id)
        if self._config.announce_presence:
            self._broadcaster.leave_room(connection_id, room_id)
        else:
            self._registry.leave(connection_id, room_id)

    def require_member(self, connection_id: str, room_id: str) -> str:
        """Identity of an authenticated connection that has joined ``room_id``."""
        identity_id = self._presence.require_authenticated(connection_id)
        if room_id not in self._registry.rooms_of(connection_id):
            raise NotAMember(connection_id, room_id)
        return identity_id

    def send_message(
        self,
        connection_id: str,
        room_id: str,
        message: ChatMessage | Mapping[str, Any],
    ) -> DeliveryReport:
        """Fan a persisted message out to the room, excluding the sender.

        A mapping is completed with the room and the sender's identity.
        """
        self._check_open()
        identity_id = self.require_member(connection_id, room_id)
        if not isinstance(message, ChatMessage):
            message = ChatMessage.model_validate(
                {**message, "room_id": room_id, "sender_identity_id": identity_id}
            )
        return self._broadcaster.broadcast(
            room_id, MessageEvent(message=message), exclude_connection_id=connection_id
        )

    def typing(self, connection_id: str, room_id: str) -> DeliveryReport:
        self._check_open()
        identity_id = self.require_member(connection_id, room_id)
        return self._broadcaster.broadcast(
            room_id,
            Typing(room_id=room_id, identity_id=identity_id),
            exclude_connection_id=connection_id,
        )

    def stop_typing(self, connection_id: str, room_id: str) -> DeliveryReport:
        self._check_open()
        identity_id = self.require_member(connection_id, room_id)
        return self._broadcaster.broadcast(
            room_id,
            StopTyping(room_id=room_id, identity_id=identity_id),
            exclude_connection_id=connection_id,
        )

    def broadcast(
        self,
        room_id: str,
        message: ChatMessage,
        exclude_connection_id: str | None = None,
    ) -> DeliveryReport:
        """Fan out a message persisted by a producer that is not a connection."""
        self._check_open()
        return self._broadcaster.broadcast(
            room_id, MessageEvent(message=message), exclude_connection_id
        )

    def notify(self, identity_id: str, event: Event) -> DeliveryReport:
        """Deliver an event to every connection of an identity."""
        self._check_open()
        return self._broadcaster.broadcast_to_identity(identity_id, event)

    def on_disconnect(self, connection_id: str) -> None:
        """Tear down the connection. Safe to call more than once.

        The connection is unregistered before any departure is announced, so
        no delivery targets it once this returns.
        """
        connection = self._registry.unregister(connection_id)
        if connection is None:
            return
        logger.info("Connection %s closed", connection_id)
        identity_id = connection.identity_id
        if self._closed or not self._config.announce_presence or identity_id is None:
            return
        for room_id in sorted(connection.joined_rooms):
            if self._config.personal_rooms and room_id == identity_id:
                continue
            self._broadcaster.broadcast(
                room_id, MemberLeft(room_id=room_id, identity_id=identity_id)
            )

    async def close(self) -> None:
        """Close every outbound queue so transports stop draining."""
        if self._closed:
            return
        self._closed = True
        for connection_id in self._registry.connection_ids():
            outbound = self._registry.outbound_of(connection_id)
            if outbound is not None:
                outbound.close()
        logger.info("Gateway closed")

    def _check_open(self) -> None:
        if self._closed:
            msg = "Gateway is closed"
            raise RuntimeError(msg)

    async def __aenter__(self) -> "ChatGateway":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
