"""Errors raised by the fan-out core.

All of them are local, recoverable conditions reported to the caller.
Partial broadcast failures are never raised; see DeliveryReport.
"""


class RoomcastError(Exception):
    """Base class for gateway errors.

    ``code`` is a stable identifier the transport sends to the peer.
    """

    code = "error"


class UnknownConnection(RoomcastError):
    """The connection was never registered or has been unregistered."""

    code = "unknown-connection"

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id!r} is not registered")


class DuplicateConnection(RoomcastError):
    """A connection with this id is already registered."""

    code = "duplicate-connection"

    def __init__(self, connection_id: str) -> None:
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id!r} is already registered")


class Unauthorized(RoomcastError):
    """The connection has not completed authentication."""

    code = "unauthorized"

    def __init__(self, connection_id: str, reason: str = "not authenticated") -> None:
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id!r} is {reason}")


class NotAMember(Unauthorized):
    """The connection is authenticated but has not joined the room."""

    code = "not-a-member"

    def __init__(self, connection_id: str, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(connection_id, f"not a member of room {room_id!r}")


class AlreadyAuthenticated(RoomcastError):
    """The connection is already bound to a different identity."""

    code = "already-authenticated"

    def __init__(self, connection_id: str, identity_id: str) -> None:
        self.connection_id = connection_id
        self.identity_id = identity_id
        super().__init__(
            f"Connection {connection_id!r} is already authenticated as {identity_id!r}"
        )
