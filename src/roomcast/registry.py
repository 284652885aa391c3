"""ConnectionRegistry - which connections exist and which rooms they are in."""

import logging
import threading
from dataclasses import dataclass, field

from roomcast.config import DEFAULT_OUTBOUND_BUFFER_SIZE
from roomcast.errors import AlreadyAuthenticated, DuplicateConnection, UnknownConnection
from roomcast.outbound import Outbound

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """One live transport session."""

    connection_id: str
    outbound: Outbound
    identity_id: str | None = None
    joined_rooms: set[str] = field(default_factory=set)


class ConnectionRegistry:
    """Single source of truth for connections, identities and room membership.

    Every operation takes the same lock, so register/unregister/join/leave and
    the snapshot readers observe one linearizable order. Nothing under the lock
    awaits or performs I/O.
    """

    def __init__(self, buffer_size: int = DEFAULT_OUTBOUND_BUFFER_SIZE) -> None:
        self._buffer_size = buffer_size
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}
        self._identities: dict[str, set[str]] = {}

    def register(self, connection_id: str, identity_id: str | None = None) -> Connection:
        """Record a new live connection, optionally already bound to an identity."""
        with self._lock:
            if connection_id in self._connections:
                raise DuplicateConnection(connection_id)
            connection = Connection(
                connection_id=connection_id,
                outbound=Outbound(connection_id, self._buffer_size),
            )
            self._connections[connection_id] = connection
            if identity_id is not None:
                self._bind_locked(connection, identity_id)
        logger.debug("Registered connection %s", connection_id)
        return connection

    def unregister(self, connection_id: str) -> Connection | None:
        """Remove a connection and all of its memberships.

        Returns the removed connection, with ``joined_rooms`` as they were at
        removal, or None if it was already gone.
        """
        with self._lock:
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return None
            for room_id in connection.joined_rooms:
                self._discard(self._rooms, room_id, connection_id)
            if connection.identity_id is not None:
                self._discard(self._identities, connection.identity_id, connection_id)
        connection.outbound.close()
        logger.debug("Unregistered connection %s", connection_id)
        return connection

    def bind(self, connection_id: str, identity_id: str) -> bool:
        """Bind a connection to an identity.

        Returns False if it was already bound to the same identity.
        """
        with self._lock:
            connection = self._get_locked(connection_id)
            if connection.identity_id == identity_id:
                return False
            if connection.identity_id is not None:
                raise AlreadyAuthenticated(connection_id, connection.identity_id)
            self._bind_locked(connection, identity_id)
        return True

    def join(self, connection_id: str, room_id: str) -> Connection | None:
        """Add a room to the connection's memberships.

        Returns the connection if its memberships changed, None if it was
        already in the room.
        """
        with self._lock:
            connection = self._get_locked(connection_id)
            if room_id in connection.joined_rooms:
                return None
            connection.joined_rooms.add(room_id)
            self._rooms.setdefault(room_id, set()).add(connection_id)
        return connection

    def leave(self, connection_id: str, room_id: str) -> Connection | None:
        """Remove a room from the connection's memberships.

        Returns the connection if its memberships changed, None if it was not
        in the room.
        """
        with self._lock:
            connection = self._get_locked(connection_id)
            if room_id not in connection.joined_rooms:
                return None
            connection.joined_rooms.discard(room_id)
            self._discard(self._rooms, room_id, connection_id)
        return connection

    def get(self, connection_id: str) -> Connection | None:
        with self._lock:
            return self._connections.get(connection_id)

    def members_of(self, room_id: str) -> set[str]:
        with self._lock:
            return set(self._rooms.get(room_id, ()))

    def connections_of(self, identity_id: str) -> set[str]:
        with self._lock:
            return set(self._identities.get(identity_id, ()))

    def rooms_of(self, connection_id: str) -> set[str]:
        with self._lock:
            return set(self._get_locked(connection_id).joined_rooms)

    def identity_of(self, connection_id: str) -> str | None:
        with self._lock:
            return self._get_locked(connection_id).identity_id

    def outbound_of(self, connection_id: str) -> Outbound | None:
        """Outbound queue of a live connection, or None if it is gone."""
        with self._lock:
            connection = self._connections.get(connection_id)
            return connection.outbound if connection is not None else None

    def connection_ids(self) -> list[str]:
        with self._lock:
            return list(self._connections)

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._connections

    def _get_locked(self, connection_id: str) -> Connection:
        connection = self._connections.get(connection_id)
        if connection is None:
            raise UnknownConnection(connection_id)
        return connection

    def _bind_locked(self, connection: Connection, identity_id: str) -> None:
        connection.identity_id = identity_id
        self._identities.setdefault(identity_id, set()).add(connection.connection_id)

    @staticmethod
    def _discard(index: dict[str, set[str]], key: str, connection_id: str) -> None:
        members = index.get(key)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del index[key]
