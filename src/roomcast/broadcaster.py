"""RoomBroadcaster - fan-out of one event to the members of a room."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from roomcast.events import Event, MemberJoined, MemberLeft
from roomcast.outbound import PushResult
from roomcast.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of one broadcast.

    Partial delivery is normal: connections that went away or overflowed are
    counted, never raised.
    """

    attempted: int = 0
    delivered: int = 0
    dropped_disconnected: int = 0
    dropped_overflow: int = 0

    @property
    def dropped(self) -> int:
        return self.dropped_disconnected + self.dropped_overflow


BroadcastObserver = Callable[[str, Event, DeliveryReport], None]


class RoomBroadcaster:
    """Delivers events to every member of a room except an excluded connection.

    Delivery is at-most-once and best effort. Events pushed by one caller to
    one room arrive in every member's queue in the order they were pushed.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        observers: Iterable[BroadcastObserver] = (),
    ) -> None:
        self._registry = registry
        self._observers: list[BroadcastObserver] = list(observers)

    def add_observer(self, observer: BroadcastObserver) -> None:
        """Register a callback invoked with (room_id, event, report) after each broadcast."""
        self._observers.append(observer)

    def broadcast(
        self,
        room_id: str,
        event: Event,
        exclude_connection_id: str | None = None,
    ) -> DeliveryReport:
        members = self._registry.members_of(room_id)
        members.discard(exclude_connection_id)  # type: ignore[arg-type]
        return self._deliver(room_id, event, members)

    def broadcast_to_identity(
        self,
        identity_id: str,
        event: Event,
        exclude_connection_id: str | None = None,
    ) -> DeliveryReport:
        """Deliver to every connection of an identity, e.g. all of a user's devices."""
        targets = self._registry.connections_of(identity_id)
        targets.discard(exclude_connection_id)  # type: ignore[arg-type]
        return self._deliver(identity_id, event, targets)

    def join_room(self, connection_id: str, room_id: str) -> bool:
        """Join and announce member-joined to the room, joiner included."""
        connection = self._registry.join(connection_id, room_id)
        if connection is None:
            return False
        if connection.identity_id is not None:
            self.broadcast(
                room_id,
                MemberJoined(room_id=room_id, identity_id=connection.identity_id),
            )
        return True

    def leave_room(self, connection_id: str, room_id: str) -> bool:
        """Leave and announce member-left to the remaining members."""
        connection = self._registry.leave(connection_id, room_id)
        if connection is None:
            return False
        if connection.identity_id is not None:
            self.broadcast(
                room_id,
                MemberLeft(room_id=room_id, identity_id=connection.identity_id),
            )
        return True

    def _deliver(self, target: str, event: Event, connection_ids: set[str]) -> DeliveryReport:
        delivered = dropped_disconnected = dropped_overflow = 0
        for connection_id in connection_ids:
            outbound = self._registry.outbound_of(connection_id)
            if outbound is None:
                dropped_disconnected += 1
                continue
            result = outbound.push(event)
            if result is PushResult.DELIVERED:
                delivered += 1
            elif result is PushResult.OVERFLOW:
                dropped_overflow += 1
            else:
                dropped_disconnected += 1

        report = DeliveryReport(
            attempted=len(connection_ids),
            delivered=delivered,
            dropped_disconnected=dropped_disconnected,
            dropped_overflow=dropped_overflow,
        )
        logger.debug("Broadcast %s to %s: %s", event.type, target, report)
        for observer in self._observers:
            observer(target, event, report)
        return report
