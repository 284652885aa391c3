"""Tests for ConnectionRegistry."""

import pytest

from roomcast import (
    AlreadyAuthenticated,
    ConnectionRegistry,
    DuplicateConnection,
    UnknownConnection,
)


class TestRegister:
    """Tests for registering and unregistering connections."""

    def test_register_creates_connection(self, registry: ConnectionRegistry) -> None:
        """Register returns the new connection and makes it visible."""
        connection = registry.register("c1", "alice")
        assert connection.connection_id == "c1"
        assert connection.identity_id == "alice"
        assert connection.joined_rooms == set()
        assert "c1" in registry
        assert len(registry) == 1
        assert registry.get("c1") is connection

    def test_register_without_identity(self, registry: ConnectionRegistry) -> None:
        """A connection may be registered before it is authenticated."""
        registry.register("c1")
        assert registry.identity_of("c1") is None
        assert registry.connections_of("alice") == set()

    def test_duplicate_register_raises(self, registry: ConnectionRegistry) -> None:
        """Registering the same id twice raises DuplicateConnection."""
        registry.register("c1")
        with pytest.raises(DuplicateConnection) as exc_info:
            registry.register("c1")
        assert exc_info.value.connection_id == "c1"

    def test_unregister_is_idempotent(self, registry: ConnectionRegistry) -> None:
        """Unregistering an absent connection returns None."""
        registry.register("c1")
        assert registry.unregister("c1") is not None
        assert registry.unregister("c1") is None
        assert registry.unregister("never-seen") is None
        assert registry.get("c1") is None

    def test_unregister_closes_outbound(self, registry: ConnectionRegistry) -> None:
        """Unregistering closes the connection's outbound queue."""
        connection = registry.register("c1")
        registry.unregister("c1")
        assert connection.outbound.closed
        assert registry.outbound_of("c1") is None


class TestMembership:
    """Tests for room membership."""

    def test_join_is_idempotent(self, registry: ConnectionRegistry) -> None:
        """A second join of the same room changes nothing."""
        registry.register("c1")
        assert registry.join("c1", "room")
        assert not registry.join("c1", "room")
        assert registry.members_of("room") == {"c1"}

    def test_join_returns_connection_with_identity(
        self, registry: ConnectionRegistry
    ) -> None:
        """A join that changes membership returns the connection it changed."""
        registered = registry.register("c1", "alice")

        joined = registry.join("c1", "room")

        assert joined is registered
        assert joined.identity_id == "alice"
        assert registry.join("c1", "room") is None

    def test_leave_returns_connection_with_identity(
        self, registry: ConnectionRegistry
    ) -> None:
        """A leave that changes membership returns the connection it changed."""
        registered = registry.register("c1", "alice")
        registry.join("c1", "room")

        left = registry.leave("c1", "room")

        assert left is registered
        assert left.identity_id == "alice"
        assert registry.leave("c1", "room") is None

    def test_leave_when_absent_is_noop(self, registry: ConnectionRegistry) -> None:
        """Leaving a room never joined is a no-op."""
        registry.register("c1")
        assert not registry.leave("c1", "room")
        assert registry.members_of("room") == set()

    @pytest.mark.parametrize(
        ("calls", "member"),
        [
            (["join"], True),
            (["join", "join"], True),
            (["join", "leave"], False),
            (["leave", "join"], True),
            (["join", "leave", "leave"], False),
            (["join", "join", "leave"], False),
            (["leave", "leave"], False),
        ],
    )
    def test_final_membership_follows_last_call(
        self, registry: ConnectionRegistry, calls: list[str], member: bool
    ) -> None:
        """Membership after any join/leave sequence matches the last call."""
        registry.register("c1")
        for call in calls:
            getattr(registry, call)("c1", "room")
        assert ("c1" in registry.members_of("room")) is member
        assert ("room" in registry.rooms_of("c1")) is member

    def test_join_unknown_connection_raises(self, registry: ConnectionRegistry) -> None:
        """Joining with an unregistered connection raises UnknownConnection."""
        with pytest.raises(UnknownConnection):
            registry.join("ghost", "room")

    def test_join_after_unregister_raises(self, registry: ConnectionRegistry) -> None:
        """A removed connection cannot join again."""
        registry.register("c1")
        registry.unregister("c1")
        with pytest.raises(UnknownConnection):
            registry.join("c1", "room")

    def test_leave_unknown_connection_raises(self, registry: ConnectionRegistry) -> None:
        """Leaving with an unregistered connection raises UnknownConnection."""
        with pytest.raises(UnknownConnection):
            registry.leave("ghost", "room")

    def test_unregister_removes_every_membership(
        self, registry: ConnectionRegistry
    ) -> None:
        """Unregister drops the connection from all of its rooms at once."""
        registry.register("c1", "alice")
        registry.register("c2", "bob")
        for room in ("r1", "r2", "r3"):
            registry.join("c1", room)
        registry.join("c2", "r1")

        removed = registry.unregister("c1")

        assert removed is not None
        assert removed.joined_rooms == {"r1", "r2", "r3"}
        assert registry.members_of("r1") == {"c2"}
        assert registry.members_of("r2") == set()
        assert registry.members_of("r3") == set()
        assert registry.connections_of("alice") == set()

    def test_members_of_returns_snapshot(self, registry: ConnectionRegistry) -> None:
        """Mutating a members snapshot does not touch the registry."""
        registry.register("c1")
        registry.join("c1", "room")
        snapshot = registry.members_of("room")
        snapshot.add("intruder")
        assert registry.members_of("room") == {"c1"}


class TestIdentity:
    """Tests for identity binding."""

    def test_connections_of_identity(self, registry: ConnectionRegistry) -> None:
        """An identity can hold several connections."""
        registry.register("phone", "alice")
        registry.register("laptop", "alice")
        registry.register("c3", "bob")
        assert registry.connections_of("alice") == {"phone", "laptop"}

    def test_bind_same_identity_twice(self, registry: ConnectionRegistry) -> None:
        """Binding the same identity again reports no change."""
        registry.register("c1")
        assert registry.bind("c1", "alice")
        assert not registry.bind("c1", "alice")
        assert registry.connections_of("alice") == {"c1"}

    def test_bind_different_identity_raises(self, registry: ConnectionRegistry) -> None:
        """Rebinding to another identity raises and keeps the first."""
        registry.register("c1", "alice")
        with pytest.raises(AlreadyAuthenticated) as exc_info:
            registry.bind("c1", "mallory")
        assert exc_info.value.identity_id == "alice"
        assert registry.identity_of("c1") == "alice"

    def test_bind_unknown_connection_raises(self, registry: ConnectionRegistry) -> None:
        """Binding an unregistered connection raises UnknownConnection."""
        with pytest.raises(UnknownConnection):
            registry.bind("ghost", "alice")
