"""PresenceSession - binds authenticated identities to connections."""

import logging

from roomcast.errors import Unauthorized
from roomcast.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class PresenceSession:
    """Bridges external authentication results to connection identity.

    One identity may hold any number of connections (multi-device); one
    connection holds at most one identity for its lifetime.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    def authenticate(self, connection_id: str, identity_id: str) -> bool:
        """Bind the connection. Returns False if it was already bound to this identity."""
        bound = self._registry.bind(connection_id, identity_id)
        if bound:
            logger.info("Connection %s authenticated as %s", connection_id, identity_id)
        return bound

    def current_identity(self, connection_id: str) -> str | None:
        """Identity bound to the connection, or None if not authenticated."""
        return self._registry.identity_of(connection_id)

    def require_authenticated(self, connection_id: str) -> str:
        identity_id = self._registry.identity_of(connection_id)
        if identity_id is None:
            raise Unauthorized(connection_id)
        return identity_id
