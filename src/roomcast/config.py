"""Configuration dataclasses for the gateway and its transport."""

from dataclasses import dataclass

DEFAULT_OUTBOUND_BUFFER_SIZE = 100


@dataclass
class GatewayConfig:
    """Configuration for ChatGateway."""

    outbound_buffer_size: int = DEFAULT_OUTBOUND_BUFFER_SIZE
    """Events a connection may have pending before it is forcibly disconnected."""

    announce_presence: bool = True
    """Broadcast member-joined/member-left events on join, leave and disconnect."""

    personal_rooms: bool = True
    """Join each authenticated connection to a room named after its identity."""

    idle_timeout: float | None = None
    """Seconds without an inbound frame before the transport drops a connection."""

    def __post_init__(self) -> None:
        if self.outbound_buffer_size < 1:
            msg = "outbound_buffer_size must be at least 1"
            raise ValueError(msg)


@dataclass
class TransportConfig:
    """Configuration for the WebSocket transport."""

    path: str = "/ws"
    """Route the WebSocket endpoint is mounted on."""

    overflow_close_code: int = 1013
    """Close code sent to a peer whose outbound queue overflowed (try again later)."""

    shutdown_close_code: int = 1001
    """Close code sent to peers when the gateway shuts down (going away)."""
