"""roomcast.transport: WebSocket transport built on FastAPI."""

from roomcast.transport.app import (
    Authenticator,
    MessageSink,
    create_app,
    serve_connection,
    trust_token,
)
from roomcast.transport.frames import ErrorFrame, InboundFrame

__all__ = [
    "Authenticator",
    "ErrorFrame",
    "InboundFrame",
    "MessageSink",
    "create_app",
    "serve_connection",
    "trust_token",
]
