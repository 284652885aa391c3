"""Shared fixtures for roomcast tests."""

import pytest

from roomcast import ChatGateway, ConnectionRegistry, GatewayConfig


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def gateway() -> ChatGateway:
    return ChatGateway(GatewayConfig(personal_rooms=False))


@pytest.fixture
def connect(gateway: ChatGateway):
    """Open and authenticate a connection, discarding its connected event."""

    def _connect(connection_id: str, identity_id: str) -> str:
        outbound = gateway.on_connect(connection_id)
        gateway.on_authenticate(connection_id, identity_id)
        outbound.drain_nowait()
        return connection_id

    return _connect
