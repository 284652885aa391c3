"""FastAPI WebSocket transport for ChatGateway."""

import logging
import os
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Annotated
from uuid import uuid4

import anyio
from fastapi import (
    FastAPI,
    HTTPException,
    Query,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from pydantic import ValidationError

from roomcast.broadcaster import DeliveryReport
from roomcast.config import TransportConfig
from roomcast.errors import RoomcastError, Unauthorized
from roomcast.events import ChatMessage
from roomcast.gateway import ChatGateway
from roomcast.outbound import Outbound
from roomcast.transport.frames import (
    AuthenticateFrame,
    ErrorFrame,
    InboundFrame,
    JoinFrame,
    LeaveFrame,
    MessageFrame,
    StopTypingFrame,
    TypingFrame,
    frame_adapter,
)

logger = logging.getLogger(__name__)

Authenticator = Callable[[str], Awaitable[str | None]]
"""Maps a client token to an identity id, or None if the token is invalid."""

MessageSink = Callable[[ChatMessage], Awaitable[ChatMessage]]
"""Persists a message before it is fanned out and returns the stored copy."""


async def trust_token(token: str) -> str | None:
    """Development authenticator: the token is the identity id."""
    return token or None


def create_app(
    gateway: ChatGateway,
    authenticator: Authenticator,
    config: TransportConfig | None = None,
    message_sink: MessageSink | None = None,
) -> FastAPI:
    """Build a FastAPI app serving ``gateway`` over a WebSocket route.

    The gateway is closed when the app shuts down.
    """
    config = config or TransportConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting roomcast transport on %s", config.path)
        async with gateway:
            yield
        logger.info("Stopped roomcast transport")

    app = FastAPI(title="roomcast", lifespan=lifespan)

    @app.websocket(config.path)
    async def chat_socket(websocket: WebSocket) -> None:
        await serve_connection(websocket, gateway, authenticator, config, message_sink)

    @app.post("/rooms/{room_id}/messages")
    async def broadcast_message(
        room_id: str,
        message: ChatMessage,
        exclude_connection_id: Annotated[str | None, Query()] = None,
    ) -> DeliveryReport:
        """Fan out a message some other service has already persisted."""
        if message.room_id != room_id:
            raise HTTPException(
                status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
                detail=f"Message belongs to room {message.room_id!r}, not {room_id!r}",
            )
        return gateway.broadcast(room_id, message, exclude_connection_id)

    @app.get("/health")
    async def health() -> dict[str, int | str]:
        return {"status": "ok", "connections": len(gateway.registry)}

    return app


async def serve_connection(
    websocket: WebSocket,
    gateway: ChatGateway,
    authenticator: Authenticator,
    config: TransportConfig,
    message_sink: MessageSink | None = None,
) -> None:
    """Run one WebSocket session until either side goes away."""
    await websocket.accept()
    connection_id = uuid4().hex
    outbound = gateway.on_connect(connection_id)
    session = _Session(websocket, gateway, connection_id, authenticator, message_sink)
    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_pump, websocket, outbound, config, tg.cancel_scope)
            await session.read_frames()
            tg.cancel_scope.cancel()
    finally:
        gateway.on_disconnect(connection_id)


async def _pump(
    websocket: WebSocket,
    outbound: Outbound,
    config: TransportConfig,
    scope: anyio.CancelScope,
) -> None:
    """Forward queued events to the peer until the queue is closed."""
    try:
        async for event in outbound:
            await websocket.send_json(event.model_dump(mode="json"))
        if outbound.overflowed:
            await websocket.close(code=config.overflow_close_code)
        else:
            await websocket.close(code=config.shutdown_close_code)
    except WebSocketDisconnect:
        pass
    scope.cancel()


class _Session:
    """Inbound side of one WebSocket session."""

    def __init__(
        self,
        websocket: WebSocket,
        gateway: ChatGateway,
        connection_id: str,
        authenticator: Authenticator,
        message_sink: MessageSink | None,
    ) -> None:
        self._websocket = websocket
        self._gateway = gateway
        self._connection_id = connection_id
        self._authenticator = authenticator
        self._message_sink = message_sink

    async def read_frames(self) -> None:
        idle_timeout = self._gateway.config.idle_timeout
        while True:
            try:
                with anyio.fail_after(idle_timeout):
                    message = await self._websocket.receive()
            except TimeoutError:
                logger.info("Connection %s idle, closing", self._connection_id)
                await self._websocket.close(code=status.WS_1000_NORMAL_CLOSURE)
                return
            except WebSocketDisconnect:
                return
            if message["type"] == "websocket.disconnect":
                return

            # Binary frames carry the same JSON as text frames
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                await self._send_error("invalid-frame", "empty frame")
                continue

            try:
                frame = frame_adapter.validate_json(raw)
                await self._dispatch(frame)
            except ValidationError as e:
                await self._send_error("invalid-frame", str(e))
            except RoomcastError as e:
                await self._send_error(e.code, str(e))
            except Exception:
                logger.exception("Frame handling failed on %s", self._connection_id)
                raise

    async def _dispatch(self, frame: InboundFrame) -> None:
        gateway = self._gateway
        connection_id = self._connection_id
        if isinstance(frame, AuthenticateFrame):
            identity_id = await self._authenticator(frame.token)
            if identity_id is None:
                raise Unauthorized(connection_id, "presenting an invalid token")
            gateway.on_authenticate(connection_id, identity_id)
        elif isinstance(frame, JoinFrame):
            gateway.join_chat(connection_id, frame.room_id)
        elif isinstance(frame, LeaveFrame):
            gateway.leave_chat(connection_id, frame.room_id)
        elif isinstance(frame, MessageFrame):
            identity_id = gateway.require_member(connection_id, frame.room_id)
            message = ChatMessage.model_validate(
                {
                    **frame.message,
                    "room_id": frame.room_id,
                    "sender_identity_id": identity_id,
                }
            )
            if self._message_sink is not None:
                message = await self._message_sink(message)
            gateway.send_message(connection_id, frame.room_id, message)
        elif isinstance(frame, TypingFrame):
            gateway.typing(connection_id, frame.room_id)
        elif isinstance(frame, StopTypingFrame):
            gateway.stop_typing(connection_id, frame.room_id)

    async def _send_error(self, code: str, detail: str) -> None:
        logger.debug("Rejected frame on %s: %s", self._connection_id, code)
        frame = ErrorFrame(code=code, detail=detail)
        await self._websocket.send_json(frame.model_dump(mode="json"))


def main() -> None:
    """Run the transport with uvicorn, trusting tokens as identities."""
    import uvicorn

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    logger.warning("Using the development authenticator: tokens are identities")
    app = create_app(ChatGateway(), authenticator=trust_token)
    uvicorn.run(
        app,
        host=os.environ.get("ROOMCAST_HOST", "127.0.0.1"),
        port=int(os.environ.get("ROOMCAST_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
