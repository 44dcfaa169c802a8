"""WebSocket endpoint — live log stream for subscribed consumers.

Each client connects to /ws and gets a welcome line. From then on it can
send {"subscribe": "<service>"} at any time; every record stored for that
service afterwards is pushed as JSON. There is no replay: only records
stored while the client is connected and subscribed are delivered.
"""

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from logstream.config import settings
from logstream.realtime.broadcast import Broadcaster
from logstream.realtime.connection import WebSocketConnection
from logstream.realtime.hub import get_broadcaster
from logstream.realtime.protocol import (
    SUBSCRIBE,
    MalformedControlMessage,
    parse_control_message,
    subscribed_ack,
    unsubscribed_ack,
)

logger = structlog.get_logger()
router = APIRouter()


def _frame_text(message: dict) -> str:
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


@router.websocket("/ws")
async def log_stream(
    websocket: WebSocket,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """Live log stream: welcome, then subscribe/unsubscribe control frames."""
    connection = WebSocketConnection(websocket)
    log = logger.bind(connection_id=connection.id)

    await connection.accept()
    broadcaster.connect(connection)
    log.info("stream.client_connected")

    try:
        await websocket.send_text(settings.welcome_message)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            try:
                control = parse_control_message(_frame_text(message))
            except MalformedControlMessage as e:
                log.info("stream.invalid_message", error=str(e))
                continue
            if control is None:
                continue

            if control.action == SUBSCRIBE:
                previous = broadcaster.subscribe(connection, control.channel)
                log.info("stream.subscribed", channel=control.channel, previous=previous)
                broadcaster.send(connection, subscribed_ack(control.channel))
            else:
                previous = broadcaster.unsubscribe(connection)
                if previous is not None:
                    log.info("stream.unsubscribed", channel=previous)
                    broadcaster.send(connection, unsubscribed_ack(previous))
    except WebSocketDisconnect:
        pass
    finally:
        # Registry entry goes first so no broadcast targets a dead socket.
        broadcaster.disconnect(connection)
        await connection.close()
        if websocket.client_state == WebSocketState.CONNECTED:
            await websocket.close()
        log.info("stream.client_disconnected")
