"""
WebSocket endpoint for real-time room updates
"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from classchat.core.exceptions import ClassChatError
from classchat.services import chat_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


async def send_error(websocket: WebSocket, message: str):
    await websocket.send_json({"type": "error", "message": message})


async def handle_signal(websocket: WebSocket, connection_id: str, data: dict):
    """Dispatch one client signal"""
    signal = data.get("type")

    if signal == "join_room" or signal == "leave_room":
        room_id = data.get("room_id")
        if not isinstance(room_id, str) or not room_id.strip():
            await send_error(websocket, "Missing 'room_id' field")
            return

        if signal == "join_room":
            if not chat_service.join_room(connection_id, room_id):
                # Dropped by the broadcaster after a failed send
                await send_error(websocket, "Connection is no longer registered, please reconnect")
                return
            await websocket.send_json({"type": "room_joined", "room_id": room_id})
        else:
            chat_service.leave_room(connection_id, room_id)
            await websocket.send_json({"type": "room_left", "room_id": room_id})

    elif signal == "send_message":
        # The client already persisted the message over HTTP; only its id is
        # trusted, the content is reloaded from storage
        try:
            message_id = int(data.get("message_id"))
        except (TypeError, ValueError):
            await send_error(websocket, "Missing or invalid 'message_id' field")
            return

        try:
            await chat_service.announce_persisted(message_id, origin=connection_id)
        except ClassChatError as e:
            await send_error(websocket, e.message)

    elif signal == "ping":
        await websocket.send_json({"type": "pong"})

    else:
        await send_error(websocket, f"Unknown signal type: {signal}")


@router.websocket("/ws")
async def classroom_websocket(websocket: WebSocket):
    """
    Real-time channel

    Clients subscribe to classroom rooms (or "global") with join_room and
    receive every message stored in those rooms as receive_message.
    """
    await websocket.accept()
    connection_id = chat_service.broadcaster.register(websocket)
    await websocket.send_json({"type": "connected", "connection_id": connection_id})

    try:
        while True:
            raw = await websocket.receive_text()

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await send_error(websocket, "Invalid JSON")
                continue

            if not isinstance(data, dict):
                await send_error(websocket, "Signal must be a JSON object")
                continue

            await handle_signal(websocket, connection_id, data)

    except WebSocketDisconnect:
        logger.info("✗ Client disconnected", extra={'connection_id': connection_id})
    except RuntimeError as e:
        # Socket already closed by the broadcaster after a failed send
        logger.info(f"✗ Connection closed server-side: {e}", extra={'connection_id': connection_id})
    finally:
        chat_service.broadcaster.disconnect(connection_id)
