"""
Room broadcaster - connection to room subscriptions plus per-room multicast
"""
import asyncio
import logging
import uuid
from typing import Dict, Optional, Set

from fastapi import WebSocket

from classchat.core.config import settings

logger = logging.getLogger(__name__)

# Server error close code, sent to a socket dropped after a failed send
CLOSE_SEND_FAILED = 1011


class RoomBroadcaster:
    """
    Tracks which live connections are subscribed to which rooms

    A connection starts unsubscribed, may hold several room subscriptions at
    once, and loses all of them on disconnect. Nothing here is persisted;
    message history lives in the database.

    Delivery is best-effort and at-most-once: each recipient gets one send
    attempt bounded by ``send_timeout``, and a recipient that fails is dropped
    without affecting the others.
    """

    def __init__(self, send_timeout: Optional[float] = None):
        self.send_timeout = send_timeout or settings.WS_SEND_TIMEOUT

        # connection_id -> WebSocket
        self.connections: Dict[str, WebSocket] = {}
        # connection_id -> room ids
        self.subscriptions: Dict[str, Set[str]] = {}
        # room_id -> connection ids
        self.rooms: Dict[str, Set[str]] = {}

        # Optional cross-process relay (see RedisRoomRelay)
        self.relay = None

        # In-flight background fan-outs
        self._tasks: Set[asyncio.Task] = set()

        # Statistics
        self.messages_published = 0
        self.failed_deliveries = 0

    def register(self, websocket: WebSocket) -> str:
        """Track an accepted connection and return its id"""
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        self.subscriptions[connection_id] = set()

        logger.info(
            f"🔌 Connection registered. Total: {len(self.connections)}",
            extra={'connection_id': connection_id},
        )
        return connection_id

    def subscribe(self, connection_id: str, room_id: str) -> bool:
        """
        Subscribe a connection to a room

        Idempotent. Returns False when the connection isn't registered.
        """
        if connection_id not in self.connections:
            return False

        self.subscriptions[connection_id].add(room_id)
        self.rooms.setdefault(room_id, set()).add(connection_id)

        logger.info(
            f"📡 Subscribed to room {room_id} (local: {len(self.rooms[room_id])})",
            extra={'connection_id': connection_id, 'room_id': room_id},
        )
        return True

    def unsubscribe(self, connection_id: str, room_id: str):
        """Remove a single room subscription"""
        rooms = self.subscriptions.get(connection_id)
        if rooms is not None:
            rooms.discard(room_id)

        members = self.rooms.get(room_id)
        if members is not None:
            members.discard(connection_id)
            # Clean up empty rooms
            if not members:
                del self.rooms[room_id]

    def disconnect(self, connection_id: str):
        """Forget a connection and every room it was subscribed to"""
        for room_id in list(self.subscriptions.get(connection_id, ())):
            self.unsubscribe(connection_id, room_id)

        self.subscriptions.pop(connection_id, None)
        if self.connections.pop(connection_id, None) is not None:
            logger.info(
                f"✗ Connection removed. Total: {len(self.connections)}",
                extra={'connection_id': connection_id},
            )

    def rooms_for(self, connection_id: str) -> Set[str]:
        return set(self.subscriptions.get(connection_id, ()))

    def subscribers(self, room_id: str) -> Set[str]:
        return set(self.rooms.get(room_id, ()))

    async def publish(self, room_id: str, payload: dict, exclude: Optional[str] = None) -> int:
        """
        Publish a payload to everyone in a room except ``exclude``

        With a relay attached the payload goes through it, and every process
        (this one included) delivers to its own subscribers when it comes
        back. If the relay fails, local subscribers are still served.

        Returns:
            Number of local connections delivered to directly
        """
        self.messages_published += 1

        if self.relay is not None:
            try:
                await self.relay.publish(room_id, payload, exclude)
                return 0
            except Exception as e:
                logger.error(f"❌ Relay publish failed for room {room_id}, delivering locally: {e}")

        return await self.deliver(room_id, payload, exclude)

    def publish_nowait(self, room_id: str, payload: dict, exclude: Optional[str] = None) -> asyncio.Task:
        """Schedule a publish in the background; the caller never waits on recipients"""
        return self.spawn(self.publish(room_id, payload, exclude))

    def spawn(self, coro) -> asyncio.Task:
        """Run a fan-out coroutine as a tracked background task"""
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return

        exc = task.exception()
        if exc is not None:
            logger.error("❌ Background fan-out failed", exc_info=exc)

    async def drain(self):
        """Wait for every scheduled fan-out to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def deliver(self, room_id: str, payload: dict, exclude: Optional[str] = None) -> int:
        """Send to local subscribers of a room concurrently"""
        targets = [
            (connection_id, self.connections[connection_id])
            for connection_id in self.subscribers(room_id)
            if connection_id != exclude and connection_id in self.connections
        ]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._send(connection_id, websocket, payload) for connection_id, websocket in targets)
        )
        delivered = sum(1 for ok in results if ok)

        logger.debug(f"📢 Room {room_id}: delivered to {delivered}/{len(targets)} connections")
        return delivered

    async def _send(self, connection_id: str, websocket: WebSocket, payload: dict) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json(payload), timeout=self.send_timeout)
            return True
        except Exception as e:
            self.failed_deliveries += 1
            logger.warning(
                f"⚠️ Dropping connection after failed send: {e!r}",
                extra={'connection_id': connection_id},
            )
            self.disconnect(connection_id)
            await self._close(connection_id, websocket)
            return False

    async def _close(self, connection_id: str, websocket: WebSocket):
        """Close a dropped socket so the client knows to reconnect"""
        try:
            await asyncio.wait_for(websocket.close(code=CLOSE_SEND_FAILED), timeout=self.send_timeout)
        except Exception as e:
            # The peer is usually gone already
            logger.debug(f"Close after failed send did not complete: {e!r}", extra={'connection_id': connection_id})

    def get_stats(self) -> dict:
        """Connection and subscription counts for monitoring"""
        return {
            "active_connections": len(self.connections),
            "active_rooms": len(self.rooms),
            "subscriptions": sum(len(rooms) for rooms in self.subscriptions.values()),
            "messages_published": self.messages_published,
            "failed_deliveries": self.failed_deliveries,
            "pending_fanouts": len(self._tasks),
            "relay": self.relay is not None,
        }


# Global instance
room_broadcaster = RoomBroadcaster()
