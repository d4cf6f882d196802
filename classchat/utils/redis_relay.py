"""
Redis Pub/Sub relay so room fan-out reaches connections held by other processes

Every process subscribes to the ``room:*`` pattern. A publish in any process
lands on ``room:{room_id}`` and each process delivers it to its own local
subscribers, skipping the originating connection.
"""
import asyncio
import json
import logging
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "room:"
ANNOUNCED_PREFIX = "announced:"


class RedisRoomRelay:
    """Bridges a RoomBroadcaster to Redis Pub/Sub"""

    def __init__(self, broadcaster, redis_url: str):
        self.broadcaster = broadcaster
        self.redis_url = redis_url
        self.redis = None           # Redis client for publishing
        self.pubsub = None          # Redis Pub/Sub client for listening
        self._listener: Optional[asyncio.Task] = None

        # Statistics
        self.messages_received = 0

    @staticmethod
    def channel_name(room_id: str) -> str:
        return f"{CHANNEL_PREFIX}{room_id}"

    async def connect(self):
        """Open connections, subscribe to all rooms and start listening"""
        logger.info("🔌 [Relay] Connecting to Redis...")

        self.redis = redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        self.pubsub = self.redis.pubsub()
        await self.pubsub.psubscribe(f"{CHANNEL_PREFIX}*")

        self._listener = asyncio.create_task(self._listen_loop())
        self.broadcaster.relay = self

        logger.info("✅ [Relay] Connected to Redis")

    async def disconnect(self):
        """Clean shutdown"""
        if self.broadcaster.relay is self:
            self.broadcaster.relay = None

        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None

        if self.pubsub is not None:
            await self.pubsub.punsubscribe()
            await self.pubsub.aclose()

        if self.redis is not None:
            await self.redis.aclose()

        logger.info("🔌 [Relay] Disconnected from Redis")

    async def publish(self, room_id: str, payload: dict, exclude: Optional[str] = None):
        """Publish a room payload for every process to deliver"""
        envelope = json.dumps({"exclude": exclude, "payload": payload})
        receivers = await self.redis.publish(self.channel_name(room_id), envelope)

        logger.debug(f"📢 [Relay] Published to {self.channel_name(room_id)} ({receivers} processes)")

    async def claim_announcement(self, message_id: int, ttl: int) -> bool:
        """
        Claim the one publish a message is allowed, across all processes

        SET NX succeeds for exactly one caller until the key expires.
        """
        claimed = await self.redis.set(f"{ANNOUNCED_PREFIX}{message_id}", 1, nx=True, ex=ttl)
        return bool(claimed)

    async def handle_message(self, channel: str, data: str) -> int:
        """Deliver one relayed payload to this process's subscribers"""
        room_id = channel[len(CHANNEL_PREFIX):]
        envelope = json.loads(data)
        self.messages_received += 1

        return await self.broadcaster.deliver(room_id, envelope["payload"], exclude=envelope.get("exclude"))

    async def _listen_loop(self):
        """Background task that listens for relayed payloads"""
        logger.info("👂 [Relay] Listen loop started")

        async for message in self.pubsub.listen():
            # Ignore subscription confirmations
            if message["type"] != "pmessage":
                continue

            # Delivery runs in the background so one slow socket can't stall the loop
            self.broadcaster.spawn(self.handle_message(message["channel"], message["data"]))
