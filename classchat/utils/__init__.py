"""
Utility modules
"""
from .room_broadcaster import RoomBroadcaster, room_broadcaster
from .redis_relay import RedisRoomRelay

__all__ = [
    "RoomBroadcaster",
    "room_broadcaster",
    "RedisRoomRelay",
]
