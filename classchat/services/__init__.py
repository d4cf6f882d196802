"""
Service layer - business logic
"""
from .access_code import AccessCodeGenerator, normalize_access_code
from .user_service import UserService
from .blob_store import BlobStore, LocalBlobStore, blob_store
from .classroom_service import ClassroomService
from .message_service import MessageService
from .chat_service import ChatService, GLOBAL_ROOM_ID, chat_service

__all__ = [
    "AccessCodeGenerator",
    "normalize_access_code",
    "UserService",
    "BlobStore",
    "LocalBlobStore",
    "blob_store",
    "ClassroomService",
    "MessageService",
    "ChatService",
    "GLOBAL_ROOM_ID",
    "chat_service",
]
