"""
Pydantic schemas
"""
from .user import UserCreate, UserResponse
from .classroom import ClassroomCreate, ClassroomJoin, ClassroomResponse, ClassroomListResponse
from .message import AttachmentDescriptor, MessageResponse, MessageListResponse

__all__ = [
    "UserCreate",
    "UserResponse",
    "ClassroomCreate",
    "ClassroomJoin",
    "ClassroomResponse",
    "ClassroomListResponse",
    "AttachmentDescriptor",
    "MessageResponse",
    "MessageListResponse",
]
