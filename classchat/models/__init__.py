"""
Database models
"""
from .base import Base
from .user import User, UserRole
from .classroom import Classroom, ClassroomStudent
from .message import Message

__all__ = ["Base", "User", "UserRole", "Classroom", "ClassroomStudent", "Message"]
