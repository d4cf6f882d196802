"""
User model - directory entries consulted for roles
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, DateTime, Enum, String

from .base import DISPLAY_NAME_LENGTH, ID_LENGTH, Base, generate_id, utcnow


class UserRole(PyEnum):
    """Enum for user roles"""
    TEACHER = "teacher"
    STUDENT = "student"


class User(Base):
    """User model - stores identity and role"""
    __tablename__ = "users"

    id = Column(String(ID_LENGTH), primary_key=True, default=generate_id)
    name = Column(String(DISPLAY_NAME_LENGTH), nullable=False)
    role = Column(Enum(UserRole), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', role={self.role.value})>"
