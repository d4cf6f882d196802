"""
User service - the identity directory consulted for roles
"""
from typing import Optional

from sqlalchemy.orm import Session

from classchat.core.exceptions import ValidationError
from classchat.models import User, UserRole
from classchat.models.base import DISPLAY_NAME_LENGTH


class UserService:
    """Service for user operations"""

    @staticmethod
    def create_user(db: Session, name: str, role: UserRole) -> User:
        """
        Create a new user

        Args:
            db: Database session
            name: Display name
            role: Teacher or student

        Returns:
            Created user
        """
        name = (name or "").strip()
        if not name or len(name) > DISPLAY_NAME_LENGTH:
            raise ValidationError(f"User name must be 1-{DISPLAY_NAME_LENGTH} characters")

        user = User(name=name, role=role)
        db.add(user)
        db.commit()
        db.refresh(user)

        return user

    @staticmethod
    def get_by_id(db: Session, user_id: str) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()
