"""
User endpoints - the identity directory classrooms consult
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from classchat.core.database import get_db
from classchat.core.exceptions import NotFoundError
from classchat.schemas.user import UserCreate, UserResponse
from classchat.services import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(user: UserCreate, db: Session = Depends(get_db)):
    """
    Register a user
    Request body:
    {
        "name": "Ada",
        "role": "teacher"
    }
    """
    return UserService.create_user(db, user.name, user.role)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    """Get specific user"""
    user = UserService.get_by_id(db, user_id)

    if not user:
        raise NotFoundError("User not found")

    return user
