"""
User Pydantic schemas
"""
from pydantic import BaseModel, ConfigDict, Field

from classchat.models.base import DISPLAY_NAME_LENGTH
from classchat.models.user import UserRole
from classchat.schemas.common import UTCDateTime


class UserCreate(BaseModel):
    """Schema for creating user"""
    name: str = Field(..., min_length=1, max_length=DISPLAY_NAME_LENGTH)
    role: UserRole


class UserResponse(BaseModel):
    """Schema for user response"""
    id: str
    name: str
    role: UserRole
    created_at: UTCDateTime

    model_config = ConfigDict(from_attributes=True)
