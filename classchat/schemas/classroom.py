"""
Classroom Pydantic schemas
"""
from typing import List

from pydantic import BaseModel, Field

from classchat.models.base import CLASSROOM_NAME_LENGTH, DISPLAY_NAME_LENGTH, ID_LENGTH
from classchat.schemas.common import UTCDateTime


class ClassroomCreate(BaseModel):
    """Schema for creating a classroom (teachers only)"""
    name: str = Field(..., max_length=CLASSROOM_NAME_LENGTH)
    teacher_id: str = Field(..., max_length=ID_LENGTH)
    teacher_name: str = Field("", max_length=DISPLAY_NAME_LENGTH)


class ClassroomJoin(BaseModel):
    """Schema for joining a classroom with an access code"""
    access_code: str
    student_id: str = Field(..., max_length=ID_LENGTH)


class ClassroomResponse(BaseModel):
    """Schema for classroom response"""
    id: str
    name: str
    access_code: str
    teacher_id: str
    teacher_name: str
    students: List[str] = Field(default_factory=list)
    created_at: UTCDateTime

    @classmethod
    def from_classroom(cls, classroom):
        """Convert Classroom ORM model to response"""
        return cls(
            id=classroom.id,
            name=classroom.name,
            access_code=classroom.access_code,
            teacher_id=classroom.teacher_id,
            teacher_name=classroom.teacher_name,
            students=classroom.students,
            created_at=classroom.created_at,
        )


class ClassroomListResponse(BaseModel):
    classrooms: List[ClassroomResponse]
    count: int
