"""
Classroom endpoints
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from classchat.core.config import settings
from classchat.core.database import get_db
from classchat.middleware.rate_limiter import limiter
from classchat.schemas.classroom import (
    ClassroomCreate,
    ClassroomJoin,
    ClassroomListResponse,
    ClassroomResponse,
)
from classchat.services import ClassroomService

router = APIRouter(prefix="/api/classrooms", tags=["classrooms"])

classroom_service = ClassroomService()


@router.post("/create", response_model=ClassroomResponse, status_code=201)
def create_classroom(payload: ClassroomCreate, db: Session = Depends(get_db)):
    """
    Create a classroom with a fresh access code

    Only users with the teacher role may create classrooms.
    """
    classroom = classroom_service.create_classroom(
        db,
        name=payload.name,
        teacher_id=payload.teacher_id,
        teacher_name=payload.teacher_name,
    )
    return ClassroomResponse.from_classroom(classroom)


@router.post("/join", response_model=ClassroomResponse)
@limiter.limit(settings.RATE_LIMIT_JOIN)
def join_classroom(request: Request, payload: ClassroomJoin, db: Session = Depends(get_db)):
    """
    Join a classroom by access code (case-insensitive)

    Rate limited per client address to slow down code guessing.
    """
    classroom = classroom_service.join_classroom(db, payload.access_code, payload.student_id)
    return ClassroomResponse.from_classroom(classroom)


# Declared before /{user_id} so "room" is never taken for a user id
@router.get("/room/{classroom_id}", response_model=ClassroomResponse)
def get_classroom(classroom_id: str, db: Session = Depends(get_db)):
    """Get classroom details"""
    classroom = classroom_service.get_classroom(db, classroom_id)
    return ClassroomResponse.from_classroom(classroom)


@router.get("/{user_id}", response_model=ClassroomListResponse)
def list_classrooms(user_id: str, db: Session = Depends(get_db)):
    """
    Classrooms a user teaches (teachers) or has joined (students),
    newest first
    """
    classrooms = classroom_service.list_classrooms_for_user(db, user_id)

    return ClassroomListResponse(
        classrooms=[ClassroomResponse.from_classroom(c) for c in classrooms],
        count=len(classrooms),
    )
