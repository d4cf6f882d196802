"""
Classroom service - creation, enrollment by access code, membership lookup
"""
import logging
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classchat.core.config import settings
from classchat.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from classchat.models import Classroom, ClassroomStudent
from classchat.models.base import CLASSROOM_NAME_LENGTH, DISPLAY_NAME_LENGTH, ID_LENGTH
from classchat.services.access_code import AccessCodeGenerator, normalize_access_code
from classchat.services.user_service import UserService

logger = logging.getLogger(__name__)


class ClassroomService:
    """
    Owns classroom records

    Access-code uniqueness and single membership are both backed by UNIQUE
    constraints; the queries done beforehand only spare a round trip in the
    common case.
    """

    def __init__(
        self,
        code_generator: Optional[AccessCodeGenerator] = None,
        identity=UserService,
        max_code_attempts: Optional[int] = None,
    ):
        self.code_generator = code_generator or AccessCodeGenerator()
        self.identity = identity
        self.max_code_attempts = max_code_attempts or settings.ACCESS_CODE_MAX_ATTEMPTS

    def _code_in_use(self, db: Session, code: str) -> bool:
        return db.query(Classroom.id).filter(Classroom.access_code == code).first() is not None

    def create_classroom(
        self,
        db: Session,
        name: str,
        teacher_id: str,
        teacher_name: str = "",
    ) -> Classroom:
        """
        Create a classroom with a freshly minted access code

        Args:
            db: Database session
            name: Classroom display name
            teacher_id: Owning teacher's user ID
            teacher_name: Display name of the teacher

        Returns:
            Created classroom with an empty student set

        Raises:
            ValidationError: Missing or over-long name, missing teacher ID
            AuthorizationError: User doesn't exist or isn't a teacher
            UpstreamError: No unique code found within the attempt budget
        """
        name = (name or "").strip()
        teacher_id = (teacher_id or "").strip()

        if not name or not teacher_id:
            raise ValidationError("Classroom name and teacher ID required")

        if len(name) > CLASSROOM_NAME_LENGTH:
            raise ValidationError(f"Classroom name exceeds {CLASSROOM_NAME_LENGTH} characters")

        teacher = self.identity.get_by_id(db, teacher_id)
        if not teacher or not teacher.is_teacher:
            raise AuthorizationError("Only teachers can create classrooms")

        teacher_name = (teacher_name or "").strip() or teacher.name
        if len(teacher_name) > DISPLAY_NAME_LENGTH:
            raise ValidationError(f"Teacher name exceeds {DISPLAY_NAME_LENGTH} characters")

        for attempt in range(1, self.max_code_attempts + 1):
            code = self.code_generator.generate()

            if self._code_in_use(db, code):
                logger.warning(f"Access code collision on attempt {attempt}, retrying")
                continue

            classroom = Classroom(
                name=name,
                teacher_id=teacher_id,
                teacher_name=teacher_name,
                access_code=code,
            )
            db.add(classroom)

            try:
                db.commit()
            except IntegrityError:
                # Another creator took the same code between check and insert
                db.rollback()
                logger.warning(f"Access code taken concurrently on attempt {attempt}, retrying")
                continue

            db.refresh(classroom)
            logger.info(
                f"🏫 Classroom '{name}' created by {teacher_id}",
                extra={'classroom_id': classroom.id, 'user_id': teacher_id},
            )
            return classroom

        logger.error(f"❌ No unique access code after {self.max_code_attempts} attempts")
        raise UpstreamError("Could not allocate a unique access code, please try again")

    def join_classroom(self, db: Session, access_code: str, student_id: str) -> Classroom:
        """
        Enroll a student using an access code

        Joining twice is rejected with ConflictError, including when the two
        attempts race each other.

        Raises:
            ValidationError: Missing code, missing or over-long student ID
            NotFoundError: No classroom has this code
            ConflictError: Student already enrolled
        """
        code = normalize_access_code(access_code)
        student_id = (student_id or "").strip()

        if not code or not student_id:
            raise ValidationError("Access code and student ID required")

        if len(student_id) > ID_LENGTH:
            raise ValidationError(f"Student ID exceeds {ID_LENGTH} characters")

        classroom = db.query(Classroom).filter(Classroom.access_code == code).first()
        if not classroom:
            raise NotFoundError("Invalid access code")

        if classroom.has_student(student_id):
            raise ConflictError("You are already in this classroom")

        db.add(ClassroomStudent(classroom_id=classroom.id, student_id=student_id))

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("You are already in this classroom")

        db.refresh(classroom)
        logger.info(
            f"🎒 Student {student_id} joined classroom {classroom.id}",
            extra={'classroom_id': classroom.id, 'user_id': student_id},
        )
        return classroom

    def list_classrooms_for_user(self, db: Session, user_id: str) -> List[Classroom]:
        """
        Classrooms a user teaches (teachers) or attends (everyone else),
        newest first

        Raises:
            NotFoundError: User doesn't exist
        """
        user = self.identity.get_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")

        query = db.query(Classroom)

        if user.is_teacher:
            query = query.filter(Classroom.teacher_id == user.id)
        else:
            query = query.join(ClassroomStudent).filter(ClassroomStudent.student_id == user.id)

        return query.order_by(desc(Classroom.created_at), desc(Classroom.id)).all()

    def get_classroom(self, db: Session, classroom_id: str) -> Classroom:
        """
        Get classroom by ID

        Raises:
            NotFoundError: Classroom doesn't exist
        """
        classroom = db.query(Classroom).filter(Classroom.id == classroom_id).first()
        if not classroom:
            raise NotFoundError("Classroom not found")

        return classroom
