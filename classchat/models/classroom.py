"""
Classroom and membership models
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import (
    CLASSROOM_NAME_LENGTH,
    DISPLAY_NAME_LENGTH,
    ID_LENGTH,
    Base,
    generate_id,
    utcnow,
)


class Classroom(Base):
    """Classroom model - owned by a teacher, joined by access code"""
    __tablename__ = "classrooms"

    id = Column(String(ID_LENGTH), primary_key=True, default=generate_id)
    name = Column(String(CLASSROOM_NAME_LENGTH), nullable=False)
    # Storage-level guarantee: concurrent creators can never share a code
    access_code = Column(String(16), unique=True, nullable=False, index=True)
    teacher_id = Column(String(ID_LENGTH), nullable=False, index=True)
    teacher_name = Column(String(DISPLAY_NAME_LENGTH), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    memberships = relationship(
        "ClassroomStudent",
        back_populates="classroom",
        order_by="ClassroomStudent.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def students(self) -> list:
        """Student ids in join order"""
        return [membership.student_id for membership in self.memberships]

    def has_student(self, student_id: str) -> bool:
        return student_id in self.students

    def __repr__(self):
        return f"<Classroom(id={self.id}, name='{self.name}', code={self.access_code})>"


class ClassroomStudent(Base):
    """Membership row - one per (classroom, student)"""
    __tablename__ = "classroom_students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    classroom_id = Column(String(ID_LENGTH), ForeignKey("classrooms.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(String(ID_LENGTH), nullable=False, index=True)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    classroom = relationship("Classroom", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint('classroom_id', 'student_id', name='uq_classroom_student'),
    )

    def __repr__(self):
        return f"<ClassroomStudent(classroom_id={self.classroom_id}, student_id={self.student_id})>"
