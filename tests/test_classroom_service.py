"""
Classroom registry tests - creation, access-code uniqueness, enrollment
"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from classchat.core.database import SessionLocal
from classchat.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from classchat.models import Classroom, UserRole
from classchat.services import ClassroomService, UserService


class ScriptedCodes:
    """Code generator that hands out a fixed sequence"""

    def __init__(self, *codes):
        self.codes = list(codes)
        self.calls = 0

    def generate(self):
        self.calls += 1
        return self.codes.pop(0)


class TestCreateClassroom:

    def test_create_classroom(self, db, teacher):
        classroom = ClassroomService().create_classroom(db, "Biology", teacher.id, "Ms. F")

        assert classroom.id
        assert classroom.name == "Biology"
        assert classroom.teacher_id == teacher.id
        assert classroom.teacher_name == "Ms. F"
        assert len(classroom.access_code) == 6
        assert classroom.students == []

    def test_teacher_name_defaults_to_directory_name(self, db, teacher):
        classroom = ClassroomService().create_classroom(db, "Biology", teacher.id)

        assert classroom.teacher_name == "Ms. Frizzle"

    @pytest.mark.parametrize("name,teacher_id", [("", "t"), ("   ", "t"), ("Biology", "")])
    def test_blank_fields_rejected(self, db, name, teacher_id):
        with pytest.raises(ValidationError):
            ClassroomService().create_classroom(db, name, teacher_id)

    def test_over_long_fields_rejected(self, db, teacher):
        service = ClassroomService()

        with pytest.raises(ValidationError, match="Classroom name exceeds"):
            service.create_classroom(db, "B" * 201, teacher.id)
        with pytest.raises(ValidationError, match="Teacher name exceeds"):
            service.create_classroom(db, "Biology", teacher.id, "T" * 101)

        assert db.query(Classroom).count() == 0

    def test_student_cannot_create(self, db, student):
        with pytest.raises(AuthorizationError, match="Only teachers can create classrooms"):
            ClassroomService().create_classroom(db, "Biology", student.id)

        assert db.query(Classroom).count() == 0

    def test_unknown_user_cannot_create(self, db):
        with pytest.raises(AuthorizationError):
            ClassroomService().create_classroom(db, "Biology", "nobody")

    def test_collision_is_retried(self, db, teacher):
        codes = ScriptedCodes("AAAAAA", "AAAAAA", "BBBBBB")
        service = ClassroomService(code_generator=codes)

        first = service.create_classroom(db, "One", teacher.id)
        second = service.create_classroom(db, "Two", teacher.id)

        assert first.access_code == "AAAAAA"
        assert second.access_code == "BBBBBB"
        assert codes.calls == 3

    def test_race_past_precheck_hits_unique_constraint(self, db, teacher, monkeypatch):
        codes = ScriptedCodes("AAAAAA", "AAAAAA", "CCCCCC")
        service = ClassroomService(code_generator=codes)
        service.create_classroom(db, "One", teacher.id)

        # Simulate another creator winning the race after our check
        monkeypatch.setattr(service, "_code_in_use", lambda db, code: False)
        second = service.create_classroom(db, "Two", teacher.id)

        assert second.access_code == "CCCCCC"
        assert db.query(Classroom).count() == 2

    def test_exhausted_attempts_raise_upstream_error(self, db, teacher):
        service = ClassroomService(code_generator=ScriptedCodes(*["AAAAAA"] * 4), max_code_attempts=3)
        service.create_classroom(db, "One", teacher.id)

        with pytest.raises(UpstreamError):
            service.create_classroom(db, "Two", teacher.id)

        assert db.query(Classroom).count() == 1

    def test_concurrent_creates_get_distinct_codes(self, db, teacher):
        teacher_id = teacher.id
        service = ClassroomService()

        def create(i):
            with SessionLocal() as session:
                return service.create_classroom(session, f"Class {i}", teacher_id).access_code

        with ThreadPoolExecutor(max_workers=8) as pool:
            codes = list(pool.map(create, range(40)))

        assert len(set(codes)) == 40


class TestJoinClassroom:

    def test_join_with_lowercase_code(self, db, teacher):
        service = ClassroomService()
        classroom = service.create_classroom(db, "Biology", teacher.id)

        joined = service.join_classroom(db, classroom.access_code.lower(), "s1")

        assert joined.id == classroom.id
        assert joined.students == ["s1"]

    def test_students_kept_in_join_order(self, db, teacher):
        service = ClassroomService()
        classroom = service.create_classroom(db, "Biology", teacher.id)

        for student_id in ("s3", "s1", "s2"):
            service.join_classroom(db, classroom.access_code, student_id)

        assert service.get_classroom(db, classroom.id).students == ["s3", "s1", "s2"]

    def test_unknown_code_rejected(self, db, teacher):
        service = ClassroomService()
        classroom = service.create_classroom(db, "Biology", teacher.id)
        service.join_classroom(db, classroom.access_code, "s1")

        with pytest.raises(NotFoundError, match="Invalid access code"):
            service.join_classroom(db, "ZZZZZZ9", "s2")

        assert service.get_classroom(db, classroom.id).students == ["s1"]

    def test_duplicate_join_rejected(self, db, teacher):
        service = ClassroomService()
        classroom = service.create_classroom(db, "Biology", teacher.id)
        service.join_classroom(db, classroom.access_code, "s1")

        with pytest.raises(ConflictError, match="You are already in this classroom"):
            service.join_classroom(db, classroom.access_code, "s1")

        assert service.get_classroom(db, classroom.id).students == ["s1"]

    @pytest.mark.parametrize("code,student_id", [("", "s1"), ("ABCDEF", ""), ("  ", " ")])
    def test_blank_fields_rejected(self, db, code, student_id):
        with pytest.raises(ValidationError):
            ClassroomService().join_classroom(db, code, student_id)

    def test_over_long_student_id_rejected(self, db, teacher):
        service = ClassroomService()
        classroom = service.create_classroom(db, "Biology", teacher.id)

        with pytest.raises(ValidationError, match="Student ID exceeds"):
            service.join_classroom(db, classroom.access_code, "s" * 37)

        assert service.get_classroom(db, classroom.id).students == []

    def test_concurrent_joins_all_land(self, db, teacher):
        service = ClassroomService()
        code = service.create_classroom(db, "Biology", teacher.id).access_code

        def join(i):
            with SessionLocal() as session:
                service.join_classroom(session, code, f"s{i}")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(join, range(20)))

        with SessionLocal() as session:
            classroom = session.query(Classroom).filter(Classroom.access_code == code).one()
            assert sorted(classroom.students) == sorted(f"s{i}" for i in range(20))

    def test_concurrent_duplicate_join_admits_once(self, db, teacher):
        service = ClassroomService()
        code = service.create_classroom(db, "Biology", teacher.id).access_code

        def join(_):
            with SessionLocal() as session:
                try:
                    service.join_classroom(session, code, "s1")
                    return "joined"
                except ConflictError:
                    return "conflict"

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(join, range(4)))

        assert results.count("joined") == 1
        assert results.count("conflict") == 3


class TestListClassrooms:

    def test_teacher_sees_owned_newest_first(self, db, teacher):
        service = ClassroomService()
        first = service.create_classroom(db, "First", teacher.id)
        second = service.create_classroom(db, "Second", teacher.id)

        other = UserService.create_user(db, "Mr. Other", UserRole.TEACHER)
        service.create_classroom(db, "Not mine", other.id)

        classrooms = service.list_classrooms_for_user(db, teacher.id)

        assert {c.id for c in classrooms} == {first.id, second.id}
        assert classrooms[0].created_at >= classrooms[1].created_at

    def test_student_sees_joined(self, db, teacher, student):
        service = ClassroomService()
        joined = service.create_classroom(db, "Joined", teacher.id)
        service.create_classroom(db, "Not joined", teacher.id)
        service.join_classroom(db, joined.access_code, student.id)

        classrooms = service.list_classrooms_for_user(db, student.id)

        assert [c.id for c in classrooms] == [joined.id]

    def test_unknown_user(self, db):
        with pytest.raises(NotFoundError):
            ClassroomService().list_classrooms_for_user(db, "nobody")


class TestGetClassroom:

    def test_missing_classroom(self, db):
        with pytest.raises(NotFoundError, match="Classroom not found"):
            ClassroomService().get_classroom(db, "missing")
