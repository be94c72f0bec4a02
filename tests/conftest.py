# tests/conftest.py
import os

# 앱/설정 import 전에 테스트 환경 고정
os.environ["ENV"] = "test"
os.environ["SQLALCHEMY_URL"] = "sqlite://"
os.environ["INTERNAL_TOKEN"] = "test-token"

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database.db import Base, get_db
from models import users, students, achievements, violations, counseling_sessions  # noqa: F401
from models.achievements import Achievement as AchievementModel
from models.counseling_sessions import CounselingSession as CounselingModel
from models.students import Student as StudentModel
from models.users import User as UserModel
from schemas.records import ViolationCreate
from services import ledger


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(engine):
    from main import app

    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    return {"Authorization": "Bearer test-token", "X-Staff-Id": str(user.id)}


# =========================
# 데이터 생성 헬퍼
# =========================
_seq = {"n": 0}


def _next() -> int:
    _seq["n"] += 1
    return _seq["n"]


def make_user(db, role="admin", assigned_class=None, is_active=True, name=None):
    n = _next()
    user = UserModel(
        username=name or f"user{n}",
        email=f"user{n}@school.test",
        full_name=f"Staff {n}",
        role=role,
        assigned_class=assigned_class,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_student(db, class_name="10A", full_name=None, grade_level=10, is_active=True):
    n = _next()
    student = StudentModel(
        student_id=f"S{n:05d}",
        full_name=full_name or f"Student {n}",
        class_name=class_name,
        grade_level=grade_level,
        total_violation_points=0,
        is_active=is_active,
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def violation_input(student, points=5, severity="light", on=date(2025, 3, 10), description="Late to class"):
    return ViolationCreate(
        date=on,
        student_id=student.id,
        type="discipline",
        description=description,
        severity=severity,
        points=points,
        handling_method="warning",
    )


def add_violation(db, student, author, **kwargs):
    return ledger.record_violation(db, violation_input(student, **kwargs), author.id)


def add_achievement(db, student, author, on=date(2025, 3, 10), description="Science fair winner"):
    row = AchievementModel(
        date=on,
        student_id=student.id,
        type="academic",
        activity_description=description,
        level="school",
        awarded_by="School board",
        recorded_by=author.id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def add_session(db, student, author, status="completed", on=date(2025, 3, 10), purpose="Attendance check-in"):
    row = CounselingModel(
        date=on,
        student_id=student.id,
        purpose=purpose,
        session_summary="Talked through recent absences.",
        status=status,
        recorded_by=author.id,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
