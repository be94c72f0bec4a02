"""
services/records.py

생활지도 기록 CRUD (벌점 원장 제외)
- 학생 등록/일괄 등록/수정/조회
- 실적, 상담 기록 추가 및 조회
- 상담 상태 변경 (모든 전이 허용, 로그 기록)
- 교직원 계정 관리 (삭제 대신 비활성화)
"""

import logging
from typing import List, Optional

from sqlalchemy import extract, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.achievements import Achievement as AchievementModel
from models.counseling_sessions import CounselingSession as CounselingModel, COUNSELING_STATUSES
from models.students import Student as StudentModel
from models.users import User as UserModel, ROLE_HOMEROOM_TEACHER
from models.violations import Violation as ViolationModel
from schemas.records import AchievementCreate, CounselingSessionCreate, RecordFilter
from schemas.students import BulkCreateResult, BulkFailure, Student as StudentSchema, StudentCreate, StudentUpdate
from schemas.users import UserCreate, UserUpdate
from services.errors import DuplicateRecord, NotFound, PolicyViolation

logger = logging.getLogger(__name__)


# ==========================================================
# [공통] 존재 확인
# ==========================================================
def get_student(db: Session, student_id: int) -> StudentModel:
    student = db.get(StudentModel, student_id)
    if student is None:
        raise NotFound("student", student_id)
    return student


def get_active_author(db: Session, user_id: int) -> UserModel:
    user = db.get(UserModel, user_id)
    if user is None or not user.is_active:
        raise NotFound("user", user_id)
    return user


# ==========================================================
# [학생]
# ==========================================================
def create_student(db: Session, data: StudentCreate) -> StudentModel:
    exists = db.execute(
        select(StudentModel.id).where(StudentModel.student_id == data.student_id)
    ).first()
    if exists:
        raise DuplicateRecord(f"Student ID {data.student_id} already exists")

    student = StudentModel(**data.model_dump(), total_violation_points=0, is_active=True)
    db.add(student)
    db.commit()
    db.refresh(student)
    logger.info(f"학생 등록 - id={student.id}, student_id={student.student_id}")
    return student


def bulk_create_students(db: Session, rows: List[StudentCreate]) -> BulkCreateResult:
    """
    검증이 끝난 행 목록을 받아 학번 기준으로 없는 학생만 등록.
    행 단위로 실패를 모으고, 나머지는 계속 진행한다.
    """
    result = BulkCreateResult()
    for row in rows:
        try:
            student = create_student(db, row)
        except DuplicateRecord as e:
            result.failed.append(BulkFailure(student_data=row.model_dump(), error=e.message))
            continue
        except IntegrityError as e:
            # 같은 학번이 동시에 들어온 경우 등
            db.rollback()
            result.failed.append(BulkFailure(student_data=row.model_dump(), error=str(e.orig)))
            continue
        result.successful.append(StudentSchema.model_validate(student))

    logger.info(f"학생 일괄 등록 - 성공 {len(result.successful)}건, 실패 {len(result.failed)}건")
    return result


def update_student(db: Session, student_id: int, data: StudentUpdate) -> StudentModel:
    student = get_student(db, student_id)
    changes = data.model_dump(exclude_unset=True)

    new_code = changes.get("student_id")
    if new_code and new_code != student.student_id:
        taken = db.execute(
            select(StudentModel.id).where(StudentModel.student_id == new_code)
        ).first()
        if taken:
            raise DuplicateRecord(f"Student ID {new_code} already exists")

    for key, value in changes.items():
        setattr(student, key, value)
    db.commit()
    db.refresh(student)
    return student


def list_students(
    db: Session,
    class_name: Optional[str] = None,
    grade_level: Optional[int] = None,
    is_active: Optional[bool] = None,
) -> List[StudentModel]:
    stmt = select(StudentModel)
    if class_name is not None:
        stmt = stmt.where(StudentModel.class_name == class_name)
    if grade_level is not None:
        stmt = stmt.where(StudentModel.grade_level == grade_level)
    if is_active is not None:
        stmt = stmt.where(StudentModel.is_active.is_(is_active))
    return list(db.execute(stmt.order_by(StudentModel.class_name, StudentModel.full_name)).scalars())


# ==========================================================
# [실적 / 상담 기록 추가]
# ==========================================================
def create_achievement(db: Session, data: AchievementCreate, author_id: int) -> AchievementModel:
    get_active_author(db, author_id)
    get_student(db, data.student_id)

    achievement = AchievementModel(**data.model_dump(), recorded_by=author_id)
    db.add(achievement)
    db.commit()
    db.refresh(achievement)
    return achievement


def create_counseling_session(db: Session, data: CounselingSessionCreate, author_id: int) -> CounselingModel:
    get_active_author(db, author_id)
    get_student(db, data.student_id)

    session = CounselingModel(**data.model_dump(), recorded_by=author_id)
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


# ✅ 상담 상태 전이표: 모든 상태 간 전이 허용 (수동 정정 가능), 대신 전이는 로그로 남김
STATUS_TRANSITIONS = {status: frozenset(COUNSELING_STATUSES) for status in COUNSELING_STATUSES}


def update_counseling_status(db: Session, session_id: int, status: str, actor_id: Optional[int] = None) -> CounselingModel:
    session = db.get(CounselingModel, session_id)
    if session is None:
        raise NotFound("counseling_session", session_id)

    previous = session.status
    if status not in STATUS_TRANSITIONS.get(previous, ()):
        raise PolicyViolation(f"counseling status cannot change from {previous} to {status}")

    session.status = status
    db.commit()
    db.refresh(session)
    logger.info(f"상담 상태 변경 - session_id={session_id}, {previous} → {status}, by={actor_id}")
    return session


# ==========================================================
# [조회] 실적/위반/상담 공통 필터
# ==========================================================
def _filtered(db: Session, model, f: Optional[RecordFilter]):
    stmt = select(model)
    if f is not None:
        if f.student_id is not None:
            stmt = stmt.where(model.student_id == f.student_id)
        if f.class_name is not None:
            stmt = stmt.join(StudentModel, model.student_id == StudentModel.id).where(
                StudentModel.class_name == f.class_name
            )
        if f.year is not None:
            stmt = stmt.where(extract("year", model.date) == f.year)
        if f.month is not None:
            stmt = stmt.where(extract("month", model.date) == f.month)
        if f.date_from is not None:
            stmt = stmt.where(model.date >= f.date_from)
        if f.date_to is not None:
            stmt = stmt.where(model.date <= f.date_to)
    stmt = stmt.order_by(model.date.desc(), model.id.desc())
    return list(db.execute(stmt).unique().scalars())


def list_achievements(db: Session, f: Optional[RecordFilter] = None) -> List[AchievementModel]:
    return _filtered(db, AchievementModel, f)


def list_violations(db: Session, f: Optional[RecordFilter] = None) -> List[ViolationModel]:
    return _filtered(db, ViolationModel, f)


def list_counseling_sessions(db: Session, f: Optional[RecordFilter] = None) -> List[CounselingModel]:
    return _filtered(db, CounselingModel, f)


# ==========================================================
# [교직원]
# ==========================================================
def _normalize_class(role: str, assigned_class: Optional[str]) -> Optional[str]:
    # 담임이 아니면 학급 배정을 저장하지 않음
    return assigned_class if role == ROLE_HOMEROOM_TEACHER else None


def create_user(db: Session, data: UserCreate) -> UserModel:
    clash = db.execute(
        select(UserModel.id).where(
            (UserModel.username == data.username) | (UserModel.email == data.email)
        )
    ).first()
    if clash:
        raise DuplicateRecord(f"username or email already in use: {data.username}")

    values = data.model_dump()
    values["assigned_class"] = _normalize_class(data.role, data.assigned_class)
    user = UserModel(**values, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"교직원 등록 - id={user.id}, role={user.role}")
    return user


def update_user(db: Session, user_id: int, data: UserUpdate) -> UserModel:
    user = db.get(UserModel, user_id)
    if user is None:
        raise NotFound("user", user_id)

    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    user.assigned_class = _normalize_class(user.role, user.assigned_class)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateRecord(f"username or email already in use: {e.orig}") from e
    db.refresh(user)
    return user


def deactivate_user(db: Session, user_id: int) -> UserModel:
    """물리 삭제 대신 비활성화 (작성한 기록의 참조 유지)"""
    user = db.get(UserModel, user_id)
    if user is None:
        raise NotFound("user", user_id)
    user.is_active = False
    db.commit()
    db.refresh(user)
    logger.info(f"교직원 비활성화 - id={user_id}")
    return user


def list_users(db: Session, role: Optional[str] = None, is_active: Optional[bool] = None) -> List[UserModel]:
    stmt = select(UserModel)
    if role is not None:
        stmt = stmt.where(UserModel.role == role)
    if is_active is not None:
        stmt = stmt.where(UserModel.is_active.is_(is_active))
    return list(db.execute(stmt.order_by(UserModel.id)).scalars())
