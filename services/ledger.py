"""
services/ledger.py

벌점 원장 (Violation Ledger)
- 위반 기록 추가와 학생 누적 벌점 증가를 하나의 트랜잭션으로 처리한다.
- 누적 벌점 증가는 "SET total = total + :points" 단일 UPDATE (읽고-쓰기 경합 없음).
- 불변식: students.total_violation_points == Σ violations.points (학생별)
- 불일치 점검/보정(reconcile)은 명시적 호출로만 수행한다.
"""

import logging
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from models.students import Student as StudentModel
from models.users import User as UserModel
from models.violations import Violation as ViolationModel, SEVERITIES
from schemas.records import LedgerCheck, ViolationCreate
from services.errors import (
    ConcurrentUpdateConflict,
    InvariantViolation,
    NotFound,
    PolicyViolation,
    StoreUnavailable,
)

logger = logging.getLogger(__name__)


# ==========================================================
# [정책] 심각도별 권장 벌점
# ==========================================================
def suggested_points(severity: str) -> int:
    if severity not in SEVERITIES:
        raise ValueError(f"unknown severity: {severity}")
    return settings.SEVERITY_POINTS[severity]


def _check_tariff(data: ViolationCreate):
    if not settings.ENFORCE_SEVERITY_TARIFF:
        return
    expected = suggested_points(data.severity)
    if data.points != expected:
        raise PolicyViolation(
            f"severity '{data.severity}' requires {expected} points, got {data.points}"
        )


# ==========================================================
# [쓰기] 위반 기록 + 누적 벌점 증가
# ==========================================================
def _apply_points(db: Session, student_id: int, points: int):
    """누적 벌점 원자적 증가. 대상 행이 없으면 ConcurrentUpdateConflict"""
    result = db.execute(
        update(StudentModel)
        .where(StudentModel.id == student_id)
        .values(total_violation_points=StudentModel.total_violation_points + points)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConcurrentUpdateConflict(f"student {student_id} row changed during points update")


def _record_once(db: Session, data: ViolationCreate, author_id: int) -> ViolationModel:
    author = db.get(UserModel, author_id)
    if author is None or not author.is_active:
        raise NotFound("user", author_id)

    student = db.get(StudentModel, data.student_id)
    if student is None:
        raise NotFound("student", data.student_id)

    violation = ViolationModel(**data.model_dump(), recorded_by=author_id)
    db.add(violation)
    db.flush()                                   # id 발급 (아직 커밋 전)
    _apply_points(db, data.student_id, data.points)
    db.commit()
    db.refresh(violation)
    return violation


def record_violation(db: Session, data: ViolationCreate, author_id: int) -> ViolationModel:
    """
    위반 기록 추가.
    - 실패 시 rollback 으로 위반 행/벌점 모두 원상태 유지
    - ConcurrentUpdateConflict 는 LEDGER_MAX_RETRIES 만큼 재시도
    """
    _check_tariff(data)

    attempts = max(1, settings.LEDGER_MAX_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            violation = _record_once(db, data, author_id)
        except ConcurrentUpdateConflict:
            db.rollback()
            logger.warning(
                f"벌점 갱신 충돌 - student_id={data.student_id}, 시도 {attempt}/{attempts}"
            )
            if attempt == attempts:
                raise
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"위반 기록 저장 실패 - student_id={data.student_id}: {e}")
            raise StoreUnavailable(f"violation write failed: {e}") from e
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"위반 기록 추가 - violation_id={violation.id}, student_id={data.student_id}, "
            f"points=+{data.points}, by={author_id}"
        )
        return violation


# ==========================================================
# [점검/보정] 누적 벌점 불변식
# ==========================================================
def ledger_total(db: Session, student_id: int) -> int:
    total = db.execute(
        select(func.coalesce(func.sum(ViolationModel.points), 0))
        .where(ViolationModel.student_id == student_id)
    ).scalar_one()
    return int(total)


def check_student_points(db: Session, student_id: int) -> LedgerCheck:
    """캐시 값과 원장 합계 비교 (쓰기 없음)"""
    student = db.get(StudentModel, student_id)
    if student is None:
        raise NotFound("student", student_id)

    ledger = ledger_total(db, student_id)
    check = LedgerCheck(
        student_id=student_id,
        cached_points=student.total_violation_points,
        ledger_points=ledger,
        consistent=student.total_violation_points == ledger,
    )
    if not check.consistent:
        logger.warning(
            f"누적 벌점 불일치 - student_id={student_id}, cached={check.cached_points}, ledger={ledger}"
        )
    return check


def verify_student_points(db: Session, student_id: int) -> LedgerCheck:
    check = check_student_points(db, student_id)
    if not check.consistent:
        raise InvariantViolation(student_id, check.cached_points, check.ledger_points)
    return check


def reconcile_student_points(db: Session, student_id: int) -> LedgerCheck:
    """
    원장 합계로 누적 벌점을 다시 계산해 저장.
    반환값은 보정 전 상태 (consistent=False 였다면 보정이 일어난 것)
    """
    before = check_student_points(db, student_id)
    if before.consistent:
        return before

    try:
        # 합계 계산과 쓰기를 한 문장으로 (사이에 끼어든 위반 기록도 반영)
        ledger_sum = (
            select(func.coalesce(func.sum(ViolationModel.points), 0))
            .where(ViolationModel.student_id == student_id)
            .scalar_subquery()
        )
        db.execute(
            update(StudentModel)
            .where(StudentModel.id == student_id)
            .values(total_violation_points=ledger_sum)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"reconcile failed: {e}") from e

    db.expire_all()
    logger.info(
        f"누적 벌점 보정 - student_id={student_id}, {before.cached_points} → {before.ledger_points}"
    )
    return before


def reconcile_all(db: Session) -> List[LedgerCheck]:
    """전체 학생 점검 후 불일치 학생만 보정, 보정된 목록 반환"""
    student_ids = db.execute(select(StudentModel.id).order_by(StudentModel.id)).scalars().all()
    corrected = []
    for student_id in student_ids:
        check = reconcile_student_points(db, student_id)
        if not check.consistent:
            corrected.append(check)
    return corrected
