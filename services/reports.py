"""
services/reports.py

보고서 내보내기용 데이터 조회 (파일 생성은 하지 않음)
- 누적 벌점은 students.total_violation_points 값을 그대로 사용
"""

from datetime import date
from typing import Any, Dict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from models.achievements import Achievement as AchievementModel
from models.counseling_sessions import CounselingSession as CounselingModel
from models.students import Student as StudentModel
from models.violations import Violation as ViolationModel
from schemas.students import Student as StudentSchema
from services.errors import NotFound, PolicyViolation


def _count_for(db: Session, model, student_id: int) -> int:
    return int(db.execute(
        select(func.count(model.id)).where(model.student_id == student_id)
    ).scalar_one())


def generate_student_summary(db: Session, student_id: int) -> Dict[str, Any]:
    """학생 1명의 기록 건수 요약. 없는 학생이면 student=None, 나머지 0"""
    student = db.get(StudentModel, student_id)
    if student is None:
        return {
            "student": None,
            "achievements": 0,
            "violations": 0,
            "counseling_sessions": 0,
            "total_violation_points": 0,
        }

    return {
        "student": StudentSchema.model_validate(student).model_dump(),
        "achievements": _count_for(db, AchievementModel, student_id),
        "violations": _count_for(db, ViolationModel, student_id),
        "counseling_sessions": _count_for(db, CounselingModel, student_id),
        "total_violation_points": student.total_violation_points,
    }


def _grouped_counts(db: Session, model, student_ids, date_from: date, date_to: date) -> Dict[int, int]:
    rows = db.execute(
        select(model.student_id, func.count(model.id))
        .where(model.student_id.in_(student_ids), model.date.between(date_from, date_to))
        .group_by(model.student_id)
    ).all()
    return {sid: cnt for sid, cnt in rows}


def generate_class_report(db: Session, class_name: str, date_from: date, date_to: date) -> Dict[str, Any]:
    """학급 보고서 데이터: 학생별 기간 내 실적/위반/상담 건수와 벌점"""
    if date_from > date_to:
        raise PolicyViolation("date_from must not be after date_to")

    students = db.execute(
        select(StudentModel)
        .where(StudentModel.class_name == class_name)
        .order_by(StudentModel.full_name)
    ).scalars().all()
    if not students:
        raise NotFound("class", class_name)

    ids = [s.id for s in students]
    achievements = _grouped_counts(db, AchievementModel, ids, date_from, date_to)
    violations = _grouped_counts(db, ViolationModel, ids, date_from, date_to)
    counseling = _grouped_counts(db, CounselingModel, ids, date_from, date_to)
    period_points = dict(db.execute(
        select(ViolationModel.student_id, func.sum(ViolationModel.points))
        .where(ViolationModel.student_id.in_(ids), ViolationModel.date.between(date_from, date_to))
        .group_by(ViolationModel.student_id)
    ).all())

    rows = [
        {
            "id": s.id,
            "student_id": s.student_id,
            "full_name": s.full_name,
            "is_active": s.is_active,
            "achievements": achievements.get(s.id, 0),
            "violations": violations.get(s.id, 0),
            "counseling_sessions": counseling.get(s.id, 0),
            "period_points": int(period_points.get(s.id) or 0),
            "total_violation_points": s.total_violation_points,
        }
        for s in students
    ]
    return {
        "class_name": class_name,
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "students": rows,
    }
