from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentStaff
from schemas.common import ok
from services import reports as report_service
from services.errors import NotFound

router = APIRouter(prefix="/reports", tags=["보고서"])


# ✅ [SUMMARY] 학생별 기록 요약
@router.get("/students/{student_id}/summary")
def student_summary(student_id: int, staff: CurrentStaff, db: Session = Depends(get_db)):
    summary = report_service.generate_student_summary(db, student_id)
    if summary["student"] is None:
        raise NotFound("student", student_id)
    return ok(summary, f"학생 ID {student_id} 요약 조회 성공")


# ✅ [REPORT] 학급 보고서 데이터 (기간)
@router.get("/classes/{class_name}")
def class_report(
    class_name: str,
    staff: CurrentStaff,
    date_from: date = Query(..., description="시작일 (예: 2025-03-01)"),
    date_to: date = Query(..., description="종료일 (예: 2025-07-31)"),
    db: Session = Depends(get_db),
):
    report = report_service.generate_class_report(db, class_name, date_from, date_to)
    return ok(report, f"{class_name} 학급 보고서 조회 성공")
