from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.security import AdminStaff, CurrentStaff
from schemas.common import ok
from schemas.records import RecordFilter, Violation, ViolationCreate
from services import ledger, records

router = APIRouter(prefix="/violations", tags=["위반 기록"])


# ==========================================================
# [1단계] 기록 추가 / 조회
# ==========================================================

# ✅ [CREATE] 위반 기록 추가 (누적 벌점 동시 반영)
@router.post("/", status_code=201)
def create_violation(violation: ViolationCreate, staff: CurrentStaff, db: Session = Depends(get_db)):
    created = ledger.record_violation(db, violation, staff.id)
    return ok(Violation.model_validate(created), "위반 기록이 추가되고 누적 벌점이 반영되었습니다")


# ✅ [READ] 위반 기록 조회 (학생/학급/기간 필터)
@router.get("/")
def read_violations(
    staff: CurrentStaff,
    student_id: Optional[int] = None,
    class_name: Optional[str] = None,
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    f = RecordFilter(
        student_id=student_id, class_name=class_name, month=month, year=year,
        date_from=date_from, date_to=date_to,
    )
    rows = records.list_violations(db, f)
    return ok([Violation.model_validate(r) for r in rows], f"위반 기록 {len(rows)}건 조회 완료")


# ✅ [READ] 심각도별 권장 벌점표
@router.get("/tariff")
def read_tariff(staff: CurrentStaff):
    return ok(
        {"points": dict(settings.SEVERITY_POINTS), "enforced": settings.ENFORCE_SEVERITY_TARIFF},
        "권장 벌점표 조회 완료",
    )


# ==========================================================
# [2단계] 누적 벌점 점검 / 보정
# ==========================================================

# ✅ [CHECK] 캐시 값과 위반 기록 합계 비교
@router.get("/ledger/{student_id}")
def check_ledger(student_id: int, staff: CurrentStaff, db: Session = Depends(get_db)):
    check = ledger.check_student_points(db, student_id)
    return ok(check, "일치" if check.consistent else "누적 벌점 불일치")


# ✅ [RECONCILE] 위반 기록 합계로 누적 벌점 재계산 (관리자)
@router.post("/ledger/{student_id}/reconcile")
def reconcile_ledger(student_id: int, staff: AdminStaff, db: Session = Depends(get_db)):
    before = ledger.reconcile_student_points(db, student_id)
    after = ledger.check_student_points(db, student_id)
    return ok({"before": before, "after": after}, "누적 벌점 보정 완료")
