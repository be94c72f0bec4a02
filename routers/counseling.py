from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentStaff
from schemas.common import ok
from schemas.records import CounselingSession, CounselingSessionCreate, CounselingStatusUpdate, RecordFilter
from services import records

router = APIRouter(prefix="/counseling", tags=["counseling"])


# ==========================================================
# [1단계] 상담 기록 추가 / 조회
# ==========================================================
@router.post("/", status_code=201)
def create_session(session: CounselingSessionCreate, staff: CurrentStaff, db: Session = Depends(get_db)):
    created = records.create_counseling_session(db, session, staff.id)
    return ok(CounselingSession.model_validate(created), "상담 기록이 성공적으로 추가되었습니다")


@router.get("/")
def read_sessions(
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
    rows = records.list_counseling_sessions(db, f)
    return ok([CounselingSession.model_validate(r) for r in rows], "상담 기록 조회 성공")


# ==========================================================
# [2단계] 상담 상태 변경
# ==========================================================
@router.patch("/{session_id}/status")
def update_status(session_id: int, body: CounselingStatusUpdate, staff: CurrentStaff, db: Session = Depends(get_db)):
    updated = records.update_counseling_status(db, session_id, body.status, staff.id)
    return ok(CounselingSession.model_validate(updated), "상담 상태가 변경되었습니다")
