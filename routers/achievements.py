from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentStaff
from schemas.common import ok
from schemas.records import Achievement, AchievementCreate, RecordFilter
from services import records

router = APIRouter(prefix="/achievements", tags=["수상/실적"])


# ✅ [CREATE] 실적 추가
@router.post("/", status_code=201)
def create_achievement(achievement: AchievementCreate, staff: CurrentStaff, db: Session = Depends(get_db)):
    created = records.create_achievement(db, achievement, staff.id)
    return ok(Achievement.model_validate(created), "실적이 성공적으로 추가되었습니다")


# ✅ [READ] 실적 조회
@router.get("/")
def read_achievements(
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
    rows = records.list_achievements(db, f)
    return ok([Achievement.model_validate(r) for r in rows], f"실적 {len(rows)}건 조회 완료")
