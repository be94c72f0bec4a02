from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentStaff
from schemas.common import ok
from services import dashboard as dashboard_service

router = APIRouter(prefix="/dashboard", tags=["대시보드"])


# ==========================================================
# [DASHBOARD] 역할별 통계 + 최근 활동 + 알림 한 번에 반환
# ==========================================================
@router.get("/")
def get_dashboard(staff: CurrentStaff, db: Session = Depends(get_db)):
    data = dashboard_service.get_dashboard_data(db, staff.id, staff.role)
    return ok(data, f"{staff.role} 대시보드 조회 성공")


# ✅ [READ] 알림만 조회 (매 호출마다 새로 계산)
@router.get("/notifications")
def get_notifications(staff: CurrentStaff, db: Session = Depends(get_db)):
    notifications = dashboard_service.get_notifications(db, staff.id, staff.role)
    return ok(notifications, f"알림 {len(notifications)}건 조회 성공")
