from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import AdminStaff
from schemas.common import ok
from schemas.users import User, UserCreate, UserRole, UserUpdate
from services import records

router = APIRouter(prefix="/users", tags=["교직원"])


# ✅ [CREATE] 교직원 등록 (관리자)
@router.post("/", status_code=201)
def create_user(user: UserCreate, staff: AdminStaff, db: Session = Depends(get_db)):
    created = records.create_user(db, user)
    return ok(User.model_validate(created), "교직원이 등록되었습니다")


# ✅ [READ] 교직원 목록
@router.get("/")
def read_users(
    staff: AdminStaff,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    rows = records.list_users(db, role=role, is_active=is_active)
    return ok([User.model_validate(u) for u in rows], "교직원 목록 조회 완료")


# ✅ [UPDATE] 역할/학급/활성 상태 수정
@router.put("/{user_id}")
def update_user(user_id: int, updated: UserUpdate, staff: AdminStaff, db: Session = Depends(get_db)):
    user = records.update_user(db, user_id, updated)
    return ok(User.model_validate(user), "교직원 정보가 수정되었습니다")


# ✅ [DELETE] 비활성화 (물리 삭제 없음)
@router.delete("/{user_id}")
def delete_user(user_id: int, staff: AdminStaff, db: Session = Depends(get_db)):
    user = records.deactivate_user(db, user_id)
    return ok(User.model_validate(user), "교직원이 비활성화되었습니다")
