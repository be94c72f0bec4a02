from typing import Optional, Annotated
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from config.settings import settings
from database.db import get_db
from models.users import User as UserModel, ROLE_ADMIN
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]
StaffHeader = Annotated[Optional[int], Header(alias="X-Staff-Id")]


def require_internal_token(authorization: AuthHeader = None):
    """인증 게이트웨이가 붙여주는 내부 토큰 확인 (자격 증명 자체는 게이트웨이 책임)"""
    # 설정 누락 방지: 환경에서 토큰이 비어있으면 개발 중 오류를 명확히 드러냄
    if not getattr(settings, "INTERNAL_TOKEN", None):
        raise HTTPException(status_code=500, detail="Server token not configured")

    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # "Bearer <token>" 파싱
    try:
        scheme, token = authorization.split(" ", 1)
    except ValueError:
        raise HTTPException(
            status_code=401,
            detail="Invalid Authorization header format",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid auth scheme",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 타이밍 안전 비교
    if not hmac.compare_digest(token.strip(), settings.INTERNAL_TOKEN):
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_staff(
    staff_id: StaffHeader = None,
    _: None = Depends(require_internal_token),
    db: Session = Depends(get_db),
) -> UserModel:
    """X-Staff-Id 로 호출 교직원을 조회 (활성 계정만)"""
    if staff_id is None:
        raise HTTPException(status_code=401, detail="Missing X-Staff-Id header")

    user = db.get(UserModel, staff_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="Unknown or inactive staff user")
    return user


def require_admin(staff: UserModel = Depends(get_current_staff)) -> UserModel:
    if staff.role != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Admin role required")
    return staff


CurrentStaff = Annotated[UserModel, Depends(get_current_staff)]
AdminStaff = Annotated[UserModel, Depends(require_admin)]
