from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["admin", "subject_teacher", "counseling_teacher", "homeroom_teacher"]


# ✅ 입력용 (POST)
class UserCreate(BaseModel):
    username: str = Field(..., min_length=3)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    full_name: str = Field(..., min_length=2)
    role: UserRole
    assigned_class: Optional[str] = None     # 담임교사만 의미 있음


# ✅ 수정용 (PUT) - 전달된 필드만 반영
class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    full_name: Optional[str] = Field(default=None, min_length=2)
    role: Optional[UserRole] = None
    assigned_class: Optional[str] = None
    is_active: Optional[bool] = None


# ✅ 출력용
class User(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    role: UserRole
    assigned_class: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
