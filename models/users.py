from sqlalchemy import Column, Integer, String, Boolean
from database.db import Base
from models.mixins import TimestampMixin

# ✅ 교직원 역할 (닫힌 집합)
ROLE_ADMIN = "admin"
ROLE_SUBJECT_TEACHER = "subject_teacher"
ROLE_COUNSELING_TEACHER = "counseling_teacher"
ROLE_HOMEROOM_TEACHER = "homeroom_teacher"

USER_ROLES = (ROLE_ADMIN, ROLE_SUBJECT_TEACHER, ROLE_COUNSELING_TEACHER, ROLE_HOMEROOM_TEACHER)


class User(TimestampMixin, Base):
    __tablename__ = "users"  # 교직원 계정 테이블

    id = Column(Integer, primary_key=True, index=True)          # 교직원 고유 ID (PK)
    username = Column(String(50), unique=True, nullable=False)  # 로그인 아이디
    email = Column(String(100), unique=True, nullable=False)    # 이메일
    full_name = Column(String(100), nullable=False)             # 이름
    role = Column(String(30), nullable=False, index=True)       # 역할 (USER_ROLES)
    assigned_class = Column(String(20), nullable=True)          # 담임 학급 (담임교사만 사용)
    is_active = Column(Boolean, nullable=False, default=True)   # 활성 여부 (삭제 대신 비활성화)
