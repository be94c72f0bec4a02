from sqlalchemy import Column, Integer, String, Text, ForeignKey, Date
from sqlalchemy.orm import relationship
from database.db import Base
from models.mixins import TimestampMixin

from models.students import Student as StudentModel
from models.users import User as UserModel

STATUS_COMPLETED = "completed"
STATUS_NEEDS_FOLLOW_UP = "needs_follow_up"
STATUS_RESCHEDULED = "rescheduled"

COUNSELING_STATUSES = (STATUS_COMPLETED, STATUS_NEEDS_FOLLOW_UP, STATUS_RESCHEDULED)


# ✅ 상담 기록 테이블
class CounselingSession(TimestampMixin, Base):
    __tablename__ = "counseling_sessions"

    id = Column(Integer, primary_key=True, index=True)             # 상담 고유 ID (PK)
    date = Column(Date, nullable=False, index=True)                # 상담 일자
    purpose = Column(String(200), nullable=False)                  # 상담 목적
    session_summary = Column(Text, nullable=False)                 # 상담 요약
    follow_up_actions = Column(Text, nullable=True)                # 후속 조치
    status = Column(String(20), nullable=False, index=True)        # 상태 (COUNSELING_STATUSES)

    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    student = relationship(StudentModel, backref="counseling_sessions", lazy="joined")
    author = relationship(UserModel, lazy="select")
