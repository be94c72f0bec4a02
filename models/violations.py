from sqlalchemy import Column, Integer, String, Text, ForeignKey, Date, CheckConstraint
from sqlalchemy.orm import relationship
from database.db import Base
from models.mixins import TimestampMixin

from models.students import Student as StudentModel
from models.users import User as UserModel

VIOLATION_TYPES = ("discipline", "attitude", "uniform", "attendance", "academic", "other")
SEVERITIES = ("light", "medium", "heavy")
HANDLING_METHODS = ("warning", "parent_call", "coaching", "suspension", "community_service")


# ✅ 규정 위반(벌점) 기록 테이블
#    - 행이 추가될 때마다 students.total_violation_points 가 같은 트랜잭션에서 증가
class Violation(TimestampMixin, Base):
    __tablename__ = "violations"
    __table_args__ = (
        CheckConstraint("points >= 1", name="ck_violations_points_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)             # 위반 기록 ID (PK)
    date = Column(Date, nullable=False, index=True)                # 위반 일자
    type = Column(String(20), nullable=False)                      # 위반 유형
    description = Column(Text, nullable=False)                     # 내용
    severity = Column(String(10), nullable=False, index=True)      # 심각도 (light/medium/heavy)
    points = Column(Integer, nullable=False)                       # 벌점 (1 이상)
    handling_method = Column(String(30), nullable=False)           # 조치 방법

    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    student = relationship(StudentModel, backref="violations", lazy="joined")
    author = relationship(UserModel, lazy="select")
