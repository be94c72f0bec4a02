from sqlalchemy import Column, Integer, String, Text, ForeignKey, Date
from sqlalchemy.orm import relationship
from database.db import Base
from models.mixins import TimestampMixin

# ✅ 외래키 관계 대상 모델 import
from models.students import Student as StudentModel
from models.users import User as UserModel

ACHIEVEMENT_TYPES = ("academic", "non_academic")
ACHIEVEMENT_LEVELS = ("school", "district", "city", "province")


# ✅ 수상/활동 실적 테이블 정의
class Achievement(TimestampMixin, Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)             # 실적 고유 ID (PK)
    date = Column(Date, nullable=False, index=True)                # 실적 일자
    type = Column(String(20), nullable=False)                      # 구분 (학업/비학업)
    activity_description = Column(Text, nullable=False)            # 활동 내용
    level = Column(String(20), nullable=False)                     # 수준 (교내/구/시/도)
    awarded_by = Column(String(100), nullable=False)               # 수여 기관
    notes = Column(Text, nullable=True)                            # 비고

    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)  # 대상 학생 (FK)
    recorded_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)    # 기록 교직원 (FK)

    # ✅ 관계 설정
    student = relationship(StudentModel, backref="achievements", lazy="joined")
    author = relationship(UserModel, lazy="select")
