from sqlalchemy import Column, Integer, String, Boolean, CheckConstraint
from database.db import Base
from models.mixins import TimestampMixin


class Student(TimestampMixin, Base):
    __tablename__ = "students"  # 학생 기본 정보 테이블
    __table_args__ = (
        CheckConstraint("total_violation_points >= 0", name="ck_students_points_non_negative"),
        CheckConstraint("grade_level BETWEEN 1 AND 12", name="ck_students_grade_level"),
    )

    id = Column(Integer, primary_key=True, index=True)                  # 고유 학생 ID (PK)
    student_id = Column(String(30), unique=True, nullable=False)       # 학번 (외부 코드, 중복 불가)
    full_name = Column(String(100), nullable=False)                    # 학생 이름
    class_name = Column("class", String(20), nullable=False, index=True)  # 소속 학급 (예: 10A)
    grade_level = Column(Integer, nullable=False)                      # 학년 (1~12)

    # ✅ 누적 벌점: violations 합계의 캐시. services/ledger.py 에서만 변경
    total_violation_points = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)          # 재학 여부
