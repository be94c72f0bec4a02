"""
schemas/records.py

- 생활지도 기록(실적/위반/상담) 입출력 스키마
- 공통 조회 필터(RecordFilter) 포함
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

AchievementType = Literal["academic", "non_academic"]
AchievementLevel = Literal["school", "district", "city", "province"]
ViolationType = Literal["discipline", "attitude", "uniform", "attendance", "academic", "other"]
Severity = Literal["light", "medium", "heavy"]
HandlingMethod = Literal["warning", "parent_call", "coaching", "suspension", "community_service"]
CounselingStatus = Literal["completed", "needs_follow_up", "rescheduled"]


# ==========================================================
# [실적]
# ==========================================================
class AchievementCreate(BaseModel):
    date: date
    student_id: int
    type: AchievementType
    activity_description: str = Field(..., min_length=5)
    level: AchievementLevel
    awarded_by: str = Field(..., min_length=2)
    notes: Optional[str] = None


class Achievement(AchievementCreate):
    id: int
    recorded_by: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================================
# [위반]
# ==========================================================
class ViolationCreate(BaseModel):
    date: date
    student_id: int
    type: ViolationType
    description: str = Field(..., min_length=5)
    severity: Severity
    points: int = Field(..., ge=1)                 # 호출자가 정한 벌점 (1 이상)
    handling_method: HandlingMethod


class Violation(ViolationCreate):
    id: int
    recorded_by: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ==========================================================
# [상담]
# ==========================================================
class CounselingSessionCreate(BaseModel):
    date: date
    student_id: int
    purpose: str = Field(..., min_length=5)
    session_summary: str = Field(..., min_length=10)
    follow_up_actions: Optional[str] = None
    status: CounselingStatus


class CounselingSession(CounselingSessionCreate):
    id: int
    recorded_by: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CounselingStatusUpdate(BaseModel):
    status: CounselingStatus


# ==========================================================
# [조회 필터]
# ==========================================================
class RecordFilter(BaseModel):
    student_id: Optional[int] = None
    class_name: Optional[str] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @model_validator(mode="after")
    def _month_needs_year(self):
        # 월만 단독으로 지정하면 어느 해인지 알 수 없음
        if self.month is not None and self.year is None:
            raise ValueError("month filter requires year")
        return self


# ==========================================================
# [벌점 원장 점검 결과]
# ==========================================================
class LedgerCheck(BaseModel):
    student_id: int
    cached_points: int       # students.total_violation_points
    ledger_points: int       # Σ violations.points
    consistent: bool
