from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from schemas.users import UserRole

ActivityKind = Literal["achievement", "violation", "counseling"]
NotificationKind = Literal["high_violation_points", "follow_up_needed", "severe_violation"]
Priority = Literal["high", "medium", "low"]


# ✅ 역할별 통계 (해당 역할에 없는 항목은 None)
class DashboardStats(BaseModel):
    total_students: Optional[int] = None
    total_users: Optional[int] = None
    total_achievements: Optional[int] = None
    total_violations: Optional[int] = None
    total_counseling_sessions: Optional[int] = None
    class_students: Optional[int] = None
    class_violations: Optional[int] = None
    class_achievements: Optional[int] = None
    pending_follow_ups: Optional[int] = None
    my_records: Optional[int] = None


class RecentActivity(BaseModel):
    id: int
    kind: ActivityKind
    student_name: str
    description: str
    date: date


class Notification(BaseModel):
    id: int                       # 원본 레코드 ID (학생/상담/위반)
    kind: NotificationKind
    student_id: int
    student_name: str
    message: str
    priority: Priority
    payload: Dict[str, Any] = Field(default_factory=dict)


class DashboardData(BaseModel):
    role: UserRole
    stats: DashboardStats
    recent_activity: List[RecentActivity]
    notifications: List[Notification]
