from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ✅ 입력용 (POST) - 일괄 등록 행도 같은 형태
class StudentCreate(BaseModel):
    student_id: str = Field(..., min_length=1)          # 학번
    full_name: str = Field(..., min_length=2)           # 이름
    class_name: str = Field(..., min_length=1)          # 학급
    grade_level: int = Field(..., ge=1, le=12)          # 학년


# ✅ 수정용 (PUT) - 누적 벌점은 수정 불가 (벌점 원장 전용)
class StudentUpdate(BaseModel):
    student_id: Optional[str] = Field(default=None, min_length=1)
    full_name: Optional[str] = Field(default=None, min_length=2)
    class_name: Optional[str] = Field(default=None, min_length=1)
    grade_level: Optional[int] = Field(default=None, ge=1, le=12)
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


# ✅ 전체 출력용
class Student(BaseModel):
    id: int
    student_id: str
    full_name: str
    class_name: str
    grade_level: int
    total_violation_points: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ✅ 일괄 등록 요청/결과
class BulkCreateStudents(BaseModel):
    students: List[StudentCreate]


class BulkFailure(BaseModel):
    student_data: Dict[str, Any]
    error: str


class BulkCreateResult(BaseModel):
    successful: List[Student] = []
    failed: List[BulkFailure] = []
