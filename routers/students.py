from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import AdminStaff, CurrentStaff
from schemas.common import ok
from schemas.students import BulkCreateStudents, Student, StudentCreate, StudentUpdate
from services import records

router = APIRouter(prefix="/students", tags=["학생 정보"])


# ==========================================================
# [1단계] 등록
# ==========================================================

# ✅ [CREATE] 학생 정보 추가
@router.post("/", status_code=201)
def create_student(student: StudentCreate, staff: AdminStaff, db: Session = Depends(get_db)):
    created = records.create_student(db, student)
    return ok(Student.model_validate(created), "학생 정보가 성공적으로 추가되었습니다")


# ✅ [BULK] 검증된 업로드 행 일괄 등록 (학번 중복은 실패 목록으로)
@router.post("/bulk")
def bulk_create_students(body: BulkCreateStudents, staff: AdminStaff, db: Session = Depends(get_db)):
    result = records.bulk_create_students(db, body.students)
    return ok(
        result,
        f"{len(result.successful)}명 등록, {len(result.failed)}건 실패",
    )


# ==========================================================
# [2단계] 조회 / 수정
# ==========================================================

# ✅ [READ] 학생 목록 (학급/학년/재학 여부 필터)
@router.get("/")
def read_students(
    staff: CurrentStaff,
    class_name: Optional[str] = None,
    grade_level: Optional[int] = None,
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    rows = records.list_students(db, class_name=class_name, grade_level=grade_level, is_active=is_active)
    return ok([Student.model_validate(r) for r in rows], "학생 목록 조회 완료")


# ✅ [UPDATE] 학생 정보 수정 (누적 벌점 제외)
@router.put("/{student_id}")
def update_student(student_id: int, updated: StudentUpdate, staff: AdminStaff, db: Session = Depends(get_db)):
    student = records.update_student(db, student_id, updated)
    return ok(Student.model_validate(student), "학생 정보가 성공적으로 수정되었습니다")
