import csv
import sys

from pydantic import ValidationError
from sqlalchemy.orm import Session

from database.db import SessionLocal, init_db
from schemas.students import BulkCreateResult, StudentCreate
from services.records import bulk_create_students

CSV_PATH = "data/students.csv"  # ✅ 기본 파일 경로 (student_id,full_name,class_name,grade_level)
COLUMNS = ("student_id", "full_name", "class_name", "grade_level")


def _parse_row(row: dict) -> StudentCreate:
    # 열이 모자란 행은 DictReader 가 None 으로 채움
    missing = [col for col in COLUMNS if not (row.get(col) or "").strip()]
    if missing:
        raise ValueError(f"missing column(s): {', '.join(missing)}")
    return StudentCreate(
        student_id=row["student_id"].strip(),       # 학번
        full_name=row["full_name"].strip(),         # 이름
        class_name=row["class_name"].strip(),       # 학급
        grade_level=int(row["grade_level"]),        # 학년
    )


def load_rows(path: str):
    """CSV → 검증된 행 / 오류 행((행 번호, 오류) 목록) 분리"""
    valid, invalid = [], []
    with open(path, newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.DictReader(csvfile)
        for line_no, row in enumerate(reader, start=2):   # 1행은 헤더
            try:
                valid.append(_parse_row(row))
            except (ValueError, ValidationError) as e:
                invalid.append((line_no, str(e)))
    return valid, invalid


def import_rows(db: Session, path: str):
    """CSV 를 읽어 유효한 행만 일괄 등록 (이미 있는 학번은 실패로 집계)"""
    valid, invalid = load_rows(path)
    result: BulkCreateResult = bulk_create_students(db, valid)
    return result, invalid


def migrate_students(path: str = CSV_PATH):
    init_db()
    db: Session = SessionLocal()
    try:
        result, invalid = import_rows(db, path)
    finally:
        db.close()

    for line_no, error in invalid:
        print(f"⚠️ {line_no}행 건너뜀: {error}")
    for failure in result.failed:
        print(f"⚠️ {failure.student_data['student_id']}: {failure.error}")
    print(f"✅ 학생 CSV 등록 완료 - 성공 {len(result.successful)}명, 실패 {len(result.failed) + len(invalid)}건")


if __name__ == "__main__":
    migrate_students(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
