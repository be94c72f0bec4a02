from datetime import datetime, timezone

from sqlalchemy import Column, DateTime


def utcnow() -> datetime:
    # DB에는 naive UTC로 저장 (MySQL DATETIME / SQLite 공통)
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)   # 생성 시각
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)  # 수정 시각
