"""
services/dashboard.py

역할별 대시보드 집계 엔진
- stats: 역할별 카운터
- recent_activity: 실적/위반/상담 3개 스트림을 날짜 내림차순으로 병합 (최대 RECENT_ACTIVITY_LIMIT)
- notifications: 누적 벌점 / 상담 후속조치 / 중대 위반 알림을 우선순위 순으로 (최대 NOTIFICATION_LIMIT)

매 호출마다 저장소를 다시 읽는 조회 전용 로직이며, 열람 범위는 services/visibility.py 가 결정한다.
저장소 오류가 나면 일부만 돌려주지 않고 전체를 StoreUnavailable 로 실패시킨다.
"""

import heapq
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from itertools import islice
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from models.achievements import Achievement as AchievementModel
from models.counseling_sessions import CounselingSession as CounselingModel, STATUS_NEEDS_FOLLOW_UP
from models.mixins import utcnow
from models.students import Student as StudentModel
from models.users import (
    User as UserModel,
    ROLE_ADMIN,
    ROLE_SUBJECT_TEACHER,
    ROLE_COUNSELING_TEACHER,
    ROLE_HOMEROOM_TEACHER,
    USER_ROLES,
)
from models.violations import Violation as ViolationModel
from schemas.dashboard import DashboardData, DashboardStats, Notification, RecentActivity
from services.errors import NotFound, PermissionDenied, StoreUnavailable
from services.visibility import (
    SCOPE_ACTIVITY,
    SCOPE_FOLLOW_UP_ALERT,
    SCOPE_HIGH_POINTS_ALERT,
    SCOPE_SEVERE_ALERT,
    effective_class,
    is_visible,
)

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

# ✅ 역할별 최근 활동 스트림 (통계 집계 대상과 동일)
ACTIVITY_STREAMS = {
    ROLE_ADMIN: ("achievement", "violation", "counseling"),
    ROLE_SUBJECT_TEACHER: ("achievement", "violation"),
    ROLE_COUNSELING_TEACHER: ("counseling",),
    ROLE_HOMEROOM_TEACHER: ("achievement", "violation", "counseling"),
}


class Viewer:
    """집계 요청자 (인증 게이트웨이가 넘겨준 교직원 ID/역할 + 담임 학급)"""

    def __init__(self, staff_id: int, role: str, assigned_class: Optional[str]):
        self.staff_id = staff_id
        self.role = role
        self.assigned_class = effective_class(role, assigned_class)

    def can_see(self, record_class, record_author_id, scope) -> bool:
        return is_visible(
            self.role, self.assigned_class, record_class, record_author_id, self.staff_id, scope
        )


@contextmanager
def _store_read(what: str):
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"대시보드 집계 실패 ({what}): {e}")
        raise StoreUnavailable(f"failed to read {what}: {e}") from e


def _load_viewer(db: Session, staff_id: int, role: str) -> Viewer:
    if role not in USER_ROLES:
        raise ValueError(f"unknown role: {role}")
    user = db.get(UserModel, staff_id)
    if user is None:
        raise NotFound("user", staff_id)
    # ✅ 비활성 계정이나 저장된 역할과 다른 역할로는 집계하지 않음
    if not user.is_active:
        raise PermissionDenied(f"user {staff_id} is inactive")
    if user.role != role:
        raise PermissionDenied(f"user {staff_id} has role {user.role}, not {role}")
    return Viewer(staff_id, role, user.assigned_class)


# ==========================================================
# [1] 통계
# ==========================================================
def _count(db: Session, stmt) -> int:
    return int(db.execute(stmt).scalar_one())


def _class_count(db: Session, model, class_name: str) -> int:
    return _count(
        db,
        select(func.count(model.id))
        .join(StudentModel, model.student_id == StudentModel.id)
        .where(StudentModel.class_name == class_name),
    )


def compute_stats(db: Session, viewer: Viewer) -> DashboardStats:
    if viewer.role == ROLE_ADMIN:
        return DashboardStats(
            total_students=_count(db, select(func.count(StudentModel.id)).where(StudentModel.is_active.is_(True))),
            total_users=_count(db, select(func.count(UserModel.id)).where(UserModel.is_active.is_(True))),
            total_achievements=_count(db, select(func.count(AchievementModel.id))),
            total_violations=_count(db, select(func.count(ViolationModel.id))),
            total_counseling_sessions=_count(db, select(func.count(CounselingModel.id))),
        )

    if viewer.role == ROLE_SUBJECT_TEACHER:
        achievements = _count(
            db, select(func.count(AchievementModel.id)).where(AchievementModel.recorded_by == viewer.staff_id)
        )
        violations = _count(
            db, select(func.count(ViolationModel.id)).where(ViolationModel.recorded_by == viewer.staff_id)
        )
        return DashboardStats(my_records=achievements + violations)

    if viewer.role == ROLE_COUNSELING_TEACHER:
        mine = select(func.count(CounselingModel.id)).where(CounselingModel.recorded_by == viewer.staff_id)
        return DashboardStats(
            my_records=_count(db, mine),
            pending_follow_ups=_count(db, mine.where(CounselingModel.status == STATUS_NEEDS_FOLLOW_UP)),
        )

    # 담임교사: 배정 학급이 없으면 빈 통계
    if viewer.assigned_class is None:
        return DashboardStats()
    return DashboardStats(
        class_students=_count(
            db,
            select(func.count(StudentModel.id)).where(
                StudentModel.class_name == viewer.assigned_class,
                StudentModel.is_active.is_(True),
            ),
        ),
        class_violations=_class_count(db, ViolationModel, viewer.assigned_class),
        class_achievements=_class_count(db, AchievementModel, viewer.assigned_class),
    )


# ==========================================================
# [2] 최근 활동
# ==========================================================
_STREAM_SOURCES = {
    "achievement": (AchievementModel, AchievementModel.activity_description),
    "violation": (ViolationModel, ViolationModel.description),
    "counseling": (CounselingModel, CounselingModel.purpose),
}


def _activity_stream(db: Session, kind: str, viewer: Viewer) -> Iterator[RecentActivity]:
    """한 종류의 기록을 날짜 내림차순(같은 날짜는 등록 순)으로 열람 가능한 것만 흘려보냄"""
    model, description = _STREAM_SOURCES[kind]
    stmt = (
        select(
            model.id,
            model.date,
            model.recorded_by,
            description.label("description"),
            StudentModel.full_name,
            StudentModel.class_name.label("class_name"),
        )
        .join(StudentModel, model.student_id == StudentModel.id)
        .order_by(model.date.desc(), model.id.asc())
    )
    for row in db.execute(stmt):
        if viewer.can_see(row.class_name, row.recorded_by, SCOPE_ACTIVITY):
            yield RecentActivity(
                id=row.id,
                kind=kind,
                student_name=row.full_name,
                description=row.description,
                date=row.date,
            )


def merge_activity(streams: Iterable[Iterable[RecentActivity]], limit: int) -> List[RecentActivity]:
    """
    날짜 내림차순 병합. heapq.merge 는 안정적이므로
    같은 날짜는 스트림 순서(실적 → 위반 → 상담), 스트림 내 등록 순서를 유지한다.
    """
    merged = heapq.merge(*streams, key=lambda a: a.date, reverse=True)
    return list(islice(merged, limit))


def recent_activity(db: Session, viewer: Viewer) -> List[RecentActivity]:
    if viewer.role == ROLE_HOMEROOM_TEACHER and viewer.assigned_class is None:
        return []
    streams = [_activity_stream(db, kind, viewer) for kind in ACTIVITY_STREAMS[viewer.role]]
    return merge_activity(streams, settings.RECENT_ACTIVITY_LIMIT)


# ==========================================================
# [3] 알림
# ==========================================================
def _high_points_alerts(db: Session, viewer: Viewer) -> Iterator[Notification]:
    stmt = (
        select(StudentModel)
        .where(
            StudentModel.total_violation_points >= settings.HIGH_POINTS_THRESHOLD,
            StudentModel.is_active.is_(True),
        )
        .order_by(StudentModel.id)
    )
    for student in db.execute(stmt).scalars():
        if not viewer.can_see(student.class_name, None, SCOPE_HIGH_POINTS_ALERT):
            continue
        points = student.total_violation_points
        yield Notification(
            id=student.id,
            kind="high_violation_points",
            student_id=student.id,
            student_name=student.full_name,
            message=f"{student.full_name} has {points} violation points",
            priority="high" if points >= settings.CRITICAL_POINTS_THRESHOLD else "medium",
            payload={"points": points, "class_name": student.class_name},
        )


def _follow_up_alerts(db: Session, viewer: Viewer) -> Iterator[Notification]:
    stmt = (
        select(CounselingModel, StudentModel.full_name, StudentModel.class_name)
        .join(StudentModel, CounselingModel.student_id == StudentModel.id)
        .where(CounselingModel.status == STATUS_NEEDS_FOLLOW_UP)
        .order_by(CounselingModel.id)
    )
    for session, student_name, class_name in db.execute(stmt).unique():
        if not viewer.can_see(class_name, session.recorded_by, SCOPE_FOLLOW_UP_ALERT):
            continue
        yield Notification(
            id=session.id,
            kind="follow_up_needed",
            student_id=session.student_id,
            student_name=student_name,
            message=f"Follow-up needed for {student_name}",
            priority="medium",
            payload={"purpose": session.purpose, "date": session.date.isoformat()},
        )


def _severe_violation_alerts(db: Session, viewer: Viewer, now: datetime) -> Iterator[Notification]:
    since = now - timedelta(days=settings.SEVERE_WINDOW_DAYS)
    stmt = (
        select(ViolationModel, StudentModel.full_name, StudentModel.class_name)
        .join(StudentModel, ViolationModel.student_id == StudentModel.id)
        .where(ViolationModel.severity == "heavy", ViolationModel.created_at >= since)
        .order_by(ViolationModel.id)
    )
    for violation, student_name, class_name in db.execute(stmt).unique():
        if not viewer.can_see(class_name, violation.recorded_by, SCOPE_SEVERE_ALERT):
            continue
        yield Notification(
            id=violation.id,
            kind="severe_violation",
            student_id=violation.student_id,
            student_name=student_name,
            message=f"Severe violation: {violation.description}",
            priority="high",
            payload={"description": violation.description, "points": violation.points},
        )


def sort_by_priority(notifications: Iterable[Notification]) -> List[Notification]:
    """우선순위 내림차순, 같은 우선순위는 생성 순서 유지 (sorted 는 안정 정렬)"""
    return sorted(notifications, key=lambda n: PRIORITY_ORDER[n.priority], reverse=True)


def build_notifications(db: Session, viewer: Viewer, now: Optional[datetime] = None) -> List[Notification]:
    now = now or utcnow()
    with _store_read("notifications"):
        generated = [
            *_high_points_alerts(db, viewer),
            *_follow_up_alerts(db, viewer),
            *_severe_violation_alerts(db, viewer, now),
        ]
    return sort_by_priority(generated)[: settings.NOTIFICATION_LIMIT]


# ==========================================================
# [공개 API]
# ==========================================================
def get_notifications(db: Session, staff_id: int, role: str, now: Optional[datetime] = None) -> List[Notification]:
    with _store_read("viewer"):
        viewer = _load_viewer(db, staff_id, role)
    return build_notifications(db, viewer, now)


def get_dashboard_data(db: Session, staff_id: int, role: str, now: Optional[datetime] = None) -> DashboardData:
    with _store_read("viewer"):
        viewer = _load_viewer(db, staff_id, role)
    with _store_read("stats"):
        stats = compute_stats(db, viewer)
    with _store_read("recent activity"):
        activity = recent_activity(db, viewer)
    notifications = build_notifications(db, viewer, now)

    logger.debug(
        f"대시보드 집계 - staff_id={staff_id}, role={role}, "
        f"activity={len(activity)}, notifications={len(notifications)}"
    )
    return DashboardData(role=role, stats=stats, recent_activity=activity, notifications=notifications)
