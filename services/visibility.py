"""
services/visibility.py

역할별 열람 범위 판단 (순수 함수).
- 대시보드/알림 집계는 반드시 is_visible() 를 거쳐 레코드를 걸러낸다.
- 역할 목록은 닫힌 집합이며, 모르는 역할은 ValueError (전체 허용으로 새지 않음).
"""

from typing import Callable, Dict, Optional

from models.users import (
    ROLE_ADMIN,
    ROLE_SUBJECT_TEACHER,
    ROLE_COUNSELING_TEACHER,
    ROLE_HOMEROOM_TEACHER,
)

# ✅ 열람 범위 구분
SCOPE_ACTIVITY = "activity"                    # 통계/최근 활동
SCOPE_HIGH_POINTS_ALERT = "high_points_alert"  # 누적 벌점 알림
SCOPE_FOLLOW_UP_ALERT = "follow_up_alert"      # 상담 후속조치 알림
SCOPE_SEVERE_ALERT = "severe_alert"            # 중대 위반 알림

SCOPES = (SCOPE_ACTIVITY, SCOPE_HIGH_POINTS_ALERT, SCOPE_FOLLOW_UP_ALERT, SCOPE_SEVERE_ALERT)


def _admin(viewer_class, record_class, record_author_id, viewer_id, scope) -> bool:
    return True


def _homeroom(viewer_class, record_class, record_author_id, viewer_id, scope) -> bool:
    # 상담 후속조치는 상담교사 본인 업무
    if scope == SCOPE_FOLLOW_UP_ALERT:
        return False
    return viewer_class is not None and record_class == viewer_class


def _counseling(viewer_class, record_class, record_author_id, viewer_id, scope) -> bool:
    if scope in (SCOPE_ACTIVITY, SCOPE_FOLLOW_UP_ALERT):
        return record_author_id == viewer_id
    return False


def _subject(viewer_class, record_class, record_author_id, viewer_id, scope) -> bool:
    # 교과교사는 본인이 기록한 것만 보고, 시스템 알림은 받지 않음
    if scope == SCOPE_ACTIVITY:
        return record_author_id == viewer_id
    return False


_POLICY: Dict[str, Callable[..., bool]] = {
    ROLE_ADMIN: _admin,
    ROLE_HOMEROOM_TEACHER: _homeroom,
    ROLE_COUNSELING_TEACHER: _counseling,
    ROLE_SUBJECT_TEACHER: _subject,
}


def is_visible(
    viewer_role: str,
    viewer_assigned_class: Optional[str],
    record_class: Optional[str],
    record_author_id: Optional[int],
    viewer_id: int,
    scope: str = SCOPE_ACTIVITY,
) -> bool:
    """viewer 가 해당 레코드를 scope 범위에서 볼 수 있는지 여부"""
    if scope not in SCOPES:
        raise ValueError(f"unknown visibility scope: {scope}")
    try:
        rule = _POLICY[viewer_role]
    except KeyError:
        raise ValueError(f"unknown role: {viewer_role}") from None
    return rule(viewer_assigned_class, record_class, record_author_id, viewer_id, scope)


def effective_class(role: str, assigned_class: Optional[str]) -> Optional[str]:
    """담임교사가 아니면 학급 배정은 열람 판단에 쓰지 않는다"""
    return assigned_class if role == ROLE_HOMEROOM_TEACHER else None
