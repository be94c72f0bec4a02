from datetime import date, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from config.settings import settings
from models.mixins import utcnow
from schemas.dashboard import Notification
from services import dashboard
from services.errors import NotFound, PermissionDenied, StoreUnavailable
from tests.conftest import (
    add_achievement,
    add_session,
    add_violation,
    make_student,
    make_user,
)


def _kinds(notifications):
    return [(n.kind, n.student_id, n.priority) for n in notifications]


# ==========================================================
# 알림 시나리오
# ==========================================================
def test_scenario_a_high_points_for_admin(db):
    admin = make_user(db, role="admin")
    teacher = make_user(db, role="subject_teacher")
    student = make_student(db)

    add_violation(db, student, teacher, points=75, severity="medium")

    db.refresh(student)
    assert student.total_violation_points == 75
    notes = dashboard.get_notifications(db, admin.id, "admin")
    high = [n for n in notes if n.kind == "high_violation_points"]
    assert len(high) == 1
    assert high[0].student_id == student.id
    assert high[0].priority == "medium"
    assert high[0].payload["points"] == 75


@pytest.mark.parametrize(
    "points, expected",
    [(49, []), (50, ["medium"]), (99, ["medium"]), (100, ["high"]), (130, ["high"])],
)
def test_high_points_priority_bands(db, points, expected):
    admin = make_user(db, role="admin")
    teacher = make_user(db, role="subject_teacher")
    add_violation(db, make_student(db), teacher, points=points)

    notes = dashboard.get_notifications(db, admin.id, "admin")
    assert [n.priority for n in notes if n.kind == "high_violation_points"] == expected


def test_crossing_critical_threshold_raises_priority(db):
    admin = make_user(db, role="admin")
    teacher = make_user(db, role="subject_teacher")
    student = make_student(db)

    add_violation(db, student, teacher, points=75)
    before = dashboard.get_notifications(db, admin.id, "admin")
    add_violation(db, student, teacher, points=25)
    after = dashboard.get_notifications(db, admin.id, "admin")

    assert _kinds(before) == [("high_violation_points", student.id, "medium")]
    assert _kinds(after) == [("high_violation_points", student.id, "high")]
    assert after[0].payload["points"] == 100


def test_scenario_b_homeroom_class_scoping(db):
    teacher = make_user(db, role="subject_teacher")
    homeroom_a = make_user(db, role="homeroom_teacher", assigned_class="10A")
    homeroom_b = make_user(db, role="homeroom_teacher", assigned_class="10B")
    student = make_student(db, class_name="10A")

    add_violation(db, student, teacher, points=40)
    add_violation(db, student, teacher, points=15)

    assert dashboard.get_notifications(db, homeroom_b.id, "homeroom_teacher") == []
    notes = dashboard.get_notifications(db, homeroom_a.id, "homeroom_teacher")
    assert _kinds(notes) == [("high_violation_points", student.id, "medium")]


def test_scenario_c_follow_up_author_scoping(db):
    admin = make_user(db, role="admin")
    u1 = make_user(db, role="counseling_teacher")
    u2 = make_user(db, role="counseling_teacher")
    student = make_student(db)

    session = add_session(db, student, u1, status="needs_follow_up")

    mine = dashboard.get_notifications(db, u1.id, "counseling_teacher")
    assert [(n.kind, n.id) for n in mine] == [("follow_up_needed", session.id)]
    assert mine[0].priority == "medium"
    assert dashboard.get_notifications(db, u2.id, "counseling_teacher") == []
    assert [n.id for n in dashboard.get_notifications(db, admin.id, "admin")] == [session.id]


def test_completed_sessions_do_not_alert(db):
    admin = make_user(db)
    counselor = make_user(db, role="counseling_teacher")
    add_session(db, make_student(db), counselor, status="completed")
    add_session(db, make_student(db), counselor, status="rescheduled")

    assert dashboard.get_notifications(db, admin.id, "admin") == []


def test_subject_teacher_gets_no_notifications(db):
    teacher = make_user(db, role="subject_teacher")
    student = make_student(db)
    add_violation(db, student, teacher, points=120, severity="heavy")

    assert dashboard.get_notifications(db, teacher.id, "subject_teacher") == []


def test_inactive_students_do_not_raise_point_alerts(db):
    admin = make_user(db)
    student = make_student(db, is_active=False)
    add_violation(db, student, admin, points=60)

    assert [n.kind for n in dashboard.get_notifications(db, admin.id, "admin")] == []


def test_severe_violation_window_uses_creation_time(db):
    admin = make_user(db)
    homeroom = make_user(db, role="homeroom_teacher", assigned_class="10A")
    student = make_student(db, class_name="10A")
    # 오래된 사건 날짜라도 최근에 기록되면 알림 대상
    old_event = add_violation(db, student, admin, points=5, severity="heavy", on=date(2020, 1, 1))

    now = utcnow()
    notes = dashboard.get_notifications(db, homeroom.id, "homeroom_teacher", now=now)
    assert [(n.kind, n.id, n.priority) for n in notes] == [("severe_violation", old_event.id, "high")]

    later = now + timedelta(days=settings.SEVERE_WINDOW_DAYS + 1)
    assert dashboard.get_notifications(db, homeroom.id, "homeroom_teacher", now=later) == []


def test_notifications_sorted_by_priority_then_generator_order(db):
    admin = make_user(db)
    counselor = make_user(db, role="counseling_teacher")
    medium_points = make_student(db, full_name="Medium Points")
    high_points = make_student(db, full_name="High Points")

    add_violation(db, medium_points, admin, points=55)
    add_violation(db, high_points, admin, points=130)
    follow = add_session(db, medium_points, counselor, status="needs_follow_up")
    severe = add_violation(db, medium_points, admin, points=1, severity="heavy")

    notes = dashboard.get_notifications(db, admin.id, "admin")

    assert [(n.kind, n.id) for n in notes] == [
        ("high_violation_points", high_points.id),
        ("severe_violation", severe.id),
        ("high_violation_points", medium_points.id),
        ("follow_up_needed", follow.id),
    ]


def test_notifications_truncated(db, monkeypatch):
    admin = make_user(db)
    counselor = make_user(db, role="counseling_teacher")
    student = make_student(db)
    for _ in range(5):
        add_session(db, student, counselor, status="needs_follow_up")
    monkeypatch.setattr(settings, "NOTIFICATION_LIMIT", 3)

    assert len(dashboard.get_notifications(db, admin.id, "admin")) == 3


def _note(priority, n):
    return Notification(
        id=n, kind="follow_up_needed", student_id=n, student_name=f"S{n}",
        message="m", priority=priority,
    )


def test_sort_by_priority_is_stable():
    notes = [_note("medium", 1), _note("high", 2), _note("medium", 3), _note("high", 4)]

    ordered = dashboard.sort_by_priority(notes)

    assert [(n.priority, n.id) for n in ordered] == [
        ("high", 2), ("high", 4), ("medium", 1), ("medium", 3),
    ]


def test_sort_by_priority_low_last():
    ordered = dashboard.sort_by_priority([_note("low", 1), _note("medium", 2), _note("high", 3)])
    assert [n.priority for n in ordered] == ["high", "medium", "low"]


# ==========================================================
# 통계
# ==========================================================
def test_admin_stats(db):
    admin = make_user(db)
    make_user(db, role="subject_teacher", is_active=False)
    s1 = make_student(db)
    make_student(db, is_active=False)
    add_violation(db, s1, admin, points=3)
    add_achievement(db, s1, admin)
    add_session(db, s1, admin)

    stats = dashboard.get_dashboard_data(db, admin.id, "admin").stats

    assert stats.total_students == 1
    assert stats.total_users == 1
    assert stats.total_achievements == 1
    assert stats.total_violations == 1
    assert stats.total_counseling_sessions == 1
    assert stats.my_records is None


def test_subject_teacher_stats_count_own_records(db):
    me = make_user(db, role="subject_teacher")
    other = make_user(db, role="subject_teacher")
    student = make_student(db)
    add_violation(db, student, me, points=2)
    add_achievement(db, student, me)
    add_achievement(db, student, other)

    stats = dashboard.get_dashboard_data(db, me.id, "subject_teacher").stats

    assert stats.my_records == 2
    assert stats.total_students is None


def test_counseling_teacher_stats(db):
    me = make_user(db, role="counseling_teacher")
    other = make_user(db, role="counseling_teacher")
    student = make_student(db)
    add_session(db, student, me, status="needs_follow_up")
    add_session(db, student, me, status="completed")
    add_session(db, student, other, status="needs_follow_up")

    stats = dashboard.get_dashboard_data(db, me.id, "counseling_teacher").stats

    assert stats.my_records == 2
    assert stats.pending_follow_ups == 1


def test_homeroom_stats_scoped_to_class(db):
    admin = make_user(db)
    homeroom = make_user(db, role="homeroom_teacher", assigned_class="10A")
    mine = make_student(db, class_name="10A")
    make_student(db, class_name="10A", is_active=False)
    theirs = make_student(db, class_name="10B")
    add_violation(db, mine, admin, points=1)
    add_violation(db, theirs, admin, points=1)
    add_achievement(db, mine, admin)

    stats = dashboard.get_dashboard_data(db, homeroom.id, "homeroom_teacher").stats

    assert stats.class_students == 1
    assert stats.class_violations == 1
    assert stats.class_achievements == 1


def test_homeroom_without_class_gets_empty_dashboard(db):
    homeroom = make_user(db, role="homeroom_teacher", assigned_class=None)
    add_achievement(db, make_student(db), make_user(db))

    data = dashboard.get_dashboard_data(db, homeroom.id, "homeroom_teacher")

    assert data.stats.class_students is None
    assert data.recent_activity == []
    assert data.notifications == []


# ==========================================================
# 최근 활동
# ==========================================================
def test_recent_activity_merges_streams_by_date(db):
    admin = make_user(db)
    student = make_student(db, full_name="Kim Minsu")
    ach = add_achievement(db, student, admin, on=date(2025, 3, 1))
    vio = add_violation(db, student, admin, points=2, on=date(2025, 3, 5))
    ses = add_session(db, student, admin, on=date(2025, 3, 3))

    activity = dashboard.get_dashboard_data(db, admin.id, "admin").recent_activity

    assert [(a.kind, a.id) for a in activity] == [
        ("violation", vio.id), ("counseling", ses.id), ("achievement", ach.id),
    ]
    assert activity[0].student_name == "Kim Minsu"
    assert activity[2].description == "Science fair winner"


def test_recent_activity_tie_break_is_stream_then_insertion_order(db):
    admin = make_user(db)
    student = make_student(db)
    same_day = date(2025, 4, 1)
    s1 = add_session(db, student, admin, on=same_day)
    v1 = add_violation(db, student, admin, points=1, on=same_day)
    a1 = add_achievement(db, student, admin, on=same_day)
    a2 = add_achievement(db, student, admin, on=same_day)

    activity = dashboard.get_dashboard_data(db, admin.id, "admin").recent_activity

    assert [(a.kind, a.id) for a in activity] == [
        ("achievement", a1.id), ("achievement", a2.id), ("violation", v1.id), ("counseling", s1.id),
    ]


def test_recent_activity_truncated_to_limit(db):
    admin = make_user(db)
    student = make_student(db)
    for day in range(1, 13):
        add_achievement(db, student, admin, on=date(2025, 5, day))

    activity = dashboard.get_dashboard_data(db, admin.id, "admin").recent_activity

    assert len(activity) == settings.RECENT_ACTIVITY_LIMIT
    assert activity[0].date == date(2025, 5, 12)


def test_subject_teacher_activity_is_own_records_only(db):
    me = make_user(db, role="subject_teacher")
    other = make_user(db, role="subject_teacher")
    student = make_student(db)
    mine = add_achievement(db, student, me)
    add_achievement(db, student, other)
    add_session(db, student, me)

    activity = dashboard.get_dashboard_data(db, me.id, "subject_teacher").recent_activity

    assert [(a.kind, a.id) for a in activity] == [("achievement", mine.id)]


def test_counselor_activity_is_own_sessions_only(db):
    me = make_user(db, role="counseling_teacher")
    other = make_user(db, role="counseling_teacher")
    student = make_student(db)
    mine = add_session(db, student, me)
    add_session(db, student, other)
    add_achievement(db, student, me)

    activity = dashboard.get_dashboard_data(db, me.id, "counseling_teacher").recent_activity

    assert [(a.kind, a.id) for a in activity] == [("counseling", mine.id)]


def test_homeroom_activity_is_class_scoped(db):
    admin = make_user(db)
    homeroom = make_user(db, role="homeroom_teacher", assigned_class="10B")
    in_class = make_student(db, class_name="10B")
    out_class = make_student(db, class_name="10C")
    kept = add_achievement(db, in_class, admin)
    add_achievement(db, out_class, admin)

    activity = dashboard.get_dashboard_data(db, homeroom.id, "homeroom_teacher").recent_activity

    assert [a.id for a in activity] == [kept.id]


# ==========================================================
# 실패 처리
# ==========================================================
def test_store_failure_fails_whole_dashboard(db, monkeypatch):
    admin = make_user(db)

    def broken(*args, **kwargs):
        raise OperationalError("SELECT ...", {}, Exception("connection lost"))

    monkeypatch.setattr(dashboard, "_follow_up_alerts", broken)
    with pytest.raises(StoreUnavailable):
        dashboard.get_dashboard_data(db, admin.id, "admin")


def test_unknown_staff(db):
    with pytest.raises(NotFound):
        dashboard.get_dashboard_data(db, 404, "admin")


def test_unknown_role(db):
    user = make_user(db)
    with pytest.raises(ValueError):
        dashboard.get_notifications(db, user.id, "principal")


def test_inactive_staff_gets_no_view(db):
    retired = make_user(db, role="admin", is_active=False)
    with pytest.raises(PermissionDenied):
        dashboard.get_dashboard_data(db, retired.id, "admin")
    with pytest.raises(PermissionDenied):
        dashboard.get_notifications(db, retired.id, "admin")


def test_role_must_match_stored_role(db):
    teacher = make_user(db, role="subject_teacher")
    add_violation(db, make_student(db), teacher, points=120)

    with pytest.raises(PermissionDenied):
        dashboard.get_notifications(db, teacher.id, "admin")
    assert dashboard.get_notifications(db, teacher.id, "subject_teacher") == []
