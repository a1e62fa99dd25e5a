from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from edutrack.errors import Forbidden, NotFound, NotFoundOrForbidden, UnenrolledStudent, ValidationError
from edutrack.models import AttendanceRecord, AttendanceStatus, UserRole
from edutrack.schemas.attendance import GeoPoint, StudentMark
from edutrack.services.ledger import AttendanceFilter
from edutrack.services.scope import ReportScope

P = AttendanceStatus.PRESENT
A = AttendanceStatus.ABSENT
ADMIN_SCOPE = ReportScope(role=UserRole.ADMIN)


@pytest.fixture
def setup(make_user, make_class):
    teacher = make_user(UserRole.TEACHER)
    s1 = make_user(name="Asha")
    s2 = make_user(name="Ravi")
    classroom = make_class(teacher, [s1, s2])
    return teacher, s1, s2, classroom


def _count(session):
    return session.scalar(select(func.count(AttendanceRecord.id)))


def test_upsert_creates_record(session, ledger, setup):
    teacher, s1, s2, classroom = setup
    record = ledger.upsert_day(
        classroom.id,
        teacher.id,
        datetime(2024, 3, 4, 10, 15, tzinfo=timezone.utc),
        [StudentMark(student=s1.id, status=P), StudentMark(student=s2.id, status=A)],
        GeoPoint(latitude=12.97, longitude=77.59),
    )

    assert record.day == date(2024, 3, 4)
    assert [(e.student_id, e.status) for e in record.entries] == [(s1.id, P), (s2.id, A)]
    assert record.teacher_status == P
    assert record.has_location
    assert _count(session) == 1


def test_same_day_writes_merge_into_one_record(session, ledger, setup):
    teacher, s1, s2, classroom = setup
    first = ledger.upsert_day(
        classroom.id, teacher.id, "2024-03-04T08:00:00Z", [StudentMark(student=s1.id, status=P)]
    )
    second = ledger.upsert_day(
        classroom.id,
        teacher.id,
        "2024-03-04T17:45:00Z",
        [StudentMark(student=s1.id, status=A), StudentMark(student=s2.id, status=P)],
    )

    assert second.id == first.id
    assert _count(session) == 1
    assert [(e.student_id, e.status) for e in second.entries] == [(s1.id, A), (s2.id, P)]
    assert not second.has_location


def test_repeated_upsert_is_idempotent(session, ledger, setup):
    teacher, s1, s2, classroom = setup
    marks = [StudentMark(student=s1.id, status=P), StudentMark(student=s2.id, status=A)]
    first = ledger.upsert_day(classroom.id, teacher.id, date(2024, 3, 4), marks)
    again = ledger.upsert_day(classroom.id, teacher.id, date(2024, 3, 4), marks)

    assert again.id == first.id
    assert [(e.student_id, e.status) for e in again.entries] == [(s1.id, P), (s2.id, A)]
    assert _count(session) == 1


def test_unenrolled_student_rejected_without_write(session, ledger, setup, make_user):
    teacher, s1, _, classroom = setup
    outsider = make_user(name="Outsider")

    with pytest.raises(UnenrolledStudent) as excinfo:
        ledger.upsert_day(
            classroom.id,
            teacher.id,
            date(2024, 3, 4),
            [StudentMark(student=s1.id, status=P), StudentMark(student=outsider.id, status=P)],
        )

    assert excinfo.value.student_ids == [outsider.id]
    assert excinfo.value.details == {"invalidStudents": [outsider.id]}
    assert _count(session) == 0


def test_unenrolled_student_leaves_existing_record_untouched(session, ledger, setup, make_user):
    teacher, s1, _, classroom = setup
    ledger.upsert_day(classroom.id, teacher.id, date(2024, 3, 4), [StudentMark(student=s1.id, status=P)])
    outsider = make_user()

    with pytest.raises(UnenrolledStudent):
        ledger.upsert_day(
            classroom.id, teacher.id, date(2024, 3, 4), [StudentMark(student=outsider.id, status=A)]
        )

    record = ledger.find_for_day(classroom.id, date(2024, 3, 4))
    assert [(e.student_id, e.status) for e in record.entries] == [(s1.id, P)]


def test_duplicate_student_ids_rejected(ledger, setup):
    teacher, s1, _, classroom = setup
    with pytest.raises(ValidationError):
        ledger.upsert_day(
            classroom.id,
            teacher.id,
            date(2024, 3, 4),
            [StudentMark(student=s1.id, status=P), StudentMark(student=s1.id, status=A)],
        )


def test_other_teacher_cannot_mark(ledger, setup, make_user):
    _, s1, _, classroom = setup
    intruder = make_user(UserRole.TEACHER)
    with pytest.raises(Forbidden):
        ledger.upsert_day(classroom.id, intruder.id, date(2024, 3, 4), [StudentMark(student=s1.id, status=P)])


def test_lost_insert_race_merges_into_winner(session, ledger, setup, monkeypatch):
    teacher, s1, s2, classroom = setup
    winner = ledger.upsert_day(
        classroom.id, teacher.id, date(2024, 3, 4), [StudentMark(student=s1.id, status=P)]
    )

    real_find = ledger.find_for_day
    calls = []

    def stale_then_real(class_id, day):
        calls.append(day)
        # first lookup misses, as if the winner committed right after it
        return None if len(calls) == 1 else real_find(class_id, day)

    monkeypatch.setattr(ledger, "find_for_day", stale_then_real)
    merged = ledger.upsert_day(
        classroom.id, teacher.id, date(2024, 3, 4), [StudentMark(student=s2.id, status=A)]
    )

    assert merged.id == winner.id
    assert _count(session) == 1
    assert [(e.student_id, e.status) for e in merged.entries] == [(s2.id, A)]


def test_round_trip_with_time_of_day(ledger, setup):
    teacher, s1, _, classroom = setup
    written = ledger.upsert_day(
        classroom.id, teacher.id, "2024-03-04T23:59:30Z", [StudentMark(student=s1.id, status=P)]
    )

    page = ledger.find(
        ADMIN_SCOPE, AttendanceFilter(start_date=date(2024, 3, 4), end_date=date(2024, 3, 4))
    )
    assert [r.id for r in page.items] == [written.id]
    assert page.total == 1


def test_find_applies_bounds_independently_and_orders_newest_first(ledger, setup):
    teacher, s1, _, classroom = setup
    start = date(2024, 3, 1)
    for offset in range(5):
        ledger.upsert_day(
            classroom.id, teacher.id, start + timedelta(days=offset), [StudentMark(student=s1.id, status=P)]
        )

    only_start = ledger.find(ADMIN_SCOPE, AttendanceFilter(start_date=date(2024, 3, 3)))
    assert [r.day.day for r in only_start.items] == [5, 4, 3]

    only_end = ledger.find(ADMIN_SCOPE, AttendanceFilter(end_date=date(2024, 3, 2)))
    assert [r.day.day for r in only_end.items] == [2, 1]

    paged = ledger.find(ADMIN_SCOPE, page=2, limit=2)
    assert paged.total == 5
    assert [r.day.day for r in paged.items] == [3, 2]


def test_scope_restricts_find_and_get(ledger, setup, make_user, make_class):
    teacher, s1, s2, classroom = setup
    other_teacher = make_user(UserRole.TEACHER)
    other_class = make_class(other_teacher, [s2], name="Chemistry", subject="Chemistry")
    mine = ledger.upsert_day(classroom.id, teacher.id, date(2024, 3, 4), [StudentMark(student=s1.id, status=P)])
    theirs = ledger.upsert_day(
        other_class.id, other_teacher.id, date(2024, 3, 4), [StudentMark(student=s2.id, status=P)]
    )

    teacher_scope = ReportScope(role=UserRole.TEACHER, teacher_id=teacher.id)
    assert [r.id for r in ledger.find(teacher_scope).items] == [mine.id]
    with pytest.raises(NotFound):
        ledger.get(theirs.id, teacher_scope)

    student_scope = ReportScope(role=UserRole.STUDENT, student_id=s2.id)
    assert [r.id for r in ledger.find(student_scope).items] == [theirs.id]

    # student filter is applied before pagination, so totals agree
    filtered = ledger.find(ADMIN_SCOPE, AttendanceFilter(student_id=s1.id), page=1, limit=1)
    assert filtered.total == 1
    assert [r.id for r in filtered.items] == [mine.id]


def test_update_record_keeps_location_unless_given(ledger, setup):
    teacher, s1, s2, classroom = setup
    record = ledger.upsert_day(
        classroom.id,
        teacher.id,
        date(2024, 3, 4),
        [StudentMark(student=s1.id, status=P)],
        GeoPoint(latitude=1.5, longitude=2.5),
    )

    updated = ledger.update_record(record.id, teacher.id, [StudentMark(student=s2.id, status=P)])
    assert [e.student_id for e in updated.entries] == [s2.id]
    assert (updated.teacher_latitude, updated.teacher_longitude) == (1.5, 2.5)


def test_delete_requires_owner(session, ledger, setup, make_user):
    teacher, s1, _, classroom = setup
    record = ledger.upsert_day(classroom.id, teacher.id, date(2024, 3, 4), [StudentMark(student=s1.id, status=P)])
    intruder = make_user(UserRole.TEACHER)

    with pytest.raises(NotFoundOrForbidden):
        ledger.delete(record.id, intruder.id)
    with pytest.raises(NotFoundOrForbidden):
        ledger.delete(record.id + 100, teacher.id)

    ledger.delete(record.id, teacher.id)
    assert _count(session) == 0
