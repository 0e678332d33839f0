from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime

import pytest

from attendance_engine.core.enums import AttendanceStatus, AuditAction, DayState, Role
from attendance_engine.core.exceptions import (
    AlreadyCheckedInError,
    AlreadyCheckedOutError,
    AuthorizationError,
    ConfigurationError,
    FaceNotVerifiedError,
    InvalidLocationError,
    LocationDeniedError,
    NoActiveCheckInError,
    NotFoundError,
    ValidationError,
)

from fakes import build_harness, descriptor, far_from_office, near_office

MONDAY = date(2026, 3, 2)


def _at(hour: int, minute: int = 0, *, day: int = 2) -> datetime:
    return datetime(2026, 3, day, hour, minute)


def test_check_in_then_check_out_on_time():
    h = build_harness()

    checked_in = h.service.check_in(1, face_verified=True, face_score=0.93, location=near_office(), now=_at(9, 10))
    assert checked_in.status == AttendanceStatus.PRESENT
    assert checked_in.verification.location_verified is True
    assert checked_in.verification.distance_from_office == 0

    checked_out = h.service.check_out(1, location=near_office(), now=_at(17, 10))
    assert checked_out.status == AttendanceStatus.PRESENT
    assert checked_out.total_hours == 8.0
    assert checked_out.overtime_hours == 0.0

    record = h.store.get_for_user_and_date(1, MONDAY)
    assert record.day_state == DayState.CHECKED_OUT
    assert record.face_verification_score == 0.93
    assert record.check_in_location["verified"] is True
    assert [e["action"] for e in h.audit.entries] == [AuditAction.CREATE, AuditAction.UPDATE]


def test_late_check_in_and_early_check_out_is_half_day():
    h = build_harness()

    assert h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 20)).status == AttendanceStatus.LATE

    result = h.service.check_out(1, location=near_office(), now=_at(13, 0))
    assert result.status == AttendanceStatus.HALF_DAY
    assert result.total_hours == 3.67


def test_check_in_requires_face_verification():
    h = build_harness()

    with pytest.raises(FaceNotVerifiedError):
        h.service.check_in(1, face_verified=False, location=near_office(), now=_at(9, 0))
    assert h.store.all() == []


def test_check_in_outside_geofence_is_denied():
    h = build_harness()

    with pytest.raises(LocationDeniedError) as exc:
        h.service.check_in(1, face_verified=True, location=far_from_office(), now=_at(9, 0))

    assert exc.value.details["radius_meters"] == 800
    assert exc.value.details["distance_meters"] > 5000
    assert h.store.all() == []


def test_location_is_recorded_but_not_gating_when_verification_disabled():
    h = build_harness(location_required=False)

    result = h.service.check_in(1, face_verified=True, location=far_from_office(), now=_at(9, 0))

    assert result.verification.location_required is False
    payload = h.store.get_for_user_and_date(1, MONDAY).check_in_location
    assert payload["verification_disabled"] is True
    assert payload["verified"] is False
    assert payload["distance_from_office"] > 5000


def test_missing_location_when_required():
    h = build_harness()
    with pytest.raises(InvalidLocationError):
        h.service.check_in(1, face_verified=True, location=None, now=_at(9, 0))


def test_missing_office_coordinates_is_a_configuration_error():
    h = build_harness()
    del h.config.values["office_latitude"]
    del h.config.values["office_longitude"]

    with pytest.raises(ConfigurationError):
        h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))


def test_second_check_in_is_rejected():
    h = build_harness()
    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))

    with pytest.raises(AlreadyCheckedInError):
        h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 5))


def test_second_check_out_is_rejected():
    h = build_harness()
    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))
    h.service.check_out(1, location=near_office(), now=_at(17, 0))

    with pytest.raises(AlreadyCheckedOutError):
        h.service.check_out(1, location=near_office(), now=_at(17, 5))


def test_check_out_without_check_in():
    h = build_harness()
    with pytest.raises(NoActiveCheckInError):
        h.service.check_out(1, location=near_office(), now=_at(17, 0))


def test_simultaneous_check_ins_produce_one_record():
    h = build_harness()
    barrier = threading.Barrier(2)
    outcomes: list[object] = []

    def attempt():
        barrier.wait()
        try:
            outcomes.append(h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0)))
        except AlreadyCheckedInError as exc:
            outcomes.append(exc)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(h.store.all()) == 1
    assert sum(isinstance(o, AlreadyCheckedInError) for o in outcomes) == 1
    assert len(outcomes) == 2


def test_public_check_in_identifies_employee_by_face():
    h = build_harness()

    result = h.service.public_check_in(descriptor(0.9), near_office(), now=_at(9, 0))

    assert result.user_id == 2
    assert result.employee_code == "EMP002"
    assert result.verification.face_score == 1.0
    assert h.store.get_for_user_and_date(2, MONDAY).is_face_verified is True


def test_public_check_in_with_unknown_face():
    h = build_harness()

    with pytest.raises(FaceNotVerifiedError) as exc:
        h.service.public_check_in(descriptor(0.3, index=0), near_office(), now=_at(9, 0))

    assert exc.value.details["threshold"] == 0.6
    assert h.store.all() == []


def test_face_is_checked_before_location():
    h = build_harness()
    with pytest.raises(FaceNotVerifiedError):
        h.service.public_check_in(descriptor(0.3, index=0), far_from_office(), now=_at(9, 0))


def test_night_shift_check_out_after_midnight_closes_previous_day():
    h = build_harness()

    h.service.public_check_in(descriptor(0.5), near_office(), now=_at(21, 10))
    result = h.service.public_check_out(descriptor(0.5), near_office(), now=_at(6, 5, day=3))

    assert result.work_date == MONDAY
    assert result.total_hours == pytest.approx(8.92)
    assert h.store.get_for_user_and_date(3, date(2026, 3, 3)) is None


def test_night_shift_check_in_after_midnight_belongs_to_previous_day():
    h = build_harness()

    result = h.service.check_in(3, face_verified=True, location=near_office(), now=_at(0, 30, day=3))

    assert result.work_date == MONDAY
    assert result.status == AttendanceStatus.LATE


def test_check_in_fills_a_leave_day():
    h = build_harness()
    h.service.mark_on_leave(
        actor_id=10, actor_role=Role.MANAGER, user_id=1, start_date=MONDAY, end_date=MONDAY, leave_type="Sick"
    )

    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))

    record = h.store.get_for_user_and_date(1, MONDAY)
    assert record.status == AttendanceStatus.PRESENT
    assert record.note == "Sick leave"


def test_unknown_employee_and_missing_shift():
    h = build_harness()
    with pytest.raises(NotFoundError):
        h.service.check_in(99, face_verified=True, location=near_office(), now=_at(9, 0))

    del h.shifts.shift_by_user[1]
    with pytest.raises(NotFoundError):
        h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))


def test_shift_without_grace_uses_configured_late_threshold():
    h = build_harness()
    h.shifts.shift_by_user[1] = replace(h.shifts.shift_by_user[1], grace_period_minutes=None)
    h.config.values["late_threshold_minutes"] = "30"

    result = h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 25))
    assert result.status == AttendanceStatus.PRESENT


def test_audit_outage_does_not_fail_check_in(caplog):
    h = build_harness()
    h.audit.fail = True

    result = h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))

    assert result.status == AttendanceStatus.PRESENT
    assert "Audit entry not written" in caplog.text


# Manual entry


def test_manual_entry_with_check_out_derives_status():
    h = build_harness()

    record = h.service.manual_entry(
        actor_id=10,
        actor_role=Role.HR,
        user_id=1,
        work_date="2026-03-02",
        check_in="09:20",
        check_out="13:00",
        status="PRESENT",
        reason="Biometric device was offline",
    )

    assert record.status == AttendanceStatus.HALF_DAY
    assert record.total_hours == 3.67
    assert record.is_manual_entry is True
    assert record.manual_entry_by == 10

    entry = h.audit.entries[-1]
    assert entry["action"] == AuditAction.ATTENDANCE_EDIT
    assert entry["reason"] == "Biometric device was offline"
    assert entry["before"] is None


def test_manual_entry_without_check_out_keeps_supplied_status():
    h = build_harness()
    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))

    record = h.service.manual_entry(
        actor_id=10,
        actor_role=Role.ADMIN,
        user_id=1,
        work_date=MONDAY,
        check_in="09:00",
        status="absent",
        reason="Employee left site after scan",
    )

    assert record.status == AttendanceStatus.ABSENT
    assert h.audit.entries[-1]["before"]["status"] == "PRESENT"


def test_manual_entry_on_night_shift_moves_check_out_to_next_day():
    h = build_harness()

    record = h.service.manual_entry(
        actor_id=10,
        actor_role=Role.HR,
        user_id=3,
        work_date=MONDAY,
        check_in="21:00",
        check_out="06:00",
        reason="Forgot to scan out after night shift",
    )

    assert record.check_out_time == datetime(2026, 3, 3, 6, 0)
    assert record.total_hours == 9.0


@pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.MANAGER, Role.GM])
def test_manual_entry_is_restricted_to_hr_and_admin(role):
    h = build_harness()
    with pytest.raises(AuthorizationError):
        h.service.manual_entry(
            actor_id=10,
            actor_role=role,
            user_id=1,
            work_date=MONDAY,
            check_in="09:00",
            status="PRESENT",
            reason="Adjusting attendance record",
        )


@pytest.mark.parametrize(
    "overrides",
    [
        {"reason": ""},
        {"reason": "too short"},
        {"reason": "x" * 501},
        {"status": "ON_LEAVE"},
        {"status": "SICK"},
        {"status": None},
        {"work_date": "02/03/2026"},
        {"check_in": "9am"},
    ],
)
def test_manual_entry_validation(overrides):
    h = build_harness()
    kwargs = dict(
        actor_id=10,
        actor_role=Role.HR,
        user_id=1,
        work_date=MONDAY,
        check_in="09:00",
        status="PRESENT",
        reason="Adjusting attendance record",
    )
    kwargs.update(overrides)

    with pytest.raises(ValidationError):
        h.service.manual_entry(**kwargs)
    assert h.store.all() == []


# Leave


def test_leave_skips_days_with_a_check_in():
    h = build_harness()
    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))

    count = h.service.mark_on_leave(
        actor_id=10,
        actor_role=Role.HR,
        user_id=1,
        start_date="2026-03-02",
        end_date="2026-03-04",
        leave_type="Annual",
    )

    assert count == 2
    assert h.store.get_for_user_and_date(1, MONDAY).status == AttendanceStatus.PRESENT
    assert h.store.get_for_user_and_date(1, date(2026, 3, 4)).status == AttendanceStatus.ON_LEAVE


def test_leave_validation_and_authorization():
    h = build_harness()
    with pytest.raises(AuthorizationError):
        h.service.mark_on_leave(
            actor_id=1, actor_role=Role.EMPLOYEE, user_id=1, start_date=MONDAY, end_date=MONDAY, leave_type="Annual"
        )
    with pytest.raises(ValidationError):
        h.service.mark_on_leave(
            actor_id=10, actor_role=Role.HR, user_id=1, start_date="2026-03-05", end_date=MONDAY, leave_type="Annual"
        )


# Today / face verify


def test_today_reports_state_and_allowed_actions():
    h = build_harness()

    before = h.service.today(1, now=_at(8, 0))
    assert before.state == DayState.NOT_MARKED
    assert before.status == AttendanceStatus.NOT_MARKED
    assert before.can_check_in and not before.can_check_out
    assert before.shift["start_time"] == "09:00"

    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))
    during = h.service.today(1, now=_at(12, 0))
    assert during.state == DayState.CHECKED_IN
    assert not during.can_check_in and during.can_check_out
    assert during.to_dict()["attendance"]["status"] == "PRESENT"


def test_today_after_midnight_shows_open_night_record():
    h = build_harness()
    h.service.check_in(3, face_verified=True, location=near_office(), now=_at(21, 0))

    status = h.service.today(3, now=_at(2, 0, day=3))

    assert status.work_date == MONDAY
    assert status.can_check_out


def test_verify_face_against_own_registration():
    h = build_harness()

    assert h.service.verify_face(1, descriptor(0.1))["verified"] is True

    mismatch = h.service.verify_face(1, descriptor(0.9))
    assert mismatch["verified"] is False
    assert mismatch["distance"] > 0.6


# Monthly view


def test_monthly_summary_counts_days_and_hours():
    h = build_harness()
    h.service.check_in(1, face_verified=True, location=near_office(), now=_at(9, 0))
    h.service.check_out(1, location=near_office(), now=_at(17, 0))
    h.service.mark_on_leave(
        actor_id=10, actor_role=Role.HR, user_id=1, start_date="2026-03-09", end_date="2026-03-10", leave_type="Annual"
    )
    h.service.mark_on_leave(
        actor_id=10, actor_role=Role.HR, user_id=1, start_date="2026-04-01", end_date="2026-04-01", leave_type="Annual"
    )
    h.service.mark_on_leave(
        actor_id=10, actor_role=Role.HR, user_id=2, start_date=MONDAY, end_date=MONDAY, leave_type="Sick"
    )

    summary = h.service.monthly_summary(actor_id=1, actor_role=Role.EMPLOYEE, user_id=1, month=3, year=2026)
    data = summary.to_dict()

    assert [r["work_date"] for r in data["records"]] == ["2026-03-10", "2026-03-09", "2026-03-02"]
    assert data["summary"] == {
        "present_days": 1,
        "absent_days": 0,
        "late_days": 0,
        "half_days": 0,
        "leave_days": 2,
        "total_hours": 8.0,
        "overtime_hours": 0.0,
    }


def test_monthly_summary_defaults_to_current_month():
    h = build_harness()
    h.service.mark_on_leave(
        actor_id=10, actor_role=Role.HR, user_id=2, start_date=MONDAY, end_date=MONDAY, leave_type="Sick"
    )

    summary = h.service.monthly_summary(actor_id=10, actor_role=Role.HR, user_id=2)

    assert (summary.month, summary.year) == (3, 2026)
    assert summary.to_dict()["summary"]["leave_days"] == 1


@pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.MANAGER])
def test_monthly_summary_of_someone_else_needs_hr_admin_or_gm(role):
    h = build_harness()
    with pytest.raises(AuthorizationError):
        h.service.monthly_summary(actor_id=1, actor_role=role, user_id=2)

    for reader in (Role.HR, Role.ADMIN, Role.GM):
        assert h.service.monthly_summary(actor_id=1, actor_role=reader, user_id=2).user_id == 2


def test_monthly_summary_validation():
    h = build_harness()
    with pytest.raises(ValidationError):
        h.service.monthly_summary(actor_id=1, actor_role=Role.EMPLOYEE, user_id=1, month=0, year=2026)
    with pytest.raises(NotFoundError):
        h.service.monthly_summary(actor_id=10, actor_role=Role.ADMIN, user_id=99)
