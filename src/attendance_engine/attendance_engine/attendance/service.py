from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Mapping, Optional, Sequence

from ..audit.service import AuditTrail
from ..biometrics import matcher
from ..biometrics.model import Match
from ..common.datetime_utils import now_local, parse_clock_time, parse_iso_date
from ..common.validators import require_finite, require_month, require_non_empty
from ..configuration.model import AttendanceSettings
from ..configuration.service import ConfigService
from ..core.enums import AttendanceStatus, AuditAction, DayState, Role
from ..core.exceptions import (
    AlreadyCheckedInError,
    AlreadyCheckedOutError,
    AuthorizationError,
    LockedRecordError,
    NotFoundError,
    ValidationError,
)
from ..geofence.model import LocationCheck
from ..geofence.validator import assess_location
from ..payroll.service import PayrollLockService
from ..shifts import clock
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..users.model import Identity
from ..users.repository import IdentityRepository
from . import state_machine
from .model import (
    AttendanceRecord,
    CheckInResult,
    CheckOutResult,
    ManualEntry,
    MonthlySummary,
    TodayStatus,
    Verification,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MANUAL_ENTRY_ROLES = {Role.HR, Role.ADMIN}
LEAVE_APPROVER_ROLES = {Role.ADMIN, Role.GM, Role.HR, Role.MANAGER}
ALL_EMPLOYEE_READ_ROLES = {Role.ADMIN, Role.HR, Role.GM}
MANUAL_STATUSES = {
    AttendanceStatus.PRESENT,
    AttendanceStatus.ABSENT,
    AttendanceStatus.LATE,
    AttendanceStatus.HALF_DAY,
}
REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500

ENTITY = "attendance_records"


def _as_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD)", field=field_name)


def _as_time(value: Any, field_name: str) -> time:
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    try:
        return parse_clock_time(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a time (HH:MM)", field=field_name)


def _entity_id(user_id: int, work_date: date) -> str:
    return f"{user_id}:{work_date.isoformat()}"


def _verification(location: LocationCheck, *, face_verified: bool, face_score: Optional[float]) -> Verification:
    return Verification(
        face_verified=face_verified,
        face_score=face_score,
        location_required=location.required,
        location_verified=location.verified,
        distance_from_office=location.distance_meters,
    )


class AttendanceService:
    """Orchestrates verification, the day state machine and persistence.

    Guards run in a fixed order (face, location, lock, state) so callers get
    the first failing reason. Every write is conditional in the store; when
    it loses a race the record is re-read and the matching error raised.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        identities: IdentityRepository,
        shifts: ShiftRepository,
        config: ConfigService,
        locks: PayrollLockService,
        *,
        audit: Optional[AuditTrail] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._identities = identities
        self._shifts = shifts
        self._config = config
        self._locks = locks
        self._audit = audit
        self._clock = clock

    # -- lookups ---------------------------------------------------------

    def _require_identity(self, user_id: int) -> Identity:
        identity = self._identities.get_by_id(int(user_id))
        if identity is None or not identity.is_active:
            raise NotFoundError("Employee not found or inactive", user_id=user_id)
        return identity

    def _shift_for(self, user_id: int, settings: AttendanceSettings) -> Shift:
        shift = self._shifts.get_for_user(int(user_id))
        if shift is None:
            raise NotFoundError("No active shift assigned to this employee", user_id=user_id)
        return shift.with_fallbacks(
            grace_period_minutes=settings.late_threshold_minutes,
            half_day_hours=settings.half_day_threshold_hours,
        )

    def _open_record(self, user_id: int, shift: Optional[Shift], now: datetime) -> Optional[AttendanceRecord]:
        record = self._attendance.get_for_user_and_date(user_id, now.date())
        if (record is None or record.check_in_time is None) and shift is not None and shift.crosses_midnight:
            previous = self._attendance.get_for_user_and_date(user_id, now.date() - timedelta(days=1))
            if previous is not None and previous.day_state == DayState.CHECKED_IN:
                return previous
        return record

    def _location(self, location: Optional[Mapping[str, Any]], settings: AttendanceSettings, now: datetime) -> LocationCheck:
        check = assess_location(
            location,
            settings.office,
            required=settings.location_verification_required,
            now=now,
        )
        state_machine.ensure_location_allowed(check, settings.office)
        return check

    def _audit_record(self, **kwargs: Any) -> None:
        if self._audit:
            self._audit.record(**kwargs)

    # -- check-in --------------------------------------------------------

    def check_in(
        self,
        user_id: int,
        *,
        face_verified: bool,
        face_score: Optional[float] = None,
        location: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> CheckInResult:
        now = now or self._clock()
        settings = self._config.load()

        state_machine.ensure_face_verified(bool(face_verified))
        if face_score is not None:
            face_score = require_finite(face_score, "face_score")
        location_check = self._location(location, settings, now)

        identity = self._require_identity(user_id)
        shift = self._shift_for(identity.user_id, settings)
        return self._check_in(
            identity,
            shift,
            now=now,
            face_score=face_score,
            location=location_check,
            reason=None,
        )

    def public_check_in(
        self,
        face_descriptor: Sequence[float],
        location: Optional[Mapping[str, Any]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> CheckInResult:
        """Kiosk check-in: the face probe identifies the employee."""
        now = now or self._clock()
        settings = self._config.load()

        match = self._identify(face_descriptor, settings)
        location_check = self._location(location, settings, now)

        shift = self._shift_for(match.user_id, settings)
        return self._check_in(
            match.identity,
            shift,
            now=now,
            face_score=round(match.confidence, 4),
            location=location_check,
            reason="Public check-in via face recognition",
        )

    def _check_in(
        self,
        identity: Identity,
        shift: Shift,
        *,
        now: datetime,
        face_score: Optional[float],
        location: LocationCheck,
        reason: Optional[str],
    ) -> CheckInResult:
        user_id = identity.user_id
        work_date = clock.shift_start_for(shift, now).date()

        record = self._attendance.get_for_user_and_date(user_id, work_date)
        state_machine.ensure_can_check_in(
            record,
            user_id=user_id,
            work_date=work_date,
            period_locked=self._locks.is_date_locked(work_date),
        )

        status = clock.classify(shift, now).status
        created = self._attendance.create_checkin(
            user_id=user_id,
            work_date=work_date,
            check_in_time=now,
            status=status,
            shift_id=shift.shift_id,
            face_verified=True,
            face_score=face_score,
            location=location.payload,
        )
        if not created:
            current = self._attendance.get_for_user_and_date(user_id, work_date)
            state_machine.ensure_can_check_in(
                current,
                user_id=user_id,
                work_date=work_date,
                period_locked=self._locks.is_date_locked(work_date),
            )
            raise AlreadyCheckedInError(user_id, work_date)

        logger.info("User %s checked in for %s at %s: %s", user_id, work_date, now.isoformat(), status.value)
        self._audit_record(
            actor_id=user_id,
            action=AuditAction.CREATE,
            entity_type=ENTITY,
            entity_id=_entity_id(user_id, work_date),
            before=record.to_dict() if record else None,
            after={
                "check_in_time": now,
                "status": status,
                "face_score": face_score,
                "location": location.payload,
            },
            reason=reason,
        )
        return CheckInResult(
            user_id=user_id,
            work_date=work_date,
            status=status,
            check_in_time=now,
            verification=_verification(location, face_verified=True, face_score=face_score),
            full_name=identity.full_name,
            employee_code=identity.employee_code,
        )

    # -- check-out -------------------------------------------------------

    def check_out(
        self,
        user_id: int,
        *,
        location: Optional[Mapping[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> CheckOutResult:
        now = now or self._clock()
        settings = self._config.load()
        location_check = self._location(location, settings, now)

        identity = self._require_identity(user_id)
        shift = self._shift_for(identity.user_id, settings)
        return self._check_out(
            identity,
            shift,
            settings,
            now=now,
            location=location_check,
            face_verified=False,
            face_score=None,
            reason=None,
        )

    def public_check_out(
        self,
        face_descriptor: Sequence[float],
        location: Optional[Mapping[str, Any]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> CheckOutResult:
        now = now or self._clock()
        settings = self._config.load()

        match = self._identify(face_descriptor, settings)
        location_check = self._location(location, settings, now)

        shift = self._shift_for(match.user_id, settings)
        return self._check_out(
            match.identity,
            shift,
            settings,
            now=now,
            location=location_check,
            face_verified=True,
            face_score=round(match.confidence, 4),
            reason="Public check-out via face recognition",
        )

    def _check_out(
        self,
        identity: Identity,
        shift: Shift,
        settings: AttendanceSettings,
        *,
        now: datetime,
        location: LocationCheck,
        face_verified: bool,
        face_score: Optional[float],
        reason: Optional[str],
    ) -> CheckOutResult:
        user_id = identity.user_id
        record = self._open_record(user_id, shift, now)
        work_date = record.work_date if record else now.date()

        record = state_machine.ensure_can_check_out(
            record,
            user_id=user_id,
            work_date=work_date,
            period_locked=self._locks.is_date_locked(work_date),
        )

        result = clock.classify(
            shift,
            record.check_in_time,
            now,
            overtime_threshold_minutes=settings.overtime_threshold_minutes,
        )
        updated = self._attendance.complete_checkout(
            attendance_id=record.attendance_id,
            check_out_time=now,
            status=result.status,
            total_hours=result.total_hours,
            overtime_hours=result.overtime_hours,
            location=location.payload,
        )
        if not updated:
            current = self._attendance.get_for_user_and_date(user_id, work_date)
            state_machine.ensure_can_check_out(
                current,
                user_id=user_id,
                work_date=work_date,
                period_locked=self._locks.is_date_locked(work_date),
            )
            raise AlreadyCheckedOutError(user_id, work_date)

        logger.info(
            "User %s checked out for %s at %s: %s, %.2fh (overtime %.2fh)",
            user_id,
            work_date,
            now.isoformat(),
            result.status.value,
            result.total_hours,
            result.overtime_hours,
        )
        self._audit_record(
            actor_id=user_id,
            action=AuditAction.UPDATE,
            entity_type=ENTITY,
            entity_id=_entity_id(user_id, work_date),
            before=record.to_dict(),
            after={
                "check_out_time": now,
                "status": result.status,
                "total_hours": result.total_hours,
                "overtime_hours": result.overtime_hours,
                "location": location.payload,
            },
            reason=reason,
        )
        return CheckOutResult(
            user_id=user_id,
            work_date=work_date,
            status=result.status,
            check_out_time=now,
            total_hours=result.total_hours,
            overtime_hours=result.overtime_hours,
            verification=_verification(location, face_verified=face_verified, face_score=face_score),
            full_name=identity.full_name,
            employee_code=identity.employee_code,
        )

    # -- biometrics ------------------------------------------------------

    def _identify(self, face_descriptor: Sequence[float], settings: AttendanceSettings) -> Match:
        result = matcher.identify(
            face_descriptor,
            self._identities.list_registered(),
            settings.face_recognition_threshold,
        )
        state_machine.ensure_face_verified(isinstance(result, Match), result)
        return result

    def verify_face(self, user_id: int, face_descriptor: Sequence[float]) -> dict:
        """1:1 check of a probe against the user's own registered faces."""
        settings = self._config.load()
        identity = self._require_identity(user_id)
        if not identity.has_face:
            raise ValidationError("No face registered for this employee", user_id=user_id)

        result = matcher.verify(face_descriptor, identity, settings.face_recognition_threshold)
        if isinstance(result, Match):
            return {
                "verified": True,
                "user_id": identity.user_id,
                "distance": round(result.distance, 4),
                "confidence": round(result.confidence, 4),
                "threshold": settings.face_recognition_threshold,
            }
        return {
            "verified": False,
            "user_id": identity.user_id,
            "distance": None if result.best_distance is None else round(result.best_distance, 4),
            "confidence": 0.0,
            "threshold": settings.face_recognition_threshold,
        }

    # -- HR operations ---------------------------------------------------

    def manual_entry(
        self,
        *,
        actor_id: int,
        actor_role: Role,
        user_id: int,
        work_date: Any,
        check_in: Any,
        check_out: Any = None,
        status: Optional[Any] = None,
        reason: str,
    ) -> Optional[AttendanceRecord]:
        if actor_role not in MANUAL_ENTRY_ROLES:
            raise AuthorizationError("Only HR and administrators can create manual entries")

        reason = require_non_empty(reason or "", "reason")
        if not REASON_MIN_LENGTH <= len(reason) <= REASON_MAX_LENGTH:
            raise ValidationError(
                f"Reason must be between {REASON_MIN_LENGTH} and {REASON_MAX_LENGTH} characters",
                field="reason",
            )

        work_date = _as_date(work_date, "work_date")
        check_in_time = datetime.combine(work_date, _as_time(check_in, "check_in"))
        supplied = None
        if status not in (None, ""):
            try:
                supplied = AttendanceStatus(str(status).upper())
            except ValueError:
                raise ValidationError("Unknown attendance status", status=status)
            if supplied not in MANUAL_STATUSES:
                raise ValidationError("Status is not allowed for a manual entry", status=supplied.value)

        self._require_identity(user_id)
        settings = self._config.load()
        shift = self._shift_for(user_id, settings)

        check_out_time = None
        if check_out not in (None, ""):
            check_out_time = datetime.combine(work_date, _as_time(check_out, "check_out"))
            if check_out_time <= check_in_time and shift.crosses_midnight:
                check_out_time += timedelta(days=1)
            result = clock.classify(
                shift,
                check_in_time,
                check_out_time,
                overtime_threshold_minutes=settings.overtime_threshold_minutes,
            )
            final_status, total_hours, overtime_hours = result.status, result.total_hours, result.overtime_hours
        else:
            if supplied is None:
                raise ValidationError("Status is required when no check-out time is given", field="status")
            final_status, total_hours, overtime_hours = supplied, None, 0.0

        before = self._attendance.get_for_user_and_date(user_id, work_date)
        state_machine.ensure_unlocked(
            before,
            work_date=work_date,
            period_locked=self._locks.is_date_locked(work_date),
            user_id=user_id,
        )

        entry = ManualEntry(
            user_id=int(user_id),
            work_date=work_date,
            check_in_time=check_in_time,
            check_out_time=check_out_time,
            status=final_status,
            total_hours=total_hours,
            overtime_hours=overtime_hours,
            shift_id=shift.shift_id,
            entered_by=int(actor_id),
            note=reason,
        )
        if not self._attendance.save_manual_entry(entry):
            raise LockedRecordError(work_date, user_id=user_id)

        logger.info("Manual entry for user %s on %s by %s: %s", user_id, work_date, actor_id, final_status.value)
        self._audit_record(
            actor_id=actor_id,
            action=AuditAction.ATTENDANCE_EDIT,
            entity_type=ENTITY,
            entity_id=_entity_id(user_id, work_date),
            before=before.to_dict() if before else None,
            after={
                "check_in_time": check_in_time,
                "check_out_time": check_out_time,
                "status": final_status,
                "total_hours": total_hours,
                "overtime_hours": overtime_hours,
                "is_manual_entry": True,
            },
            reason=reason,
        )
        return self._attendance.get_for_user_and_date(user_id, work_date)

    def mark_on_leave(
        self,
        *,
        actor_id: int,
        actor_role: Role,
        user_id: int,
        start_date: Any,
        end_date: Any,
        leave_type: str,
    ) -> int:
        """Mark every date of an approved leave ON_LEAVE.

        Locked dates and days with a check-in are skipped. Returns the number
        of dates marked.
        """
        if actor_role not in LEAVE_APPROVER_ROLES:
            raise AuthorizationError("You are not allowed to approve leave")
        start = _as_date(start_date, "start_date")
        end = _as_date(end_date, "end_date")
        if end < start:
            raise ValidationError("End date must not be before start date", start_date=start, end_date=end)
        leave_type = require_non_empty(leave_type or "", "leave_type")
        self._require_identity(user_id)

        marked = 0
        day = start
        while day <= end:
            if self._locks.is_date_locked(day):
                logger.info("Skipping locked date %s for leave of user %s", day, user_id)
            elif self._attendance.mark_on_leave(user_id=int(user_id), work_date=day, note=f"{leave_type} leave"):
                marked += 1
            day += timedelta(days=1)

        logger.info("Leave %s..%s for user %s approved by %s: %d date(s) marked", start, end, user_id, actor_id, marked)
        self._audit_record(
            actor_id=actor_id,
            action=AuditAction.CREATE,
            entity_type=ENTITY,
            entity_id=str(user_id),
            after={
                "status": AttendanceStatus.ON_LEAVE,
                "start_date": start,
                "end_date": end,
                "leave_type": leave_type,
                "dates_marked": marked,
            },
            reason="Leave approved",
        )
        return marked

    # -- read side -------------------------------------------------------

    def today(self, user_id: int, *, now: Optional[datetime] = None) -> TodayStatus:
        now = now or self._clock()
        shift = self._shifts.get_for_user(int(user_id))

        record = self._open_record(int(user_id), shift, now)
        if record is not None:
            work_date = record.work_date
        elif shift is not None:
            work_date = clock.shift_start_for(shift, now).date()
            record = self._attendance.get_for_user_and_date(int(user_id), work_date)
        else:
            work_date = now.date()

        state = state_machine.day_state(record)
        locked = self._locks.is_date_locked(work_date) or bool(record and record.is_locked)
        return TodayStatus(
            work_date=work_date,
            state=state,
            status=record.status if record else AttendanceStatus.NOT_MARKED,
            record=record,
            shift=None
            if shift is None
            else {
                "shift_id": shift.shift_id,
                "shift_name": shift.shift_name,
                "start_time": shift.start_time.strftime("%H:%M"),
                "end_time": shift.end_time.strftime("%H:%M"),
                "crosses_midnight": shift.crosses_midnight,
            },
            can_check_in=shift is not None and state == DayState.NOT_MARKED and not locked,
            can_check_out=state == DayState.CHECKED_IN and not locked,
        )

    def monthly_summary(
        self,
        *,
        actor_id: int,
        actor_role: Role,
        user_id: int,
        month: Any = None,
        year: Any = None,
    ) -> MonthlySummary:
        if actor_role not in ALL_EMPLOYEE_READ_ROLES and int(actor_id) != int(user_id):
            raise AuthorizationError("You can only view your own attendance")
        today = self._clock().date()
        month, year = require_month(
            today.month if month in (None, "") else month,
            today.year if year in (None, "") else year,
        )
        identity = self._require_identity(user_id)
        records = self._attendance.list_for_user_month(identity.user_id, year=year, month=month)
        return MonthlySummary(user_id=identity.user_id, month=month, year=year, records=tuple(records))
