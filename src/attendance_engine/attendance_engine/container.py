from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditRepository
from .audit.service import AuditTrail
from .configuration.mysql_config_repository import MySQLConfigRepository
from .configuration.service import ConfigService
from .database.connection import DBConfig, DatabaseConnection
from .payroll.mysql_payroll_lock_repository import MySQLPayrollLockRepository
from .payroll.service import PayrollLockService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .users.mysql_user_repository import MySQLIdentityRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    identities_repo: MySQLIdentityRepository
    shifts_repo: MySQLShiftRepository
    attendance_repo: MySQLAttendanceRepository
    config_repo: MySQLConfigRepository
    payroll_locks_repo: MySQLPayrollLockRepository
    audit_repo: MySQLAuditRepository

    audit_trail: AuditTrail
    config_service: ConfigService
    payroll_lock_service: PayrollLockService
    attendance_service: AttendanceService


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    identities_repo = MySQLIdentityRepository(conn)
    shifts_repo = MySQLShiftRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    config_repo = MySQLConfigRepository(conn)
    payroll_locks_repo = MySQLPayrollLockRepository(conn)
    audit_repo = MySQLAuditRepository(conn)

    audit_trail = AuditTrail(audit_repo)
    config_service = ConfigService(config_repo, audit=audit_trail)
    payroll_lock_service = PayrollLockService(payroll_locks_repo, audit=audit_trail)
    attendance_service = AttendanceService(
        attendance_repo,
        identities_repo,
        shifts_repo,
        config_service,
        payroll_lock_service,
        audit=audit_trail,
    )

    return Container(
        conn=conn,
        identities_repo=identities_repo,
        shifts_repo=shifts_repo,
        attendance_repo=attendance_repo,
        config_repo=config_repo,
        payroll_locks_repo=payroll_locks_repo,
        audit_repo=audit_repo,
        audit_trail=audit_trail,
        config_service=config_service,
        payroll_lock_service=payroll_lock_service,
        attendance_service=attendance_service,
    )
