from __future__ import annotations

import pytest

from attendance_engine.audit.service import AuditTrail
from attendance_engine.container import Container
from attendance_engine.main import create_app

from fakes import build_harness


@pytest.fixture
def harness():
    return build_harness()


@pytest.fixture
def app(harness, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    container = Container(
        conn=None,
        identities_repo=harness.identities,
        shifts_repo=harness.shifts,
        attendance_repo=harness.store,
        config_repo=harness.config,
        payroll_locks_repo=harness.store,
        audit_repo=harness.audit,
        audit_trail=AuditTrail(harness.audit),
        config_service=harness.config_service,
        payroll_lock_service=harness.locks,
        attendance_service=harness.service,
    )
    return create_app(container=container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(user_id: int, role: str = "EMPLOYEE"):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
            sess["role"] = role

    return _login
