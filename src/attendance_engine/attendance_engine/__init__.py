"""Attendance verification & status engine.

Feature modules (geofence, biometrics, shifts, attendance, payroll, ...) hold
pure decision logic and repository interfaces; MySQL repositories and a thin
Flask controller layer sit around them.
"""
