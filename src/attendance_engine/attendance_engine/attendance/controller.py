from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import current_actor, login_required
from ..common.validators import require_int
from ..container import Container
from ..core.exceptions import ValidationError


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @login_required
    def api_check_in():
        data = _json_body()
        actor = current_actor()
        face_verified = data.get("faceVerified", data.get("face_verified", False))
        if not isinstance(face_verified, bool):
            raise ValidationError("faceVerified must be a boolean", field="faceVerified")
        result = service.check_in(
            actor.user_id,
            face_verified=face_verified,
            face_score=data.get("faceScore", data.get("face_score")),
            location=data.get("location"),
        )
        return jsonify({"success": True, "message": "Check-in successful", "data": result.to_dict()}), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @login_required
    def api_check_out():
        data = _json_body()
        result = service.check_out(current_actor().user_id, location=data.get("location"))
        return jsonify({"success": True, "message": "Check-out successful", "data": result.to_dict()}), 200

    @app.route("/api/attendance/public/check-in", methods=["POST"], endpoint="api_public_check_in")
    def api_public_check_in():
        data = _json_body()
        result = service.public_check_in(
            data.get("faceDescriptor", data.get("face_descriptor")),
            data.get("location"),
        )
        return jsonify({"success": True, "message": "Check-in successful", "data": result.to_dict()}), 201

    @app.route("/api/attendance/public/check-out", methods=["POST"], endpoint="api_public_check_out")
    def api_public_check_out():
        data = _json_body()
        result = service.public_check_out(
            data.get("faceDescriptor", data.get("face_descriptor")),
            data.get("location"),
        )
        return jsonify({"success": True, "message": "Check-out successful", "data": result.to_dict()}), 200

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_today")
    @login_required
    def api_today():
        status = service.today(current_actor().user_id)
        return jsonify({"success": True, "data": status.to_dict()}), 200

    @app.route("/api/attendance/user/<int:user_id>", methods=["GET"], endpoint="api_user_attendance")
    @login_required
    def api_user_attendance(user_id: int):
        actor = current_actor()
        summary = service.monthly_summary(
            actor_id=actor.user_id,
            actor_role=actor.role,
            user_id=user_id,
            month=request.args.get("month"),
            year=request.args.get("year"),
        )
        return jsonify({"success": True, "data": summary.to_dict()}), 200

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="api_manual_entry")
    @login_required
    def api_manual_entry():
        data = _json_body()
        actor = current_actor()
        record = service.manual_entry(
            actor_id=actor.user_id,
            actor_role=actor.role,
            user_id=require_int(data.get("userId", data.get("user_id")), "userId"),
            work_date=data.get("date", data.get("work_date")),
            check_in=data.get("checkInTime", data.get("check_in")),
            check_out=data.get("checkOutTime", data.get("check_out")),
            status=data.get("status"),
            reason=data.get("reason", ""),
        )
        return jsonify(
            {
                "success": True,
                "message": "Manual attendance entry created",
                "data": record.to_dict() if record else None,
            }
        ), 201

    @app.route("/api/attendance/leave", methods=["POST"], endpoint="api_mark_leave")
    @login_required
    def api_mark_leave():
        data = _json_body()
        actor = current_actor()
        count = service.mark_on_leave(
            actor_id=actor.user_id,
            actor_role=actor.role,
            user_id=require_int(data.get("userId", data.get("user_id")), "userId"),
            start_date=data.get("startDate", data.get("start_date")),
            end_date=data.get("endDate", data.get("end_date")),
            leave_type=data.get("leaveType", data.get("leave_type", "")),
        )
        return jsonify({"success": True, "data": {"dates_marked": count}}), 200

    @app.route("/api/attendance/lock", methods=["POST"], endpoint="api_lock_payroll")
    @login_required
    def api_lock_payroll():
        data = _json_body()
        actor = current_actor()
        if data.get("month") is None and data.get("year") is None:
            result = container.payroll_lock_service.lock_due_period(
                actor_id=actor.user_id,
                actor_role=actor.role,
                lock_day=container.config_service.load().attendance_lock_day,
            )
            if result is None:
                return jsonify({"success": True, "message": "No period is due for locking", "data": None}), 200
            return jsonify({"success": True, "message": "Attendance locked for payroll", "data": result}), 200

        count = container.payroll_lock_service.lock(
            actor_id=actor.user_id,
            actor_role=actor.role,
            month=data.get("month"),
            year=data.get("year"),
        )
        return jsonify(
            {
                "success": True,
                "message": f"Locked {count} attendance records for {data.get('month')}/{data.get('year')}",
                "data": {"month": int(data["month"]), "year": int(data["year"]), "records_locked": count},
            }
        ), 200

    @app.route("/api/face/verify", methods=["POST"], endpoint="api_face_verify")
    @login_required
    def api_face_verify():
        data = _json_body()
        result = service.verify_face(
            current_actor().user_id,
            data.get("faceDescriptor", data.get("face_descriptor")),
        )
        return jsonify({"success": True, "data": result}), 200
