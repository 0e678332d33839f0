from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.auth import current_actor, login_required
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    config = container.config_service

    @app.route("/api/config/office-location", methods=["GET"], endpoint="api_office_location")
    def api_office_location():
        return jsonify({"success": True, "data": config.office_location()}), 200

    @app.route("/api/config/location-verification-status", methods=["GET"], endpoint="api_location_status")
    def api_location_status():
        required = config.load().location_verification_required
        return jsonify({"success": True, "data": {"location_verification_required": required}}), 200

    @app.route("/api/config/location-verification", methods=["PUT"], endpoint="api_set_location_verification")
    @login_required
    def api_set_location_verification():
        data = request.get_json(silent=True) or {}
        enabled = data.get("enabled") if isinstance(data, dict) else None
        if not isinstance(enabled, bool):
            raise ValidationError("enabled must be a boolean", field="enabled")
        actor = current_actor()
        config.set_location_verification(actor_id=actor.user_id, actor_role=actor.role, enabled=enabled)
        return jsonify(
            {
                "success": True,
                "message": f"Location verification {'enabled' if enabled else 'disabled'}",
                "data": {"location_verification_required": enabled},
            }
        ), 200
