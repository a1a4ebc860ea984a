from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_auth, require_permission
from ..services import settings_service
from ..services.settings_service import SettingsValidationError, SettingsNotFoundError


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


def _json_error(exc: Exception):
    if isinstance(exc, SettingsNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, SettingsValidationError):
        return jsonify({"error": str(exc)}), 400
    current_app.logger.exception("Settings request failed")
    return jsonify({"error": "Internal server error"}), 500


@settings_bp.get("/settings")
@require_auth
@require_permission("MANAGE_SETTINGS")
def list_settings_route():
    data = settings_service.list_settings()
    return jsonify({"items": data, "count": len(data)})


@settings_bp.get("/settings/<key>")
@require_auth
@require_permission("MANAGE_SETTINGS")
def get_setting_route(key: str):
    item = next((s for s in settings_service.list_settings() if s["key"] == key), None)
    if item is None:
        return jsonify({"error": f"Unknown setting: {key}"}), 404
    return jsonify(item)


@settings_bp.patch("/settings")
@require_auth
@require_permission("MANAGE_SETTINGS")
def update_settings_route():
    # body: {"values": {"min_payout_amount": "1500", ...}} or a flat mapping
    payload = request.get_json(silent=True) or {}
    values = payload.get("values") if isinstance(payload.get("values"), dict) else payload
    try:
        data = settings_service.update_settings(values, updated_by_user_id=g.current_user.id)
    except Exception as exc:
        return _json_error(exc)
    return jsonify({"items": data, "count": len(data)})
