from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth, require_admin
from ..services import settings_service
from .errors import json_error


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    # Workers read their admin's branding and timezone too
    return jsonify({"settings": g.session_context.settings.to_dict()})


@settings_bp.put("")
@require_auth
@require_admin
def update_settings_route():
    try:
        settings = settings_service.update_settings(
            g.owner_id,
            request.get_json(silent=True),
            user_id=g.current_user.id,
        )
        return jsonify({"settings": settings.to_dict()})
    except Exception as exc:
        return json_error(exc, "Failed to update settings")
