# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Signup creates a shop owner (admin) plus the owner's settings row
- Workers are created by their admin, never through signup
- Login returns a bearer token; only its SHA-256 hash is stored
- /me tells the frontend what the caller may see and where to land
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..permissions import FEATURES, FeatureGrant, visible_nav_items, first_permitted_route
from ..decorators import require_auth
from .errors import json_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token: str) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
        "owner_id": session.owner_id,
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Register a new shop owner and log them in.

    Request body:
    {
        "email": "owner@shop.pk",
        "password": "...",
        "full_name": "Ali Khan",
        "phone_number": "03001234567",  (optional)
        "business_name": "Khan Traders"  (optional)
    }

    Returns:
        201: user, token, session
        400: invalid input or weak password
        409: email already registered
    """
    try:
        data = request.get_json(silent=True) or {}

        user = auth_service.create_admin(
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            phone_number=data.get("phone_number"),
            business_name=data.get("business_name"),
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({**_session_payload(user, session, token), "message": "Signup successful"}), 201

    except Exception as exc:
        return json_error(exc, "Failed to sign up user")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    Failed attempts are written to security_events as LOGIN_FAILED.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason=f"Invalid credentials for {str(email).strip().lower()}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({**_session_payload(user, session, token), "message": "Login successful"}), 200

    except Exception as exc:
        return json_error(exc, "Failed to login user")


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authorization header required"}), 401

        token = auth_header.split(" ", 1)[1]

        revoked = session_service.revoke_session(token, reason="User logout")

        if not revoked:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """
    Current user with role, owner id, permission matrix, visible
    navigation items and the route to land on.

    Admins get every flag set for every feature.
    """
    context = g.session_context
    role = context.role

    if role.is_admin:
        everything = FeatureGrant(can_view=True, can_create=True, can_edit=True, can_delete=True)
        permissions = [permission_service.matrix_entry(feature, everything) for feature in FEATURES]
    else:
        permissions = permission_service.permission_matrix(context.user.id)

    return jsonify({
        "user": context.user.to_dict(),
        "role": role.name,
        "owner_id": context.owner_id,
        "permissions": permissions,
        "nav_items": visible_nav_items(role),
        "landing_route": first_permitted_route(role),
        "settings": context.settings.to_dict(),
        "today": context.today().isoformat(),
    })
