# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError
from .permissions import validate_feature, validate_action


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'owner_id')


def require_auth(f):
    """
    Require authentication and establish owner context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.owner_id: The admin id whose rows this request reads and writes
    - g.role: AdminRole or WorkerRole for capability checks
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User (or a worker's admin) deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.owner_id = context.owner_id
        g.role = context.role
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(feature: str, action: str):
    """
    Require the current user to be allowed action on feature.

    Admins always pass. Workers need the matching flag in their
    permission matrix; denials are logged to security_events.
    """
    if not validate_feature(feature) or not validate_action(action):
        raise ValueError(f"Unknown permission {feature}:{action}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(
                    g.current_user,
                    feature,
                    action,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": {"feature": feature, "action": action},
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_admin(f):
    """Require the authenticated user to be a shop admin."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.current_user.is_admin:
            permission_service.log_security_event(
                user_id=g.current_user.id,
                event_type="ADMIN_REQUIRED",
                success=False,
                resource=request.path,
                action=request.method,
                reason="Admin-only endpoint",
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
                owner_id=g.owner_id,
            )
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
