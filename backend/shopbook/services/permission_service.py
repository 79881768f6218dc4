# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Feature Permission Checking and Security Event Logging

WHY: Workers only see and change what their admin granted them. The same
capability check drives navigation on /api/auth/me and guards every
mutating route, so a hidden button is never the only protection.

DESIGN PRINCIPLES:
- Fail closed: a missing permission row denies every action
- Admins are allowed everything and never have permission rows
- Log denials only: granted checks are not logged
- Saving a worker's matrix replaces it wholesale
"""

from ..extensions import db
from ..models import User, WorkerPermission, SecurityEvent
from ..permissions import (
    AdminRole,
    WorkerRole,
    FeatureGrant,
    FEATURES,
    validate_feature,
    get_feature_definition,
)
from ..validation import ValidationError
from shopbook.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    owner_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    Commits on its own so the record survives even when the request that
    triggered it is rolled back.

    event_type examples:
    - PERMISSION_DENIED
    - ADMIN_REQUIRED
    - LOGIN_FAILED
    - WORKER_DEACTIVATED
    """
    event = SecurityEvent(
        user_id=user_id,
        owner_id=owner_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def _grant_from_row(row: WorkerPermission) -> FeatureGrant:
    return FeatureGrant(
        can_view=bool(row.can_view),
        can_create=bool(row.can_create),
        can_edit=bool(row.can_edit),
        can_delete=bool(row.can_delete),
    )


def get_role(user: User):
    """
    Resolve the user's role variant.

    Returns AdminRole for admins, else WorkerRole carrying the worker's
    permission rows keyed by feature.
    """
    if user.is_admin:
        return AdminRole()

    rows = db.session.query(WorkerPermission).filter_by(worker_id=user.id).all()
    return WorkerRole(grants={row.feature: _grant_from_row(row) for row in rows})


def user_can(user: User, feature: str, action: str) -> bool:
    return get_role(user).can(feature, action)


def require_permission(
    user: User,
    feature: str,
    action: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to be allowed action on feature, raise PermissionDeniedError if not.

    Denials are logged to security_events.

    Usage:
        require_permission(user, "credits", "edit", resource="/api/credits/3")
    """
    if user_can(user, feature, action):
        return

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=f"{feature}:{action}",
        reason=f"Missing permission: {action} on {feature}",
        ip_address=ip_address,
        user_agent=user_agent,
        owner_id=user.owner_id,
    )
    raise PermissionDeniedError(f"Permission denied: {action} on {feature}")


def matrix_entry(feature: str, grant: FeatureGrant) -> dict:
    definition = get_feature_definition(feature)
    return {
        "feature": feature,
        "name": definition["name"],
        "description": definition["description"],
        **grant.to_dict(),
    }


def permission_matrix(worker_id: int) -> list[dict]:
    """
    Full matrix for a worker, one entry per known feature.

    Features without a stored row come back all-false. Each entry carries
    the feature's display name and description for the permissions screen.
    """
    rows = {
        row.feature: row
        for row in db.session.query(WorkerPermission).filter_by(worker_id=worker_id).all()
    }
    matrix = []
    for feature in FEATURES:
        row = rows.get(feature)
        grant = _grant_from_row(row) if row else FeatureGrant()
        matrix.append(matrix_entry(feature, grant))
    return matrix


def replace_permissions(worker_id: int, entries: list) -> list[dict]:
    """
    Replace a worker's whole permission matrix.

    entries: [{"feature": "credits", "can_view": true, ...}, ...]
    Rows where every flag is false are not stored. Unknown features are
    rejected before anything is written.
    """
    if not isinstance(entries, list):
        raise ValidationError("permissions must be a list")

    grants: dict[str, FeatureGrant] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError("Each permission entry must be an object")
        feature = entry.get("feature")
        if not validate_feature(feature):
            raise ValidationError(f"Unknown feature: {feature}")
        if feature in grants:
            raise ValidationError(f"Duplicate feature: {feature}")
        grants[feature] = FeatureGrant(
            can_view=bool(entry.get("can_view")),
            can_create=bool(entry.get("can_create")),
            can_edit=bool(entry.get("can_edit")),
            can_delete=bool(entry.get("can_delete")),
        )

    db.session.query(WorkerPermission).filter_by(worker_id=worker_id).delete()
    for feature, grant in grants.items():
        if not any(grant.to_dict().values()):
            continue
        db.session.add(WorkerPermission(worker_id=worker_id, feature=feature, **grant.to_dict()))

    db.session.commit()
    return permission_matrix(worker_id)
