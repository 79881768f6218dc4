# Overview: Service-layer operations for workers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import User, ROLE_WORKER
from ..validation import ValidationError
from . import auth_service
from . import permission_service
from . import session_service


class WorkerNotFoundError(ValidationError):
    pass


def list_workers(admin_id: int, *, include_inactive: bool = False) -> list[User]:
    query = db.session.query(User).filter_by(admin_id=admin_id, role=ROLE_WORKER)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.full_name.asc(), User.id.asc()).all()


def get_worker(admin_id: int, worker_id: int) -> User:
    """Worker belonging to this admin, else WorkerNotFoundError."""
    worker = db.session.query(User).filter_by(
        id=worker_id, admin_id=admin_id, role=ROLE_WORKER
    ).first()
    if not worker:
        raise WorkerNotFoundError(f"Worker {worker_id} not found")
    return worker


def create_worker(
    admin_id: int,
    *,
    email: str,
    password: str,
    full_name: str,
    phone_number: str,
    permissions: list | None = None,
) -> User:
    """
    Create a worker account under an admin.

    Phone number is required for workers and must carry at least ten
    digits. An optional permission matrix is stored right away; without
    one the worker starts with no access.
    """
    email = auth_service.normalize_email(email)
    full_name = auth_service.validate_full_name(full_name)
    phone_number = auth_service.validate_phone(phone_number, required=True)
    password_hash = auth_service.hash_password(password)
    auth_service.ensure_email_available(email)

    worker = User(
        email=email,
        full_name=full_name,
        phone_number=phone_number,
        password_hash=password_hash,
        role=ROLE_WORKER,
        admin_id=admin_id,
        is_active=True,
    )
    db.session.add(worker)
    db.session.commit()

    if permissions:
        permission_service.replace_permissions(worker.id, permissions)

    return worker


def deactivate_worker(admin_id: int, worker_id: int, *, ip_address: str | None = None) -> User:
    """Deactivate a worker and revoke every session it holds."""
    worker = get_worker(admin_id, worker_id)
    worker.is_active = False
    db.session.commit()

    session_service.revoke_all_user_sessions(worker.id, reason="Worker deactivated")
    permission_service.log_security_event(
        user_id=admin_id,
        event_type="WORKER_DEACTIVATED",
        success=True,
        resource=f"/api/workers/{worker_id}",
        action="DELETE",
        ip_address=ip_address,
        owner_id=admin_id,
    )
    return worker
