from __future__ import annotations

from ..extensions import db
from shopbook.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_WORKER = "worker"


class User(db.Model):
    """
    Shop accounts for authentication and attribution.

    An admin owns a shop; workers are created by an admin and act inside
    that admin's data (admin_id). Email is the login identifier and is
    unique across all shops.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_admin_id", "admin_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(128), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=ROLE_ADMIN)

    # Set for workers only: the admin whose shop they work in
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    admin = db.relationship("User", remote_side=[id], backref=db.backref("workers", lazy=True))

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def owner_id(self) -> int:
        """Id of the account whose rows this user reads and writes."""
        return self.id if self.is_admin else self.admin_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "role": self.role,
            "admin_id": self.admin_id,
            "owner_id": self.owner_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class WorkerPermission(db.Model):
    """
    One row of a worker's permission matrix.

    A missing row means the worker has no access to the feature at all.
    Admins never have rows; they are allowed everything.
    """
    __tablename__ = "worker_permissions"
    __table_args__ = (
        db.UniqueConstraint("worker_id", "feature", name="uq_worker_permissions_feature"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    feature = db.Column(db.String(32), nullable=False)

    can_view = db.Column(db.Boolean, nullable=False, default=False)
    can_create = db.Column(db.Boolean, nullable=False, default=False)
    can_edit = db.Column(db.Boolean, nullable=False, default=False)
    can_delete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    worker = db.relationship("User", backref=db.backref("feature_permissions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "feature": self.feature,
            "can_view": self.can_view,
            "can_create": self.can_create,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }


class SessionToken(db.Model):
    """
    Secure session token management.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout or worker deactivation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Owner scope captured at login
    owner_id = db.Column(db.Integer, nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
