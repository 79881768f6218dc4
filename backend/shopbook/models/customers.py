from __future__ import annotations

from ..extensions import db
from shopbook.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer directory entry used for name suggestions.

    customer_name keeps the spelling the shop typed; the normalized form
    (trimmed, single-spaced, lowercase) is what makes two entries the
    same customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "customer_name_normalized", name="uq_customers_owner_normalized_name"),
        db.Index("ix_customers_owner_deleted", "owner_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_name_normalized = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "is_deleted": self.is_deleted,
            "deleted_at": to_utc_z(self.deleted_at) if self.deleted_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
