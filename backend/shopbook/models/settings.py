from __future__ import annotations

from ..extensions import db
from shopbook.time_utils import to_utc_z


class AppSettings(db.Model):
    """
    Per-shop business settings, one row per owner.

    timezone decides the local "today" used for overdue checks.
    next_invoice_number is the owner's invoice sequence; it is read
    under a row lock so two invoices never share a number.
    """
    __tablename__ = "app_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    business_name = db.Column(db.String(128), nullable=True)
    logo_url = db.Column(db.String(512), nullable=True)
    timezone = db.Column(db.String(64), nullable=False)
    currency_label = db.Column(db.String(16), nullable=False, default="Rs.")

    next_invoice_number = db.Column(db.Integer, nullable=False, default=1)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "business_name": self.business_name,
            "logo_url": self.logo_url,
            "timezone": self.timezone,
            "currency_label": self.currency_label,
            "updated_by_user_id": self.updated_by_user_id,
            "updated_at": to_utc_z(self.updated_at),
        }
