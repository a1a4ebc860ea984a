from __future__ import annotations

from ..extensions import db
from marketledger.time_utils import to_utc_z


class AdminSetting(db.Model):
    """
    Platform-wide key/value settings edited from the admin dashboard.

    Values are stored as strings and parsed by settings_service
    (fees, free months, commission %, feature flags).
    """
    __tablename__ = "admin_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(128), nullable=False, unique=True, index=True)
    setting_value = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)

    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "setting_key": self.setting_key,
            "setting_value": self.setting_value,
            "description": self.description,
            "updated_by_user_id": self.updated_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
