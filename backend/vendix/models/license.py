from __future__ import annotations

from ..extensions import db
from .records import license_record


class License(db.Model):
    """Single-row activation record (id is always 1)."""
    __tablename__ = "license"

    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    key = db.Column(db.String(128), nullable=False)
    activated_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return license_record(
            id=self.id,
            key=self.key,
            activated_at=self.activated_at,
            expires_at=self.expires_at,
        )
