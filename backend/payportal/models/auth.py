from __future__ import annotations

from ..extensions import db
from ..permissions import DEFAULT_ROLE
from payportal.time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Portal accounts: customers, employees and administrators.

    Email is stored lowercased so the unique constraint is case-insensitive.
    The bcrypt hash never leaves this model: to_dict() does not include it.

    WHY: Every transfer request and every review must be attributable to
    exactly one account.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.CheckConstraint("role IN ('customer', 'employee', 'admin')", name="ck_users_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default=DEFAULT_ROLE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        """Short form embedded in transactions (owner / reviewer)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} ({self.role})>"
