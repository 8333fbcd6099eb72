from __future__ import annotations

from ..extensions import db
from payportal.time_utils import to_utc_z, utcnow


# Review lifecycle: pending -> approved | rejected (both terminal)
PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

TRANSACTION_STATUSES = (PENDING, APPROVED, REJECTED)
REVIEW_OUTCOMES = (APPROVED, REJECTED)

PAYMENT_METHODS = ("bank_transfer", "credit_card", "debit_card", "paypal")
DEFAULT_PAYMENT_METHOD = "bank_transfer"

# Administrative reporting vocabulary mapped onto the canonical statuses.
ADMIN_STATUS_TO_STATUS = {
    "pending": PENDING,
    "under_review": PENDING,
    "completed": APPROVED,
    "failed": REJECTED,
    "cancelled": REJECTED,
}

STATUS_TO_ADMIN_STATUS = {
    PENDING: "pending",
    APPROVED: "completed",
    REJECTED: "failed",
}


class Transaction(db.Model):
    """
    International transfer request submitted by a customer.

    LIFECYCLE:
        pending -> approved
        pending -> rejected

    Created pending with no reviewer. An employee or admin resolves it once;
    the resolving account is stored in reviewed_by_id. Resolved transactions
    never change status again.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        db.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_transactions_status",
        ),
        db.CheckConstraint(
            "payment_method IN ('bank_transfer', 'credit_card', 'debit_card', 'paypal')",
            name="ck_transactions_payment_method",
        ),
        db.Index("ix_transactions_customer_created", "customer_id", "created_at"),
        db.Index("ix_transactions_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Owning customer
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    swift_code = db.Column(db.String(11), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(500), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default=DEFAULT_PAYMENT_METHOD)

    recipient_name = db.Column(db.String(100), nullable=True)
    recipient_bank = db.Column(db.String(100), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=PENDING, index=True)

    # Reviewer of record (employee or admin); null while pending
    reviewed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    review_notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = db.relationship("User", foreign_keys=[customer_id])
    reviewer = db.relationship("User", foreign_keys=[reviewed_by_id])

    @property
    def admin_status(self) -> str:
        return STATUS_TO_ADMIN_STATUS[self.status]

    def to_dict(self, *, include_parties: bool = False, admin_view: bool = False) -> dict:
        data = {
            "id": self.id,
            "customerId": self.customer_id,
            "swiftCode": self.swift_code,
            "amount": float(self.amount) if self.amount is not None else None,
            "description": self.description,
            "paymentMethod": self.payment_method,
            "recipientName": self.recipient_name,
            "recipientBank": self.recipient_bank,
            "status": self.status,
            "reviewedBy": self.reviewed_by_id,
            "reviewedAt": to_utc_z(self.reviewed_at),
            "reviewNotes": self.review_notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_parties:
            data["customer"] = self.customer.to_summary() if self.customer else None
            data["reviewer"] = self.reviewer.to_summary() if self.reviewer else None
        if admin_view:
            data["adminStatus"] = self.admin_status
        return data

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.status} {self.amount}>"
