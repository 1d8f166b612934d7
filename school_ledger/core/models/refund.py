"""Refund requests with itemised deductions. A paid refund is posted to the transaction log."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base


class Refund(Base):
    __tablename__ = "refunds"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','approved','rejected','paid')",
            name="chk_refund_status",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    year_key = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    request_date = Column(Date, nullable=False)
    withdrawal_date = Column(Date, nullable=True)
    total_paid = Column(Numeric(12, 2), nullable=False)
    total_refundable = Column(Numeric(12, 2), nullable=False)
    total_deductions = Column(Numeric(12, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approver_name = Column(String(255), nullable=True)
    approval_date = Column(Date, nullable=True)
    payment_method = Column(String(30), nullable=True)
    receipt_number = Column(String(50), nullable=True)
    # id of the refund transaction; set before the transaction row is flushed, so no FK
    transaction_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class RefundDeduction(Base):
    __tablename__ = "refund_deductions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    refund_id = Column(Uuid(as_uuid=True), ForeignKey("refunds.id", ondelete="CASCADE"), nullable=False, index=True)
    deduction_type = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    percentage = Column(Numeric(6, 2), nullable=True)
    reason = Column(Text, nullable=True)

    refund = relationship("Refund", backref="deductions", foreign_keys=[refund_id])
