"""Financial transaction log. Append-only: rows are never updated or deleted."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid

from school_ledger.db.session import Base


class FinancialTransaction(Base):
    """
    Typed financial event for a student-year. amount is always >= 0; the sign is
    implied by transaction_type. Corrections are new rows; a compensating row
    points at the row it cancels through reverses_id.
    """

    __tablename__ = "financial_transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="chk_financial_transaction_amount_non_negative"),
        CheckConstraint(
            "transaction_type IN ('payment','additional_fee','discount','penalty','refund')",
            name="chk_financial_transaction_type",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    year_key = Column(String(20), nullable=False, index=True)
    transaction_type = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(Text, nullable=False, default="")
    payment_method = Column(String(30), nullable=True)
    receipt_number = Column(String(50), nullable=True)
    payer_name = Column(String(255), nullable=True)
    payer_relation = Column(String(50), nullable=True)
    payer_phone = Column(String(30), nullable=True)
    payer_national_id = Column(String(30), nullable=True)
    reverses_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("financial_transactions.id", ondelete="RESTRICT"),
        nullable=True,
    )
    # Insertion order within the student-year; breaks ties between equal transaction dates.
    insertion_seq = Column(Integer, nullable=False)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
