"""Base fees per student per academic year: set up once, then read-only except installment paid state."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)

from school_ledger.db.session import Base


class StudentBaseFees(Base):
    """
    Fee schedule snapshot for a student-year.
    total_amount and advance_payment are immutable after setup.
    """

    __tablename__ = "student_base_fees"
    __table_args__ = (
        UniqueConstraint("student_id", "year_key", name="uq_student_base_fees_year"),
        CheckConstraint("total_amount >= 0", name="chk_base_fees_total_non_negative"),
        CheckConstraint("advance_payment >= 0", name="chk_base_fees_advance_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    year_key = Column(String(20), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    advance_payment = Column(Numeric(12, 2), nullable=False, default=0)
    installment_count = Column(Integer, nullable=False, default=1)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class FeeInstallment(Base):
    """Installment of a base fee plan. Never deleted; only paid/paid_date change."""

    __tablename__ = "fee_installments"
    __table_args__ = (
        UniqueConstraint("base_fees_id", "sequence_number", name="uq_fee_installment_sequence"),
        CheckConstraint("amount >= 0", name="chk_fee_installment_amount_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    base_fees_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("student_base_fees.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    sequence_number = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    paid_date = Column(Date, nullable=True)


class OtherExpense(Base):
    """Books, uniform, transport and similar items. Static after setup."""

    __tablename__ = "other_expenses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    base_fees_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("student_base_fees.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    expense_type = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(12, 2), nullable=False)
