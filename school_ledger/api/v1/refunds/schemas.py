from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.core.enums import RefundDeductionType, RefundStatus


class RefundRequestCreate(BaseModel):
    """
    Withdrawal refund request. months_studied is derived from enrollment_date when omitted;
    total_months_in_year defaults to the installment count of the base fee plan.
    """

    year_key: str = Field(..., min_length=1, max_length=20)
    withdrawal_date: date
    enrollment_date: Optional[date] = None
    months_studied: Optional[int] = Field(None, ge=0)
    total_months_in_year: Optional[int] = Field(None, ge=1, le=24)
    monthly_tuition_fee: Optional[Decimal] = Field(None, ge=0)
    admin_fee_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    admin_fee_fixed: Optional[Decimal] = Field(None, ge=0)
    registration_fee_amount: Decimal = Field(Decimal("0"), ge=0)
    other_non_refundable_fees: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None
    created_by: Optional[str] = None


class RefundApprove(BaseModel):
    approver_name: str = Field(..., min_length=1, max_length=255)


class RefundReject(BaseModel):
    approver_name: str = Field(..., min_length=1, max_length=255)
    reason: str = Field(..., min_length=1)


class RefundPay(BaseModel):
    session_id: UUID
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None


class RefundDeductionResponse(BaseModel):
    deduction_type: RefundDeductionType
    description: Optional[str] = None
    amount: Decimal
    percentage: Optional[Decimal] = None
    reason: Optional[str] = None


class RefundResponse(BaseModel):
    id: UUID
    student_id: str
    year_key: str
    status: RefundStatus
    request_date: date
    withdrawal_date: Optional[date] = None
    total_paid: Decimal
    total_refundable: Decimal
    total_deductions: Decimal
    amount: Decimal
    deductions: List[RefundDeductionResponse] = Field(default_factory=list)
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    approver_name: Optional[str] = None
    approval_date: Optional[date] = None
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None
    transaction_id: Optional[UUID] = None
    paid_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
