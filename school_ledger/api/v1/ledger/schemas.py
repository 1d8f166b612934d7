"""Ledger schemas: base fees, installments, transactions, year summary."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_ledger.core.enums import BalanceStatus, TransactionType


# --- Base fees ---
class InstallmentItem(BaseModel):
    id: Optional[UUID] = None
    sequence_number: int
    amount: Decimal
    due_date: date
    paid: bool = False
    paid_date: Optional[date] = None


class OtherExpenseItem(BaseModel):
    expense_type: str
    quantity: int = 1
    total_price: Decimal


class BaseFees(BaseModel):
    """Immutable base-fee snapshot consumed by the reconciliation engine."""

    total_amount: Decimal
    advance_payment: Decimal = Decimal("0")
    installments: List[InstallmentItem] = Field(default_factory=list)


class BaseFeesResponse(BaseFees):
    id: UUID
    student_id: str
    year_key: str
    installment_count: int
    other_expenses: List[OtherExpenseItem] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: datetime


class InstallmentCreate(BaseModel):
    sequence_number: int = Field(..., ge=1)
    amount: Decimal = Field(..., ge=0)
    due_date: date


class OtherExpenseCreate(BaseModel):
    expense_type: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(1, ge=1)
    total_price: Decimal = Field(..., ge=0)


class BaseFeesSetupRequest(BaseModel):
    """One-time setup. Give either an explicit installment list or installment_count to generate one."""

    total_amount: Decimal = Field(..., ge=0)
    advance_payment: Decimal = Field(Decimal("0"), ge=0)
    installment_count: Optional[int] = Field(None, ge=1, le=24)
    first_due_date: Optional[date] = None
    installments: Optional[List[InstallmentCreate]] = None
    other_expenses: List[OtherExpenseCreate] = Field(default_factory=list)
    created_by: Optional[str] = None


# --- Financial section snapshots (tagged variants of the FinancialTransaction section) ---
class TransactionSnapshot(BaseModel):
    kind: Literal["transaction"] = "transaction"
    id: Optional[UUID] = None
    year_key: str = Field(..., min_length=1, max_length=20)
    transaction_type: TransactionType
    amount: Decimal = Field(..., ge=0)
    transaction_date: date
    description: str = ""
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None
    payer_name: Optional[str] = None
    payer_relation: Optional[str] = None
    payer_phone: Optional[str] = None
    payer_national_id: Optional[str] = None
    reverses_id: Optional[UUID] = None


class InstallmentStatusSnapshot(BaseModel):
    kind: Literal["installment_status"] = "installment_status"
    year_key: str = Field(..., min_length=1, max_length=20)
    sequence_number: int = Field(..., ge=1)
    paid: bool
    paid_date: Optional[date] = None


# --- Transactions ---
class TransactionCreate(BaseModel):
    session_id: UUID
    year_key: str = Field(..., min_length=1, max_length=20)
    transaction_type: TransactionType
    amount: Decimal = Field(..., ge=0)
    transaction_date: Optional[date] = None
    description: str = ""
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None
    payer_name: Optional[str] = None
    payer_relation: Optional[str] = None
    payer_phone: Optional[str] = None
    payer_national_id: Optional[str] = None


class TransactionResponse(BaseModel):
    id: UUID
    student_id: str
    year_key: str
    transaction_type: TransactionType
    amount: Decimal
    transaction_date: date
    description: str = ""
    payment_method: Optional[str] = None
    receipt_number: Optional[str] = None
    payer_name: Optional[str] = None
    payer_relation: Optional[str] = None
    payer_phone: Optional[str] = None
    payer_national_id: Optional[str] = None
    reverses_id: Optional[UUID] = None
    insertion_seq: int = 0
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InstallmentStatusUpdate(BaseModel):
    session_id: UUID
    paid: bool
    paid_date: Optional[date] = None


# --- Summary ---
class YearFinancialSummary(BaseModel):
    """Every intermediate total is carried because callers display the breakdown."""

    student_id: Optional[str] = None
    year_key: Optional[str] = None
    base_fees_configured: bool = True
    total_study_expenses: Decimal
    advance_payment: Decimal
    paid_from_transactions: Decimal
    paid_from_installments: Decimal
    total_paid: Decimal
    total_additional_fees: Decimal
    total_discounts: Decimal
    total_refunds: Decimal
    total_other_expenses: Decimal
    net_due: Decimal
    balance_status: BalanceStatus
    transaction_count: int


class FinancialCommitResponse(BaseModel):
    audit_entry_id: UUID
    sequence: int
    transaction_id: Optional[UUID] = None
    summary: YearFinancialSummary
