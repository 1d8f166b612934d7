"""Storage access for base fees, installments and the transaction log. Caller commits."""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.core.exceptions import NotFoundError
from school_ledger.core.models import FeeInstallment, FinancialTransaction, OtherExpense, StudentBaseFees

from .schemas import (
    BaseFeesResponse,
    InstallmentItem,
    InstallmentStatusSnapshot,
    OtherExpenseItem,
    TransactionResponse,
    TransactionSnapshot,
)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _installment_to_item(inst: FeeInstallment) -> InstallmentItem:
    return InstallmentItem(
        id=inst.id,
        sequence_number=inst.sequence_number,
        amount=_to_decimal(inst.amount),
        due_date=inst.due_date,
        paid=bool(inst.paid),
        paid_date=inst.paid_date,
    )


def transaction_to_response(t: FinancialTransaction) -> TransactionResponse:
    return TransactionResponse(
        id=t.id,
        student_id=t.student_id,
        year_key=t.year_key,
        transaction_type=t.transaction_type,
        amount=_to_decimal(t.amount),
        transaction_date=t.transaction_date,
        description=t.description or "",
        payment_method=t.payment_method,
        receipt_number=t.receipt_number,
        payer_name=t.payer_name,
        payer_relation=t.payer_relation,
        payer_phone=t.payer_phone,
        payer_national_id=t.payer_national_id,
        reverses_id=t.reverses_id,
        insertion_seq=t.insertion_seq,
        created_by=t.created_by,
        created_at=t.created_at,
    )


async def _get_base_fees_row(db: AsyncSession, student_id: str, year_key: str) -> Optional[StudentBaseFees]:
    return (
        await db.execute(
            select(StudentBaseFees).where(
                StudentBaseFees.student_id == student_id,
                StudentBaseFees.year_key == year_key,
            )
        )
    ).scalar_one_or_none()


async def base_fees_exist(db: AsyncSession, student_id: str, year_key: str) -> bool:
    row = (
        await db.execute(
            select(StudentBaseFees.id).where(
                StudentBaseFees.student_id == student_id,
                StudentBaseFees.year_key == year_key,
            )
        )
    ).scalar_one_or_none()
    return row is not None


async def read_base_fees(db: AsyncSession, student_id: str, year_key: str) -> Optional[BaseFeesResponse]:
    bf = await _get_base_fees_row(db, student_id, year_key)
    if not bf:
        return None
    installments = (
        await db.execute(
            select(FeeInstallment)
            .where(FeeInstallment.base_fees_id == bf.id)
            .order_by(FeeInstallment.sequence_number)
        )
    ).scalars().all()
    expenses = (
        await db.execute(
            select(OtherExpense).where(OtherExpense.base_fees_id == bf.id).order_by(OtherExpense.expense_type)
        )
    ).scalars().all()
    return BaseFeesResponse(
        id=bf.id,
        student_id=bf.student_id,
        year_key=bf.year_key,
        total_amount=_to_decimal(bf.total_amount),
        advance_payment=_to_decimal(bf.advance_payment),
        installment_count=bf.installment_count,
        installments=[_installment_to_item(i) for i in installments],
        other_expenses=[
            OtherExpenseItem(
                expense_type=e.expense_type,
                quantity=e.quantity,
                total_price=_to_decimal(e.total_price),
            )
            for e in expenses
        ],
        created_by=bf.created_by,
        created_at=bf.created_at,
    )


async def _get_installment_row(
    db: AsyncSession, student_id: str, year_key: str, sequence_number: int
) -> Optional[FeeInstallment]:
    return (
        await db.execute(
            select(FeeInstallment)
            .join(StudentBaseFees, FeeInstallment.base_fees_id == StudentBaseFees.id)
            .where(
                StudentBaseFees.student_id == student_id,
                StudentBaseFees.year_key == year_key,
                FeeInstallment.sequence_number == sequence_number,
            )
        )
    ).scalar_one_or_none()


async def read_installment_status(
    db: AsyncSession, student_id: str, year_key: str, sequence_number: int
) -> Optional[InstallmentStatusSnapshot]:
    inst = await _get_installment_row(db, student_id, year_key, sequence_number)
    if not inst:
        return None
    return InstallmentStatusSnapshot(
        year_key=year_key,
        sequence_number=inst.sequence_number,
        paid=bool(inst.paid),
        paid_date=inst.paid_date,
    )


async def write_installment_status(db: AsyncSession, student_id: str, value: InstallmentStatusSnapshot) -> None:
    inst = await _get_installment_row(db, student_id, value.year_key, value.sequence_number)
    if not inst:
        raise NotFoundError(f"Installment {value.sequence_number} not found for year {value.year_key}")
    inst.paid = value.paid
    inst.paid_date = value.paid_date if value.paid else None
    await db.flush()


async def read_transactions(db: AsyncSession, student_id: str, year_key: str) -> List[TransactionResponse]:
    """Transactions of one student-year ordered by business date, then insertion order."""
    rows = (
        await db.execute(
            select(FinancialTransaction)
            .where(
                FinancialTransaction.student_id == student_id,
                FinancialTransaction.year_key == year_key,
            )
            .order_by(FinancialTransaction.transaction_date, FinancialTransaction.insertion_seq)
        )
    ).scalars().all()
    return [transaction_to_response(t) for t in rows]


async def append_transaction(
    db: AsyncSession,
    student_id: str,
    value: TransactionSnapshot,
    created_by: Optional[str] = None,
) -> FinancialTransaction:
    last_seq = (
        await db.execute(
            select(func.coalesce(func.max(FinancialTransaction.insertion_seq), 0)).where(
                FinancialTransaction.student_id == student_id,
                FinancialTransaction.year_key == value.year_key,
            )
        )
    ).scalar() or 0
    kwargs = {}
    if value.id is not None:
        kwargs["id"] = value.id
    t = FinancialTransaction(
        student_id=student_id,
        year_key=value.year_key,
        transaction_type=value.transaction_type.value,
        amount=value.amount,
        transaction_date=value.transaction_date,
        description=value.description or "",
        payment_method=value.payment_method,
        receipt_number=value.receipt_number,
        payer_name=value.payer_name,
        payer_relation=value.payer_relation,
        payer_phone=value.payer_phone,
        payer_national_id=value.payer_national_id,
        reverses_id=value.reverses_id,
        insertion_seq=int(last_seq) + 1,
        created_by=created_by,
        **kwargs,
    )
    db.add(t)
    await db.flush()
    return t


async def get_transaction(db: AsyncSession, transaction_id: UUID) -> Optional[TransactionResponse]:
    t = await db.get(FinancialTransaction, transaction_id)
    return transaction_to_response(t) if t else None
