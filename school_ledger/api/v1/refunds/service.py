"""
Refund workflow: request (with computed deductions) -> approve | reject -> pay.
Paying posts a `refund` transaction through the mutation coordinator, so it lands on
the editing session's undo stack like any other financial change.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.ledger import registry
from school_ledger.api.v1.ledger.schedule import default_first_due_date
from school_ledger.api.v1.ledger.schemas import TransactionSnapshot
from school_ledger.api.v1.ledger.summary import build_year_summary
from school_ledger.api.v1.sections import service as sections_service
from school_ledger.core.config import settings
from school_ledger.core.enums import RefundStatus, SectionName, TransactionType
from school_ledger.core.exceptions import InvalidInputError, NotFoundError, ServiceError
from school_ledger.core.models import Refund, RefundDeduction

from .calculation import calculate_months_studied, calculate_refund_amount
from .schemas import (
    RefundApprove,
    RefundDeductionResponse,
    RefundPay,
    RefundReject,
    RefundRequestCreate,
    RefundResponse,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (RefundStatus.pending.value, RefundStatus.approved.value)


async def _refund_to_response(db: AsyncSession, r: Refund) -> RefundResponse:
    deductions = (
        await db.execute(select(RefundDeduction).where(RefundDeduction.refund_id == r.id))
    ).scalars().all()
    return RefundResponse(
        id=r.id,
        student_id=r.student_id,
        year_key=r.year_key,
        status=r.status,
        request_date=r.request_date,
        withdrawal_date=r.withdrawal_date,
        total_paid=r.total_paid,
        total_refundable=r.total_refundable,
        total_deductions=r.total_deductions,
        amount=r.amount,
        deductions=[
            RefundDeductionResponse(
                deduction_type=d.deduction_type,
                description=d.description,
                amount=d.amount,
                percentage=d.percentage,
                reason=d.reason,
            )
            for d in deductions
        ],
        notes=r.notes,
        rejection_reason=r.rejection_reason,
        approver_name=r.approver_name,
        approval_date=r.approval_date,
        payment_method=r.payment_method,
        receipt_number=r.receipt_number,
        transaction_id=r.transaction_id,
        paid_at=r.paid_at,
        created_by=r.created_by,
        created_at=r.created_at,
    )


async def _get_refund_row(db: AsyncSession, refund_id: UUID) -> Refund:
    r = await db.get(Refund, refund_id)
    if not r:
        raise NotFoundError("Refund not found")
    return r


async def request_refund(db: AsyncSession, student_id: str, payload: RefundRequestCreate) -> RefundResponse:
    base_fees = await registry.read_base_fees(db, student_id, payload.year_key)
    if base_fees is None:
        raise NotFoundError(f"No base fees set up for student {student_id}, year {payload.year_key}")

    open_refund = (
        await db.execute(
            select(Refund.id).where(
                Refund.student_id == student_id,
                Refund.year_key == payload.year_key,
                Refund.status.in_(OPEN_STATUSES),
            )
        )
    ).first()
    if open_refund is not None:
        raise InvalidInputError("An open refund request already exists for this student-year")

    summary = await build_year_summary(db, student_id, payload.year_key)
    paid = summary.total_paid - summary.total_refunds
    if paid <= 0:
        raise InvalidInputError("Nothing has been paid for this year; there is nothing to refund")

    total_months = payload.total_months_in_year or base_fees.installment_count
    if payload.months_studied is not None:
        months_studied = payload.months_studied
    else:
        enrollment_date = payload.enrollment_date
        if enrollment_date is None:
            enrollment_date = base_fees.installments[0].due_date if base_fees.installments else default_first_due_date()
        if payload.withdrawal_date < enrollment_date:
            raise InvalidInputError("Withdrawal date is before the enrollment date")
        months_studied = calculate_months_studied(enrollment_date, payload.withdrawal_date)
    months_studied = min(months_studied, total_months)

    admin_pct = payload.admin_fee_percentage
    if admin_pct is None:
        admin_pct = settings.refund_admin_fee_percentage

    calc = calculate_refund_amount(
        total_paid=paid,
        total_study_expenses=base_fees.total_amount,
        months_studied=months_studied,
        total_months_in_year=total_months,
        admin_fee_percentage=admin_pct,
        monthly_tuition_fee=payload.monthly_tuition_fee,
        admin_fee_fixed=payload.admin_fee_fixed,
        registration_fee_amount=payload.registration_fee_amount,
        other_non_refundable_fees=payload.other_non_refundable_fees,
    )

    r = Refund(
        student_id=student_id,
        year_key=payload.year_key,
        status=RefundStatus.pending.value,
        request_date=date.today(),
        withdrawal_date=payload.withdrawal_date,
        total_paid=paid,
        total_refundable=calc.total_refundable,
        total_deductions=calc.total_deductions,
        amount=calc.final_refund_amount,
        notes=payload.notes,
        created_by=payload.created_by,
    )
    db.add(r)
    await db.flush()
    for d in calc.deductions:
        db.add(
            RefundDeduction(
                refund_id=r.id,
                deduction_type=d.deduction_type.value,
                description=d.description,
                amount=d.amount,
                percentage=d.percentage,
                reason=d.reason,
            )
        )
    await db.commit()
    await db.refresh(r)
    logger.info(
        "Refund %s requested for student %s year %s: paid=%s deductions=%s amount=%s",
        r.id, student_id, payload.year_key, paid, calc.total_deductions, calc.final_refund_amount,
    )
    return await _refund_to_response(db, r)


async def get_refund(db: AsyncSession, refund_id: UUID) -> RefundResponse:
    r = await _get_refund_row(db, refund_id)
    return await _refund_to_response(db, r)


async def list_refunds(
    db: AsyncSession,
    student_id: Optional[str] = None,
    year_key: Optional[str] = None,
    status: Optional[RefundStatus] = None,
) -> List[RefundResponse]:
    stmt = select(Refund)
    if student_id:
        stmt = stmt.where(Refund.student_id == student_id)
    if year_key:
        stmt = stmt.where(Refund.year_key == year_key)
    if status:
        stmt = stmt.where(Refund.status == status.value)
    rows = (await db.execute(stmt.order_by(Refund.request_date.desc(), Refund.created_at.desc()))).scalars().all()
    return [await _refund_to_response(db, r) for r in rows]


async def approve_refund(db: AsyncSession, refund_id: UUID, payload: RefundApprove) -> RefundResponse:
    r = await _get_refund_row(db, refund_id)
    if r.status != RefundStatus.pending.value:
        raise InvalidInputError(f"Only pending refunds can be approved (current status: {r.status})")
    r.status = RefundStatus.approved.value
    r.approver_name = payload.approver_name.strip()
    r.approval_date = date.today()
    await db.commit()
    await db.refresh(r)
    logger.info("Refund %s approved by %s", refund_id, r.approver_name)
    return await _refund_to_response(db, r)


async def reject_refund(db: AsyncSession, refund_id: UUID, payload: RefundReject) -> RefundResponse:
    r = await _get_refund_row(db, refund_id)
    if r.status != RefundStatus.pending.value:
        raise InvalidInputError(f"Only pending refunds can be rejected (current status: {r.status})")
    r.status = RefundStatus.rejected.value
    r.approver_name = payload.approver_name.strip()
    r.approval_date = date.today()
    r.rejection_reason = payload.reason
    await db.commit()
    await db.refresh(r)
    logger.info("Refund %s rejected by %s", refund_id, r.approver_name)
    return await _refund_to_response(db, r)


async def pay_refund(db: AsyncSession, refund_id: UUID, payload: RefundPay) -> RefundResponse:
    """Mark an approved refund paid and post the matching `refund` transaction in one commit."""
    r = await _get_refund_row(db, refund_id)
    if r.status != RefundStatus.approved.value:
        raise InvalidInputError(f"Only approved refunds can be paid (current status: {r.status})")
    student_id = r.student_id
    payment_method = payload.payment_method or settings.default_payment_method
    snapshot = TransactionSnapshot(
        id=uuid4(),
        year_key=r.year_key,
        transaction_type=TransactionType.refund,
        amount=Decimal(r.amount),
        transaction_date=date.today(),
        description=f"Refund payment for request {refund_id}",
        payment_method=payment_method,
        receipt_number=payload.receipt_number,
    )
    r.status = RefundStatus.paid.value
    r.transaction_id = snapshot.id
    r.payment_method = payment_method
    r.receipt_number = payload.receipt_number
    r.paid_at = datetime.now(timezone.utc)
    try:
        await db.flush()
        await sections_service.apply_section_mutation(
            db, student_id, payload.session_id, SectionName.FINANCIAL_TRANSACTION, snapshot
        )
    except ServiceError:
        await db.rollback()
        raise
    logger.info("Refund %s paid to student %s: %s via %s", refund_id, student_id, snapshot.amount, payment_method)
    return await get_refund(db, refund_id)
