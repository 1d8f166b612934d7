"""Ledger service: one-time base fee setup, summaries, and audited transaction/installment changes."""

import logging
from datetime import date
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.sections import service as sections_service
from school_ledger.core.config import settings
from school_ledger.core.enums import SectionName
from school_ledger.core.exceptions import DuplicateBaseFeesSetup, InvalidInputError, NotFoundError
from school_ledger.core.models import FeeInstallment, OtherExpense, StudentBaseFees

from . import registry
from .schedule import build_installment_schedule, validate_installment_plan
from .schemas import (
    BaseFeesResponse,
    BaseFeesSetupRequest,
    FinancialCommitResponse,
    InstallmentStatusSnapshot,
    InstallmentStatusUpdate,
    TransactionCreate,
    TransactionResponse,
    TransactionSnapshot,
    YearFinancialSummary,
)
from .summary import build_year_summary

logger = logging.getLogger(__name__)


# --- Base fees ---
async def setup_base_fees(
    db: AsyncSession,
    student_id: str,
    year_key: str,
    payload: BaseFeesSetupRequest,
) -> BaseFeesResponse:
    """Create the base fee plan for a student-year. Allowed exactly once."""
    if await registry.base_fees_exist(db, student_id, year_key):
        raise DuplicateBaseFeesSetup(f"Base fees already set up for student {student_id}, year {year_key}")
    if payload.advance_payment > payload.total_amount:
        raise InvalidInputError("Advance payment cannot exceed the total amount")

    if payload.installments:
        installments = list(payload.installments)
    elif payload.installment_count:
        installments = build_installment_schedule(
            payload.total_amount,
            payload.advance_payment,
            payload.installment_count,
            payload.first_due_date,
        )
    else:
        raise InvalidInputError("Provide either installments or installment_count")
    validate_installment_plan(installments)

    planned = sum((i.amount for i in installments), Decimal("0"))
    expected = payload.total_amount - payload.advance_payment
    if planned != expected:
        logger.warning(
            "Installment plan for student %s year %s sums to %s, expected %s",
            student_id, year_key, planned, expected,
        )

    try:
        bf = StudentBaseFees(
            student_id=student_id,
            year_key=year_key,
            total_amount=payload.total_amount,
            advance_payment=payload.advance_payment,
            installment_count=len(installments),
            created_by=payload.created_by,
        )
        db.add(bf)
        await db.flush()
        for item in sorted(installments, key=lambda i: i.sequence_number):
            db.add(
                FeeInstallment(
                    base_fees_id=bf.id,
                    sequence_number=item.sequence_number,
                    amount=item.amount,
                    due_date=item.due_date,
                    paid=False,
                )
            )
        for exp in payload.other_expenses:
            db.add(
                OtherExpense(
                    base_fees_id=bf.id,
                    expense_type=exp.expense_type.strip(),
                    quantity=exp.quantity,
                    total_price=exp.total_price,
                )
            )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateBaseFeesSetup(f"Base fees already set up for student {student_id}, year {year_key}")

    logger.info(
        "Base fees set up for student %s year %s: total=%s advance=%s installments=%s",
        student_id, year_key, payload.total_amount, payload.advance_payment, len(installments),
    )
    return await registry.read_base_fees(db, student_id, year_key)


async def get_base_fees(db: AsyncSession, student_id: str, year_key: str) -> BaseFeesResponse:
    bf = await registry.read_base_fees(db, student_id, year_key)
    if bf is None:
        raise NotFoundError(f"No base fees set up for student {student_id}, year {year_key}")
    return bf


async def get_year_financial_summary(db: AsyncSession, student_id: str, year_key: str) -> YearFinancialSummary:
    return await build_year_summary(db, student_id, year_key)


async def list_transactions(db: AsyncSession, student_id: str, year_key: str) -> List[TransactionResponse]:
    return await registry.read_transactions(db, student_id, year_key)


# --- Audited financial changes (go through the mutation coordinator) ---
async def record_financial_transaction(
    db: AsyncSession,
    student_id: str,
    payload: TransactionCreate,
) -> FinancialCommitResponse:
    snapshot = TransactionSnapshot(
        year_key=payload.year_key,
        transaction_type=payload.transaction_type,
        amount=payload.amount,
        transaction_date=payload.transaction_date or date.today(),
        description=payload.description,
        payment_method=payload.payment_method or settings.default_payment_method,
        receipt_number=payload.receipt_number,
        payer_name=payload.payer_name,
        payer_relation=payload.payer_relation,
        payer_phone=payload.payer_phone,
        payer_national_id=payload.payer_national_id,
    )
    result = await sections_service.apply_section_mutation(
        db, student_id, payload.session_id, SectionName.FINANCIAL_TRANSACTION, snapshot
    )
    return FinancialCommitResponse(
        audit_entry_id=result.audit_entry_id,
        sequence=result.sequence,
        transaction_id=result.transaction_id,
        summary=result.financial_summary,
    )


async def set_installment_status(
    db: AsyncSession,
    student_id: str,
    year_key: str,
    sequence_number: int,
    payload: InstallmentStatusUpdate,
) -> FinancialCommitResponse:
    try:
        snapshot = InstallmentStatusSnapshot(
            year_key=year_key,
            sequence_number=sequence_number,
            paid=payload.paid,
            paid_date=payload.paid_date,
        )
    except ValidationError:
        raise InvalidInputError(f"Invalid installment reference {year_key}/{sequence_number}")
    result = await sections_service.apply_section_mutation(
        db, student_id, payload.session_id, SectionName.FINANCIAL_TRANSACTION, snapshot
    )
    return FinancialCommitResponse(
        audit_entry_id=result.audit_entry_id,
        sequence=result.sequence,
        transaction_id=None,
        summary=result.financial_summary,
    )


async def get_transaction(db: AsyncSession, student_id: str, transaction_id: UUID) -> TransactionResponse:
    t = await registry.get_transaction(db, transaction_id)
    if t is None or t.student_id != student_id:
        raise NotFoundError("Transaction not found")
    return t
