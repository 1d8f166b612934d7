from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from school_ledger.api.v1.audit.schemas import EditingSessionResponse
from school_ledger.api.v1.ledger import service as ledger_service
from school_ledger.api.v1.ledger.schemas import BaseFeesResponse, TransactionCreate
from school_ledger.api.v1.refunds import service as refund_service
from school_ledger.api.v1.refunds.calculation import calculate_months_studied, calculate_refund_amount
from school_ledger.api.v1.refunds.schemas import RefundApprove, RefundPay, RefundReject, RefundRequestCreate
from school_ledger.api.v1.sections.service import undo_last_change
from school_ledger.core.enums import RefundDeductionType, RefundStatus, TransactionType
from school_ledger.core.exceptions import InvalidInputError

from .conftest import STUDENT_ID, YEAR_KEY


def test_refund_deductions() -> None:
    calc = calculate_refund_amount(
        total_paid=Decimal("6000"),
        total_study_expenses=Decimal("10000"),
        months_studied=3,
        total_months_in_year=10,
        admin_fee_percentage=Decimal("10"),
        registration_fee_amount=Decimal("500"),
    )
    by_type = {d.deduction_type: d for d in calc.deductions}
    assert by_type[RefundDeductionType.REGISTRATION_FEE].amount == Decimal("500")
    assert by_type[RefundDeductionType.STUDIED_MONTHS].amount == Decimal("3000")
    assert by_type[RefundDeductionType.STUDIED_MONTHS].percentage == Decimal("30")
    assert by_type[RefundDeductionType.ADMIN_FEE].amount == Decimal("250")
    assert calc.total_refundable == Decimal("5500")
    assert calc.total_deductions == Decimal("3750")
    assert calc.final_refund_amount == Decimal("2250")


def test_fixed_admin_fee_overrides_percentage() -> None:
    calc = calculate_refund_amount(
        total_paid=Decimal("1000"),
        total_study_expenses=Decimal("1000"),
        months_studied=0,
        total_months_in_year=10,
        admin_fee_percentage=Decimal("50"),
        admin_fee_fixed=Decimal("40"),
    )
    assert calc.final_refund_amount == Decimal("960")


def test_refund_never_goes_negative() -> None:
    calc = calculate_refund_amount(
        total_paid=Decimal("500"),
        total_study_expenses=Decimal("10000"),
        months_studied=5,
        total_months_in_year=10,
    )
    assert calc.final_refund_amount == Decimal("0")
    assert calc.total_deductions == Decimal("500")


def test_months_studied_counts_started_months() -> None:
    assert calculate_months_studied(date(2025, 9, 1), date(2025, 11, 15)) == 3
    assert calculate_months_studied(date(2025, 9, 10), date(2025, 9, 20)) == 1
    assert calculate_months_studied(date(2025, 9, 1), date(2026, 1, 5)) == 5


async def _paid_year(db: AsyncSession, session: EditingSessionResponse) -> None:
    await ledger_service.record_financial_transaction(
        db,
        STUDENT_ID,
        TransactionCreate(
            session_id=session.id,
            year_key=YEAR_KEY,
            transaction_type=TransactionType.payment,
            amount=Decimal("2500"),
        ),
    )


def _request() -> RefundRequestCreate:
    return RefundRequestCreate(
        year_key=YEAR_KEY,
        withdrawal_date=date(2025, 9, 20),
        months_studied=1,
        total_months_in_year=10,
        admin_fee_percentage=Decimal("10"),
        created_by="accountant",
    )


async def test_refund_workflow_posts_refund_transaction(
    db_session: AsyncSession, base_fees: BaseFeesResponse, editing_session: EditingSessionResponse
) -> None:
    await _paid_year(db_session, editing_session)

    refund = await refund_service.request_refund(db_session, STUDENT_ID, _request())
    # paid 4,500 (advance + payment); one month of 1,200; 10% admin fee on the remaining 3,300
    assert refund.status == RefundStatus.pending
    assert refund.total_paid == Decimal("4500")
    assert refund.total_deductions == Decimal("1530")
    assert refund.amount == Decimal("2970")
    assert {d.deduction_type for d in refund.deductions} == {
        RefundDeductionType.STUDIED_MONTHS,
        RefundDeductionType.ADMIN_FEE,
    }

    approved = await refund_service.approve_refund(db_session, refund.id, RefundApprove(approver_name="Principal"))
    assert approved.status == RefundStatus.approved
    assert approved.approval_date == date.today()

    paid = await refund_service.pay_refund(
        db_session, refund.id, RefundPay(session_id=editing_session.id, receipt_number="RF-1")
    )
    assert paid.status == RefundStatus.paid
    assert paid.transaction_id is not None

    t = await ledger_service.get_transaction(db_session, STUDENT_ID, paid.transaction_id)
    assert t.transaction_type == TransactionType.refund
    assert t.amount == Decimal("2970")
    summary = await ledger_service.get_year_financial_summary(db_session, STUDENT_ID, YEAR_KEY)
    assert summary.total_refunds == Decimal("2970")
    assert summary.net_due == Decimal("4530")

    reverted = await undo_last_change(db_session, STUDENT_ID, editing_session.id)
    assert reverted.compensating_transaction_id is not None
    assert reverted.financial_summary.total_refunds == Decimal("0")


async def test_refund_requires_approval_before_payment(
    db_session: AsyncSession, base_fees: BaseFeesResponse, editing_session: EditingSessionResponse
) -> None:
    await _paid_year(db_session, editing_session)
    refund = await refund_service.request_refund(db_session, STUDENT_ID, _request())

    with pytest.raises(InvalidInputError):
        await refund_service.pay_refund(db_session, refund.id, RefundPay(session_id=editing_session.id))

    rejected = await refund_service.reject_refund(
        db_session, refund.id, RefundReject(approver_name="Principal", reason="Student re-enrolled")
    )
    assert rejected.status == RefundStatus.rejected
    assert rejected.rejection_reason == "Student re-enrolled"

    with pytest.raises(InvalidInputError):
        await refund_service.approve_refund(db_session, refund.id, RefundApprove(approver_name="Principal"))
    assert await ledger_service.list_transactions(db_session, STUDENT_ID, YEAR_KEY) != []
    pending = await refund_service.list_refunds(db_session, status=RefundStatus.pending)
    assert pending == []


async def test_only_one_open_refund_per_year(
    db_session: AsyncSession, base_fees: BaseFeesResponse, editing_session: EditingSessionResponse
) -> None:
    await _paid_year(db_session, editing_session)
    await refund_service.request_refund(db_session, STUDENT_ID, _request())
    with pytest.raises(InvalidInputError):
        await refund_service.request_refund(db_session, STUDENT_ID, _request())
