from datetime import date
from decimal import Decimal

import pytest

from school_ledger.api.v1.ledger.schedule import add_months, build_installment_schedule, validate_installment_plan
from school_ledger.api.v1.ledger.schemas import InstallmentCreate
from school_ledger.core.exceptions import InvalidInputError


def test_last_installment_absorbs_rounding() -> None:
    plan = build_installment_schedule(Decimal("10000"), Decimal("0"), 3, date(2025, 9, 1))
    assert [i.amount for i in plan] == [Decimal("3333.00"), Decimal("3333.00"), Decimal("3334.00")]
    assert sum(i.amount for i in plan) == Decimal("10000")


def test_schedule_is_monthly_from_first_due_date() -> None:
    plan = build_installment_schedule(Decimal("1200"), Decimal("200"), 4, date(2025, 11, 1))
    assert [i.due_date for i in plan] == [date(2025, 11, 1), date(2025, 12, 1), date(2026, 1, 1), date(2026, 2, 1)]
    assert [i.sequence_number for i in plan] == [1, 2, 3, 4]
    assert sum(i.amount for i in plan) == Decimal("1000")


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)


def test_advance_above_total_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        build_installment_schedule(Decimal("100"), Decimal("200"), 2, date(2025, 9, 1))


def test_plan_with_gap_in_sequence_is_rejected() -> None:
    plan = [
        InstallmentCreate(sequence_number=1, amount=Decimal("100"), due_date=date(2025, 9, 1)),
        InstallmentCreate(sequence_number=3, amount=Decimal("100"), due_date=date(2025, 10, 1)),
    ]
    with pytest.raises(InvalidInputError):
        validate_installment_plan(plan)


def test_plan_with_due_dates_out_of_order_is_rejected() -> None:
    plan = [
        InstallmentCreate(sequence_number=1, amount=Decimal("100"), due_date=date(2025, 10, 1)),
        InstallmentCreate(sequence_number=2, amount=Decimal("100"), due_date=date(2025, 9, 1)),
    ]
    with pytest.raises(InvalidInputError):
        validate_installment_plan(plan)
